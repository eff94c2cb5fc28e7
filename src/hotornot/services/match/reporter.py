"""Apply match outcomes: rate, persist, and record participation."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal, Protocol, runtime_checkable

import structlog

from hotornot.core.config import Mode, RatingConfig
from hotornot.models import Entity, WriteResult
from hotornot.ranking import RatingOutcome, compute_outcome_for
from hotornot.services.match.pairing import Role
from hotornot.services.stash import EntityRepository

logger = structlog.get_logger()

Outcome = Literal["win", "loss"]


@runtime_checkable
class StatsCollector(Protocol):
    """Protocol for participation statistics stores.

    Implementations must accept a None outcome, meaning the entity took part
    as a defender: its match count moves, its wins, losses and streak do not.
    """

    async def record_participation(
        self, entity_id: str, outcome: Outcome | None, timestamp: datetime
    ) -> None:
        """Record one match for an entity.

        Args:
            entity_id: Entity that took part.
            outcome: "win", "loss", or None for participation only.
            timestamp: When the match was decided.
        """
        ...


class MatchOutcomeReporter:
    """Turns a user's pick into persisted ratings and participation records.

    Rating writes are best-effort: a failed write is logged and the session
    moves on. Stats are optional; without a collector nothing is tracked.
    """

    def __init__(
        self,
        repository: EntityRepository,
        rating_config: RatingConfig | None = None,
        stats: StatsCollector | None = None,
    ) -> None:
        """Initialize reporter.

        Args:
            repository: Repository receiving rating writes.
            rating_config: Elo parameters.
            stats: Optional participation statistics collector.
        """
        self.repository = repository
        self.rating_config = rating_config or RatingConfig()
        self.stats = stats

    async def report(
        self,
        winner: Entity,
        loser: Entity,
        mode: Mode,
        winner_role: Role,
        loser_role: Role,
        loser_rank: int | None = None,
    ) -> RatingOutcome:
        """Rate a match and publish its effects.

        Args:
            winner: Chosen entity, with its rating at selection time.
            loser: Other entity of the pair.
            mode: Mode the match was played in.
            winner_role: Whether the winner is the run's active participant.
            loser_role: Whether the loser is the run's active participant.
            loser_rank: Loser's rank at selection time (rank #1 defenders
                lose a point when beaten).

        Returns:
            The computed outcome.
        """
        outcome = compute_outcome_for(
            self.rating_config,
            mode,
            winner.rating,
            loser.rating,
            winner_active=winner_role == "active",
            loser_active=loser_role == "active",
            loser_rank=loser_rank,
        )
        logger.info(
            "match_rated",
            mode=mode,
            winner=winner.id,
            loser=loser.id,
            winner_delta=outcome.winner_delta,
            loser_delta=outcome.loser_delta,
        )

        if outcome.winner_delta != 0:
            await self._write(winner.id, outcome.new_winner_rating)
        if outcome.loser_delta != 0:
            await self._write(loser.id, outcome.new_loser_rating)

        timestamp = datetime.now(UTC)
        await self._record(winner.id, "win" if winner_role == "active" else None, timestamp)
        await self._record(loser.id, "loss" if loser_role == "active" else None, timestamp)
        return outcome

    async def place(self, entity: Entity, rating: int) -> WriteResult:
        """Persist a placement rating decided by the matchmaker."""
        logger.info("placement", entity_id=entity.id, rating=rating)
        return await self._write(entity.id, rating)

    async def _write(self, entity_id: str, rating: int) -> WriteResult:
        result = await self.repository.update_rating(entity_id, rating)
        if not result.ok:
            logger.warning(
                "rating_not_persisted", entity_id=entity_id, rating=rating, error=result.error
            )
        return result

    async def _record(self, entity_id: str, outcome: Outcome | None, timestamp: datetime) -> None:
        if self.stats is None:
            return
        try:
            await self.stats.record_participation(entity_id, outcome, timestamp)
        except Exception as e:  # noqa: BLE001
            logger.warning("stats_not_recorded", entity_id=entity_id, error=str(e))
