"""Database persistence for per-entity comparison statistics."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy.pool import NullPool
from sqlmodel import Session, col, create_engine, select

from hotornot.core.config import EntityKind
from hotornot.models import EntityStats

from .repository import AsyncRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()


def create_stats_engine(db_path: str | Path) -> Engine:
    """Create the DuckDB engine backing the stats tables.

    Args:
        db_path: Path to the DuckDB database file.

    Returns:
        SQLAlchemy engine; StatsRepository creates the tables.
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    # Use NullPool to avoid connection pooling issues on Windows
    return create_engine(f"duckdb:///{path}", poolclass=NullPool)


def _apply_outcome(stats: EntityStats, outcome: str | None, timestamp: datetime) -> None:
    stats.matches += 1
    stats.last_match_at = timestamp
    if outcome is None:
        return
    if outcome == "win":
        stats.wins += 1
        stats.current_streak = stats.current_streak + 1 if stats.current_streak > 0 else 1
        stats.best_streak = max(stats.best_streak, stats.current_streak)
    else:
        stats.losses += 1
        stats.current_streak = stats.current_streak - 1 if stats.current_streak < 0 else -1


class StatsRepository(AsyncRepository):
    """Persist and query participation statistics.

    Implements the stats collaborator protocol consumed by the match
    outcome reporter. Participation-only records (outcome None) count the
    match and its timestamp but leave wins, losses and streaks alone.
    """

    def __init__(self, engine: Engine, kind: EntityKind = "performers") -> None:
        super().__init__(engine)
        self.kind = kind

    async def record_participation(
        self, entity_id: str, outcome: str | None, timestamp: datetime
    ) -> None:
        """Record one match for an entity.

        Args:
            entity_id: Entity that took part.
            outcome: "win", "loss", or None for participation only.
            timestamp: When the match was decided.
        """
        if outcome not in ("win", "loss", None):
            msg = f"Unknown outcome: {outcome!r}"
            raise ValueError(msg)

        def _save(session: Session) -> None:
            stats = session.get(EntityStats, (entity_id, self.kind))
            if stats is None:
                stats = EntityStats(entity_id=entity_id, kind=self.kind)
            _apply_outcome(stats, outcome, timestamp)
            session.add(stats)

        await self._run_transaction(_save)
        logger.debug("participation_recorded", entity_id=entity_id, outcome=outcome)

    async def get_stats(self, entity_id: str) -> dict[str, Any]:
        """Get statistics for one entity.

        Returns:
            Dict with matches, wins, losses, current_streak and best_streak;
            all zero for an entity that never played.
        """

        def _get(session: Session) -> dict[str, Any]:
            stats = session.get(EntityStats, (entity_id, self.kind))
            if stats is None:
                stats = EntityStats(entity_id=entity_id, kind=self.kind)
            return {
                "matches": stats.matches,
                "wins": stats.wins,
                "losses": stats.losses,
                "current_streak": stats.current_streak,
                "best_streak": stats.best_streak,
                "last_match_at": stats.last_match_at,
            }

        return await self._run_session(_get)

    async def get_leaderboard(self, limit: int | None = None) -> list[EntityStats]:
        """Get entities ordered by wins, then fewest losses."""

        def _get(session: Session) -> list[EntityStats]:
            statement = (
                select(EntityStats)
                .where(EntityStats.kind == self.kind)
                .order_by(col(EntityStats.wins).desc(), col(EntityStats.losses).asc())
            )
            if limit is not None:
                statement = statement.limit(limit)
            return list(session.exec(statement).all())

        return await self._run_session(_get)
