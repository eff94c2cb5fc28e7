"""Pair selection for Swiss, Gauntlet and Champion modes.

Swiss pairs are independent: a random entity meets a random opponent within a
rating window. Gauntlet and Champion are runs: a champion climbs the ranking
one unbeaten opponent at a time until nobody above it is left (victory). In
Gauntlet a dethroned champion then falls, meeting lower-ranked entities until
it wins once or reaches the bottom (placement).

Ranks are always derived from the pool fetched for the current call, so a
rating change between calls moves entities without any cached bookkeeping.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Literal

import structlog

from hotornot.core.config import EntityFilter, MatchmakingConfig, Mode
from hotornot.core.errors import PoolTooSmallError
from hotornot.models import Entity
from hotornot.ranking import BOTTOM_RATING, place_above, placement_rank
from hotornot.services.stash import EntityRepository

logger = structlog.get_logger()

Role = Literal["active", "defender"]
TerminalKind = Literal["victory", "placement"]

MIN_POOL_SIZE = 2


@dataclass
class ComparisonPair:
    """Two entities shown side by side, with their ranks at selection time.

    Ranks are 1-based positions in the rating-descending pool, or None for
    a random fallback pairing.
    """

    left: Entity
    right: Entity
    left_rank: int | None = None
    right_rank: int | None = None

    @property
    def ids(self) -> tuple[str, str]:
        return self.left.id, self.right.id

    def entity(self, entity_id: str) -> Entity:
        """Get the side with the given id."""
        if entity_id == self.left.id:
            return self.left
        if entity_id == self.right.id:
            return self.right
        msg = f"Entity {entity_id} is not part of this pair"
        raise KeyError(msg)

    def other(self, entity_id: str) -> Entity:
        """Get the side opposite the given id."""
        return self.right if self.entity(entity_id) is self.left else self.left

    def rank_of(self, entity_id: str) -> int | None:
        return self.left_rank if self.entity(entity_id) is self.left else self.right_rank


@dataclass(frozen=True)
class StreakInfo:
    """Win streak badge for the champion's side of a pair."""

    entity_id: str
    wins: int


@dataclass(frozen=True)
class TerminalEvent:
    """End of a Gauntlet or Champion run.

    Attributes:
        kind: "victory" (champion beat everyone above it) or "placement"
            (falling entity found its floor).
        entity: The champion or placed entity, carrying its final rating.
        rank: Final 1-based rank.
        rating: Final rating.
        streak: Win streak of the run's champion.
        pool_size: Number of entities in the pool.
    """

    kind: TerminalKind
    entity: Entity
    rank: int
    rating: int
    streak: int = 0
    pool_size: int = 0


@dataclass
class PairSelection:
    """Result of one pair-selection call: a pair or a terminal event."""

    pair: ComparisonPair | None = None
    terminal: TerminalEvent | None = None
    champion_rank: int | None = None
    champion: Entity | None = None
    falling_item: Entity | None = None
    restart: bool = False


@dataclass
class RunState:
    """Progress of the current Gauntlet or Champion run.

    Attributes:
        champion: Entity on a winning streak, None when no run is active.
        win_streak: Consecutive wins of the champion.
        champion_rank: Last computed 1-based rank of the champion (or of the
            falling entity while it falls).
        defeated: Ids the champion already beat this run. While falling it
            also holds the opponents the falling entity already lost to.
        falling: True while a dethroned champion searches for its floor.
        falling_item: The dethroned champion while it falls.
    """

    champion: Entity | None = None
    win_streak: int = 0
    champion_rank: int = 0
    defeated: set[str] = field(default_factory=set)
    falling: bool = False
    falling_item: Entity | None = None

    @property
    def active(self) -> bool:
        return self.champion is not None

    def reset(self) -> None:
        self.champion = None
        self.win_streak = 0
        self.champion_rank = 0
        self.defeated = set()
        self.falling = False
        self.falling_item = None

    def is_active_participant(self, entity_id: str) -> bool:
        """Whether the entity is the champion or the falling entity."""
        if self.champion is not None and entity_id == self.champion.id:
            return True
        return self.falling and self.falling_item is not None and entity_id == self.falling_item.id


@dataclass(frozen=True)
class RunTransition:
    """Run-state change caused by a pick.

    Attributes:
        terminal: Placement produced by the pick, if any.
        dethroned: Gauntlet champion that just lost and started falling.
    """

    terminal: TerminalEvent | None = None
    dethroned: Entity | None = None


@dataclass
class Pool:
    """Entities available for pairing.

    ``ranked`` is False for the random fallback sample, whose order carries
    no rank information.
    """

    entities: list[Entity]
    ranked: bool = True


def _index_of(entities: list[Entity], entity_id: str) -> int | None:
    for i, entity in enumerate(entities):
        if entity.id == entity_id:
            return i
    return None


def select_swiss_pair(
    entities: list[Entity], rng: random.Random, window: int = 15
) -> ComparisonPair:
    """Pick a random entity and a random opponent with a similar rating.

    Opponents within ``window`` rating points are drawn uniformly. When none
    qualify the closest-rated entity is used, first in pool order on ties.

    Args:
        entities: Pool sorted by rating descending.
        rng: Random source.
        window: Maximum rating distance for a competitive pairing.

    Returns:
        Pair with both ranks set.
    """
    first_index = rng.randrange(len(entities))
    first = entities[first_index]

    others = [(i, e) for i, e in enumerate(entities) if e.id != first.id]
    similar = [(i, e) for i, e in others if abs(e.rating - first.rating) <= window]
    if similar:
        second_index, second = rng.choice(similar)
    else:
        second_index, second = min(others, key=lambda p: abs(p[1].rating - first.rating))

    return ComparisonPair(first, second, first_index + 1, second_index + 1)


def select_run_opener(entities: list[Entity], rng: random.Random) -> PairSelection:
    """Open a run: a random challenger against the lowest-rated other entity.

    No champion exists until the user picks a winner of this pair.
    """
    challenger_index = rng.randrange(len(entities))
    challenger = entities[challenger_index]
    floor_index, floor = min(
        ((i, e) for i, e in enumerate(entities) if e.id != challenger.id),
        key=lambda p: (p[1].rating, -p[0]),
    )
    return PairSelection(
        pair=ComparisonPair(challenger, floor, challenger_index + 1, floor_index + 1),
        champion_rank=challenger_index + 1,
    )


def select_climb(entities: list[Entity], run: RunState) -> PairSelection | None:
    """Find the champion's next opponent, or declare victory.

    Candidates are unbeaten entities ranked above the champion or rated at
    least as high. The one nearest the champion is chosen.

    Returns:
        The selection, or None when there is no champion or it is no longer
        in the pool.
    """
    if run.champion is None:
        return None
    champion_index = _index_of(entities, run.champion.id)
    if champion_index is None:
        return None
    champion = entities[champion_index]

    candidates = [
        (i, e)
        for i, e in enumerate(entities)
        if e.id != champion.id
        and e.id not in run.defeated
        and (i < champion_index or e.rating >= champion.rating)
    ]
    if not candidates:
        return PairSelection(
            terminal=TerminalEvent(
                kind="victory",
                entity=champion,
                rank=1,
                rating=champion.rating,
                streak=run.win_streak,
                pool_size=len(entities),
            ),
            champion_rank=1,
            champion=champion,
        )

    opponent_index, opponent = candidates[-1]
    return PairSelection(
        pair=ComparisonPair(champion, opponent, champion_index + 1, opponent_index + 1),
        champion_rank=champion_index + 1,
        champion=champion,
    )


def select_fall(entities: list[Entity], run: RunState) -> PairSelection | None:
    """Find the falling entity's next opponent below it, or place it last.

    Returns:
        The selection, or None when nothing is falling or the falling entity
        left the pool.
    """
    if run.falling_item is None:
        return None
    falling_index = _index_of(entities, run.falling_item.id)
    if falling_index is None:
        return None
    falling = entities[falling_index]

    below = [
        (i, e)
        for i, e in enumerate(entities)
        if i > falling_index and e.id not in run.defeated
    ]
    if not below:
        placed = falling.with_rating(BOTTOM_RATING)
        return PairSelection(
            terminal=TerminalEvent(
                kind="placement",
                entity=placed,
                rank=len(entities),
                rating=BOTTOM_RATING,
                streak=run.win_streak,
                pool_size=len(entities),
            ),
            falling_item=placed,
        )

    opponent_index, opponent = below[0]
    return PairSelection(
        pair=ComparisonPair(falling, opponent, falling_index + 1, opponent_index + 1),
        champion_rank=falling_index + 1,
        falling_item=falling,
    )


class Matchmaker:
    """Selects pairs for every mode and tracks the Gauntlet/Champion run.

    One instance per session; it owns the session's RunState.
    """

    def __init__(
        self,
        repository: EntityRepository,
        config: MatchmakingConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize matchmaker.

        Args:
            repository: Source of entities and ratings.
            config: Pair selection settings.
            rng: Random source (seeded from config when omitted).
        """
        self.repository = repository
        self.config = config or MatchmakingConfig()
        self.rng = rng or random.Random(self.config.seed)  # noqa: S311
        self.run = RunState()

    async def fetch_pool(self, entity_filter: EntityFilter) -> Pool:
        """Resolve the entities available under a filter.

        Falls back to a random sample without ranks when the sorted query
        returns fewer than two entities.

        Raises:
            PoolTooSmallError: If fewer than two entities match.
            RepositoryError: If the repository read fails.
        """
        entities = await self.repository.list_sorted(entity_filter)
        if len(entities) >= MIN_POOL_SIZE:
            return Pool(entities)

        total = await self.repository.count(entity_filter)
        if total < MIN_POOL_SIZE:
            raise PoolTooSmallError(self.repository.kind, total)

        sample = await self.repository.list_random_sample(
            entity_filter, min(self.config.random_sample_size, total)
        )
        if len(sample) < MIN_POOL_SIZE:
            raise PoolTooSmallError(self.repository.kind, len(sample))
        self.rng.shuffle(sample)
        logger.info("random_fallback_pool", kind=self.repository.kind, sampled=len(sample))
        return Pool(sample[:MIN_POOL_SIZE], ranked=False)

    def select(self, mode: Mode, pool: Pool) -> PairSelection:
        """Choose the next pair (or terminal event) without touching run state.

        Call ``commit`` with the result once it is known to be current.
        """
        entities = pool.entities
        if not pool.ranked:
            return PairSelection(pair=ComparisonPair(entities[0], entities[1]))

        if mode == "swiss":
            return PairSelection(
                pair=select_swiss_pair(entities, self.rng, self.config.swiss_window)
            )

        run = self.run
        selection: PairSelection | None
        if mode == "gauntlet" and run.falling and run.falling_item is not None:
            selection = select_fall(entities, run)
        elif run.champion is not None:
            selection = select_climb(entities, run)
        else:
            return select_run_opener(entities, self.rng)

        if selection is None:
            logger.warning(
                "run_entity_left_pool",
                mode=mode,
                champion=run.champion.id if run.champion else None,
                falling=run.falling_item.id if run.falling_item else None,
            )
            selection = select_run_opener(entities, self.rng)
            selection.restart = True
        return selection

    def commit(self, selection: PairSelection) -> None:
        """Record the bookkeeping of an accepted selection in the run state."""
        if selection.restart:
            self.run.reset()
        if selection.champion_rank is not None:
            self.run.champion_rank = selection.champion_rank
        if selection.champion is not None and self.run.champion is not None:
            self.run.champion = selection.champion
        if selection.falling_item is not None and self.run.falling_item is not None:
            self.run.falling_item = selection.falling_item

    async def next_pair(self, mode: Mode, entity_filter: EntityFilter) -> PairSelection:
        """Fetch the pool, select and commit in one step."""
        selection = self.select(mode, await self.fetch_pool(entity_filter))
        self.commit(selection)
        return selection

    def roles(self, mode: Mode, winner_id: str, loser_id: str) -> tuple[Role, Role]:
        """Get (winner_role, loser_role) for a match.

        Swiss has no runs, so both sides are active there.
        """
        if mode == "swiss":
            return "active", "active"

        def _role(entity_id: str) -> Role:
            return "active" if self.run.is_active_participant(entity_id) else "defender"

        return _role(winner_id), _role(loser_id)

    def streak_for(self, mode: Mode, pair: ComparisonPair) -> StreakInfo | None:
        """Streak badge for the champion if it appears in the pair."""
        champion = self.run.champion
        if mode == "swiss" or champion is None or champion.id not in pair.ids:
            return None
        return StreakInfo(champion.id, self.run.win_streak)

    def record_pick(
        self,
        mode: Mode,
        pair: ComparisonPair,
        winner_id: str,
        new_winner_rating: int,
    ) -> RunTransition:
        """Advance the run after the user picked a winner.

        Args:
            mode: Current mode.
            pair: Pair the user chose from.
            winner_id: Id of the chosen entity.
            new_winner_rating: Winner's rating after the match was rated.

        Returns:
            Transition describing placements the caller must persist.
        """
        if mode == "swiss":
            return RunTransition()

        run = self.run
        winner = pair.entity(winner_id)
        loser = pair.other(winner_id)

        if mode == "gauntlet" and run.falling and run.falling_item is not None:
            if winner.id == run.falling_item.id:
                rating = place_above(loser.rating)
                return RunTransition(
                    terminal=TerminalEvent(
                        kind="placement",
                        entity=winner.with_rating(rating),
                        rank=placement_rank(pair.rank_of(loser.id)),
                        rating=rating,
                        streak=run.win_streak,
                    )
                )
            run.defeated.add(winner.id)
            logger.debug("falling_continues", falling=loser.id, beaten_by=winner.id)
            return RunTransition()

        if run.champion is not None and winner.id == run.champion.id:
            run.defeated.add(loser.id)
            run.win_streak += 1
            run.champion = winner.with_rating(new_winner_rating)
            return RunTransition()

        if run.champion is not None and mode == "gauntlet":
            run.falling = True
            run.falling_item = loser
            run.defeated = {winner.id}
            run.champion = winner.with_rating(new_winner_rating)
            run.win_streak = 1
            logger.info("champion_dethroned", dethroned=loser.id, new_champion=winner.id)
            return RunTransition(dethroned=loser)

        # First pick of a run, or a Champion-mode takeover
        run.champion = winner.with_rating(new_winner_rating)
        run.defeated = {loser.id}
        run.win_streak = 1
        return RunTransition()

    def reset(self) -> None:
        """Abandon the current run."""
        self.run.reset()
