"""Comparison session: mode and filter lifecycle around the matchmaker."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

from hotornot.core.config import MODES, EntityFilter, Mode
from hotornot.core.errors import ConfigurationError, PoolTooSmallError, RepositoryError
from hotornot.ranking import place_below
from hotornot.services.match.pairing import (
    ComparisonPair,
    Matchmaker,
    PairSelection,
    RunState,
    StreakInfo,
    TerminalEvent,
)
from hotornot.services.match.reporter import MatchOutcomeReporter

logger = structlog.get_logger()


@runtime_checkable
class ComparisonView(Protocol):
    """Protocol for whatever renders a session (terminal UI, web page, tests)."""

    def on_pair_ready(self, pair: ComparisonPair, streak: StreakInfo | None) -> None:
        """Show a new pair; ``streak`` marks the champion's side in a run."""
        ...

    def on_terminal_event(self, event: TerminalEvent) -> None:
        """Show a victory or placement screen until the user acknowledges it."""
        ...

    def on_pool_too_small(self, message: str) -> None:
        """Explain that the filters leave fewer than two entities."""
        ...

    def on_error(self, message: str, retryable: bool) -> None:
        """Show a read failure; ``retryable`` offers a retry action."""
        ...


class ComparisonSession:
    """Orchestrates pair selection, picks, and mode/filter changes.

    The request loop is: load a pair, show it, wait for the user's pick, rate
    and persist the match, advance the run, load the next pair. Terminal
    events interrupt the loop until ``acknowledge`` is called.

    Two guards keep ratings consistent under rapid input:
    - a latch rejects a pick or skip while the previous one is in flight;
    - a generation counter, bumped on every mode, filter or run reset, makes
      responses requested under an older generation get dropped.
    """

    def __init__(
        self,
        matchmaker: Matchmaker,
        reporter: MatchOutcomeReporter,
        view: ComparisonView,
        mode: Mode = "swiss",
        entity_filter: EntityFilter | None = None,
    ) -> None:
        """Initialize session.

        Args:
            matchmaker: Pair selection and run tracking.
            reporter: Rating and participation publisher.
            view: Renderer receiving pairs, terminal events and errors.
            mode: Initial matchmaking mode.
            entity_filter: Initial filter (defaults to EntityFilter()).
        """
        if mode not in MODES:
            msg = f"Unknown mode: {mode}"
            raise ValueError(msg)
        self.matchmaker = matchmaker
        self.reporter = reporter
        self.view = view
        self.mode: Mode = mode
        self.entity_filter = entity_filter or EntityFilter()
        self.current_pair: ComparisonPair | None = None
        self.pending_terminal: TerminalEvent | None = None
        self.generation = 0
        self._busy = False

    @property
    def run(self) -> RunState:
        return self.matchmaker.run

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def skip_allowed(self) -> bool:
        """Skipping is disabled while a Gauntlet or Champion run is active."""
        return self.mode == "swiss" or not self.run.active

    def _is_stale(self, generation: int) -> bool:
        if generation != self.generation:
            logger.debug("stale_response_discarded", generation=generation, current=self.generation)
            return True
        return False

    def _invalidate(self) -> None:
        self.generation += 1
        self.matchmaker.reset()
        self.current_pair = None
        self.pending_terminal = None

    async def start(self) -> PairSelection | None:
        """Load the first pair."""
        return await self.load_next_pair()

    async def load_next_pair(self) -> PairSelection | None:
        """Request the next pair and hand it (or the run's end) to the view.

        Returns:
            The applied selection, or None when nothing was shown because of
            an error or a superseded generation.
        """
        generation = self.generation
        mode = self.mode

        try:
            pool = await self.matchmaker.fetch_pool(self.entity_filter)
        except PoolTooSmallError as e:
            if not self._is_stale(generation):
                self.current_pair = None
                logger.warning("pool_too_small", kind=e.kind, available=e.available)
                self.view.on_pool_too_small(str(e))
            return None
        except (RepositoryError, ConfigurationError) as e:
            if not self._is_stale(generation):
                self.current_pair = None
                logger.error("pair_load_failed", mode=mode, error=str(e))
                self.view.on_error(str(e), retryable=isinstance(e, RepositoryError))
            return None

        if self._is_stale(generation):
            return None

        selection = self.matchmaker.select(mode, pool)
        self.matchmaker.commit(selection)

        pair = selection.pair
        if pair is None:
            terminal = selection.terminal
            if terminal is not None:
                # Bottom placements are decided here rather than by a pick
                await self._finish_run(terminal, terminal.kind == "placement", generation)
            return selection

        self.current_pair = pair
        logger.info("pair_ready", mode=mode, ids=pair.ids, ranks=(pair.left_rank, pair.right_rank))
        self.view.on_pair_ready(pair, self.matchmaker.streak_for(mode, pair))
        return selection

    async def choose(self, winner_id: str) -> bool:
        """Handle the user picking ``winner_id`` from the current pair.

        Returns:
            True if the pick was applied, False if it was ignored.
        """
        if self._busy:
            logger.debug("reentrant_request_ignored", action="choose", winner=winner_id)
            return False
        pair = self.current_pair
        if pair is None or self.pending_terminal is not None or winner_id not in pair.ids:
            logger.debug("choice_ignored", winner=winner_id)
            return False

        self._busy = True
        try:
            await self._apply_pick(pair, winner_id)
        finally:
            self._busy = False
        return True

    async def _apply_pick(self, pair: ComparisonPair, winner_id: str) -> None:
        generation = self.generation
        mode = self.mode
        winner = pair.entity(winner_id)
        loser = pair.other(winner_id)
        winner_role, loser_role = self.matchmaker.roles(mode, winner.id, loser.id)

        outcome = await self.reporter.report(
            winner, loser, mode, winner_role, loser_role, pair.rank_of(loser.id)
        )
        if self._is_stale(generation):
            return

        self.current_pair = None
        transition = self.matchmaker.record_pick(mode, pair, winner.id, outcome.new_winner_rating)
        if transition.dethroned is not None:
            await self.reporter.place(
                transition.dethroned, place_below(outcome.new_winner_rating)
            )
        if transition.terminal is not None:
            await self._finish_run(transition.terminal, True, generation)
            return

        await self.load_next_pair()

    async def _finish_run(self, event: TerminalEvent, persist: bool, generation: int) -> None:
        if persist:
            await self.reporter.place(event.entity, event.rating)
        if self._is_stale(generation):
            return
        self.current_pair = None
        self.pending_terminal = event
        logger.info(
            "run_finished",
            kind=event.kind,
            entity=event.entity.id,
            rank=event.rank,
            rating=event.rating,
            streak=event.streak,
        )
        self.view.on_terminal_event(event)

    async def skip(self) -> bool:
        """Show a different pair without rating the current one.

        Returns:
            True if a new pair was requested, False if the skip was ignored.
        """
        if self._busy:
            logger.debug("reentrant_request_ignored", action="skip")
            return False
        if not self.skip_allowed or self.pending_terminal is not None:
            logger.debug("skip_ignored", mode=self.mode, run_active=self.run.active)
            return False

        self._busy = True
        try:
            await self.load_next_pair()
        finally:
            self._busy = False
        return True

    async def set_mode(self, mode: Mode) -> bool:
        """Switch modes, abandoning any run in progress.

        Selecting the mode that is already active changes nothing.

        Returns:
            True if the mode changed.
        """
        if mode not in MODES:
            msg = f"Unknown mode: {mode}"
            raise ValueError(msg)
        if mode == self.mode:
            return False

        logger.info("mode_changed", old=self.mode, new=mode)
        self.mode = mode
        self._invalidate()
        await self.load_next_pair()
        return True

    async def apply_filter(self, entity_filter: EntityFilter) -> None:
        """Replace the filter; the current run's ranks no longer apply."""
        logger.info("filter_applied", filter=entity_filter.model_dump(exclude_defaults=True))
        self.entity_filter = entity_filter
        self._invalidate()
        await self.load_next_pair()

    async def reset_filter(self) -> None:
        """Restore the default filter."""
        await self.apply_filter(EntityFilter())

    async def acknowledge(self) -> bool:
        """Dismiss a victory or placement screen and start over.

        Returns:
            True if a terminal event was pending.
        """
        if self.pending_terminal is None:
            return False
        self._invalidate()
        await self.load_next_pair()
        return True

    async def retry(self) -> PairSelection | None:
        """Retry loading after a read failure."""
        if self._busy:
            return None
        return await self.load_next_pair()
