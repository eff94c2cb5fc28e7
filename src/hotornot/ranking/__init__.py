"""Ranking module for HotOrNot.

Provides the Elo arithmetic and placement rules used by every matchmaking mode.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hotornot.ranking.elo import (
    BOTTOM_RATING,
    RatingOutcome,
    calculate_expected_win_chance,
    compute_outcome,
    place_above,
    place_below,
    placement_rank,
)

if TYPE_CHECKING:
    from hotornot.core.config import Mode, RatingConfig


def compute_outcome_for(
    config: RatingConfig,
    mode: Mode,
    winner_rating: int,
    loser_rating: int,
    winner_active: bool,
    loser_active: bool,
    loser_rank: int | None = None,
) -> RatingOutcome:
    """Compute a match outcome with the configured K-factor and scale.

    Args:
        config: Rating configuration.
        mode: Matchmaking mode.
        winner_rating: Winner's rating before the match.
        loser_rating: Loser's rating before the match.
        winner_active: Whether the winner may change rating.
        loser_active: Whether the loser may change rating.
        loser_rank: Loser's rank at selection time.

    Returns:
        Computed outcome.
    """
    return compute_outcome(
        mode,
        winner_rating,
        loser_rating,
        winner_active=winner_active,
        loser_active=loser_active,
        loser_rank=loser_rank,
        k_factor=config.k_factor,
        scale=config.scale,
    )


__all__ = [
    "BOTTOM_RATING",
    "RatingOutcome",
    "calculate_expected_win_chance",
    "compute_outcome",
    "compute_outcome_for",
    "place_above",
    "place_below",
    "placement_rank",
]
