"""Elo rating calculations on the 1-100 rating100 scale."""

from __future__ import annotations

import math
from dataclasses import dataclass

from hotornot.core.config import MAX_RATING, MIN_RATING, Mode

DEFAULT_K_FACTOR = 8
DEFAULT_SCALE = 40.0
BOTTOM_RATING = MIN_RATING


@dataclass(frozen=True)
class RatingOutcome:
    """Ratings after a single comparison.

    Attributes:
        new_winner_rating: Winner's rating after the match.
        new_loser_rating: Loser's rating after the match.
        winner_delta: Change applied to the winner (>= 0).
        loser_delta: Change applied to the loser (<= 0).
    """

    new_winner_rating: int
    new_loser_rating: int
    winner_delta: int
    loser_delta: int


def calculate_expected_win_chance(
    rating_a: float, rating_b: float, scale: float = DEFAULT_SCALE
) -> float:
    """Calculate expected win probability for A against B.

    Uses the logistic Elo curve with a compressed scale:
    E_A = 1 / (1 + 10^((R_B - R_A) / scale))

    Args:
        rating_a: Rating of A.
        rating_b: Rating of B.
        scale: Rating difference for 10:1 odds (40 on the 1-100 scale).

    Returns:
        Probability that A wins (0.0 to 1.0).
    """
    return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / scale))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(value: int) -> int:
    return min(MAX_RATING, max(MIN_RATING, value))


def compute_outcome(
    mode: Mode,
    winner_rating: int,
    loser_rating: int,
    winner_active: bool = True,
    loser_active: bool = True,
    loser_rank: int | None = None,
    k_factor: int = DEFAULT_K_FACTOR,
    scale: float = DEFAULT_SCALE,
) -> RatingOutcome:
    """Compute new ratings after the winner beat the loser.

    Swiss matches are symmetric Elo. In gauntlet and champion runs only the
    active participant (the champion or the falling entity) moves; defenders
    are fixed benchmarks, except a rank #1 defender that loses drops exactly
    one point.

    Args:
        mode: Matchmaking mode the match was played in.
        winner_rating: Winner's rating before the match.
        loser_rating: Loser's rating before the match.
        winner_active: Whether the winner is the run's active participant.
        loser_active: Whether the loser is the run's active participant.
        loser_rank: Loser's 1-based rank when the pair was selected.
        k_factor: Maximum points moved by the match.
        scale: Logistic scale of the expectation curve.

    Returns:
        RatingOutcome with clamped ratings and the applied deltas.
    """
    expected_winner = calculate_expected_win_chance(winner_rating, loser_rating, scale)
    gain = max(1, _round_half_up(k_factor * (1 - expected_winner)))
    loss = max(1, _round_half_up(k_factor * expected_winner))

    if mode == "swiss":
        winner_gain, loser_loss = gain, loss
    else:
        winner_gain = gain if winner_active else 0
        loser_loss = loss if loser_active else 0
        if loser_rank == 1 and not loser_active:
            loser_loss = 1

    new_winner = _clamp(winner_rating + winner_gain)
    new_loser = _clamp(loser_rating - loser_loss)

    return RatingOutcome(
        new_winner_rating=new_winner,
        new_loser_rating=new_loser,
        winner_delta=new_winner - winner_rating,
        loser_delta=new_loser - loser_rating,
    )


def place_below(conqueror_rating: int) -> int:
    """Rating for a dethroned champion: one point under whoever beat it."""
    return max(MIN_RATING, conqueror_rating - 1)


def place_above(opponent_rating: int) -> int:
    """Rating for a falling entity that found its floor: one over its opponent."""
    return min(MAX_RATING, opponent_rating + 1)


def placement_rank(opponent_rank: int | None) -> int:
    """Rank for a falling entity that beat the opponent at ``opponent_rank``."""
    return max(1, (opponent_rank or 1) - 1)
