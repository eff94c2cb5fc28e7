"""HotOrNot for Stash.

Rank performers, scenes or images through head-to-head picks, with Swiss,
Gauntlet and Champion matchmaking and Elo updates to rating100.
"""

from hotornot.services.match import ComparisonSession, Matchmaker, MatchOutcomeReporter

__version__ = "0.3.0"
__all__ = [
    "ComparisonSession",
    "MatchOutcomeReporter",
    "Matchmaker",
    "__version__",
]
