from .pairing import (
    ComparisonPair,
    Matchmaker,
    PairSelection,
    Pool,
    RunState,
    RunTransition,
    StreakInfo,
    TerminalEvent,
    select_climb,
    select_fall,
    select_run_opener,
    select_swiss_pair,
)
from .reporter import MatchOutcomeReporter, StatsCollector
from .service import ComparisonSession, ComparisonView

__all__ = [
    "ComparisonPair",
    "ComparisonSession",
    "ComparisonView",
    "MatchOutcomeReporter",
    "Matchmaker",
    "PairSelection",
    "Pool",
    "RunState",
    "RunTransition",
    "StatsCollector",
    "StreakInfo",
    "TerminalEvent",
    "select_climb",
    "select_fall",
    "select_run_opener",
    "select_swiss_pair",
]
