"""Core configuration and errors for HotOrNot."""

from hotornot.core.config import (
    MAX_RATING,
    MIN_RATING,
    MODES,
    EntityFilter,
    EntityKind,
    HotOrNotConfig,
    MatchmakingConfig,
    Mode,
    RatingConfig,
    StashConfig,
    clamp_rating,
    load_config,
)
from hotornot.core.errors import (
    APIKeyError,
    ConfigurationError,
    HotOrNotError,
    PoolTooSmallError,
    RepositoryError,
    ValidationError,
)

__all__ = [
    "MAX_RATING",
    "MIN_RATING",
    "MODES",
    "EntityFilter",
    "EntityKind",
    "HotOrNotConfig",
    "MatchmakingConfig",
    "Mode",
    "RatingConfig",
    "StashConfig",
    "clamp_rating",
    "load_config",
    "APIKeyError",
    "ConfigurationError",
    "HotOrNotError",
    "PoolTooSmallError",
    "RepositoryError",
    "ValidationError",
]
