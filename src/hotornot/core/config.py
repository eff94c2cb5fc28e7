"""Configuration schemas and loading for HotOrNot."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from hotornot.core.errors import ValidationError

EntityKind = Literal["performers", "scenes", "images"]
Mode = Literal["swiss", "gauntlet", "champion"]

MODES: tuple[Mode, ...] = ("swiss", "gauntlet", "champion")
MIN_RATING = 1
MAX_RATING = 100


class EntityFilter(BaseModel):
    """Inclusion predicates applied when resolving the comparison pool.

    A filter is never mutated; the session replaces it as a whole.

    Attributes:
        genders: Gender values to include. Empty means every gender.
        ethnicity: Substring the ethnicity must contain.
        country: Substring the country must contain.
        min_age: Minimum age in years.
        max_age: Maximum age in years.
        min_rating: Lower bound on rating100.
        max_rating: Upper bound on rating100.
        name_search: Substring the name must contain.
        require_image: Only include entities with an image.
    """

    model_config = ConfigDict(frozen=True)

    genders: tuple[str, ...] = ("FEMALE",)
    ethnicity: str | None = None
    country: str | None = None
    min_age: int | None = Field(default=None, ge=0)
    max_age: int | None = Field(default=None, ge=0)
    min_rating: int | None = Field(default=None, ge=MIN_RATING, le=MAX_RATING)
    max_rating: int | None = Field(default=None, ge=MIN_RATING, le=MAX_RATING)
    name_search: str | None = None
    require_image: bool = True

    @model_validator(mode="after")
    def validate_ranges(self) -> EntityFilter:
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError("min_age cannot be greater than max_age")
        if (
            self.min_rating is not None
            and self.max_rating is not None
            and self.min_rating > self.max_rating
        ):
            raise ValueError("min_rating cannot be greater than max_rating")
        return self


class RatingConfig(BaseModel):
    """ELO parameters for rating updates.

    Attributes:
        k_factor: Maximum points moved by a single match.
        scale: Rating difference that makes the favourite ten times likelier
            to win. 40 suits the 1-100 rating range.
    """

    k_factor: int = Field(default=8, ge=1)
    scale: float = Field(default=40.0, gt=0)


class MatchmakingConfig(BaseModel):
    """Pair selection settings."""

    swiss_window: int = Field(default=15, ge=0)
    random_sample_size: int = Field(default=100, ge=2)
    seed: int | None = None


class StashConfig(BaseModel):
    """Connection settings for the Stash GraphQL endpoint."""

    url: str = "http://localhost:9999/graphql"
    api_key: str | None = None
    timeout_seconds: float = Field(default=30.0, gt=0)

    def get_api_key(self) -> str | None:
        """Get API key from config or environment.

        Stash instances without authentication need no key, so a missing key
        is not an error here.
        """
        return self.api_key or os.environ.get("STASH_API_KEY") or None


class HotOrNotConfig(BaseModel):
    """Complete HotOrNot configuration."""

    entity_kind: EntityKind = "performers"
    mode: Mode = "swiss"
    filter: EntityFilter = Field(default_factory=EntityFilter)
    rating: RatingConfig = Field(default_factory=RatingConfig)
    matchmaking: MatchmakingConfig = Field(default_factory=MatchmakingConfig)
    stash: StashConfig = Field(default_factory=StashConfig)
    stats_db: str | None = "./hotornot_stats.duckdb"


def load_config(path: str | Path) -> HotOrNotConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Returns:
        Validated HotOrNotConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        data = yaml.safe_load(f)

    if data is not None and not isinstance(data, dict):
        raise ValidationError("<root>", f"{config_path} must contain a YAML mapping.")

    try:
        return HotOrNotConfig.model_validate(data or {})
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "<root>"
        raise ValidationError(field, first["msg"]) from e


def clamp_rating(value: float) -> int:
    """Round and clamp a rating into the 1-100 range."""
    return int(min(MAX_RATING, max(MIN_RATING, round(value))))
