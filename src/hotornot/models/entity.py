"""Catalogue entities compared by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from hotornot.core.config import EntityKind

DEFAULT_RATING = 50


@dataclass
class Entity:
    """A performer, scene or image as seen by the ranking engine.

    Attributes:
        id: Stash identifier.
        rating100: Stored rating (1-100), None when the entity is unrated.
        name: Display name or title.
        kind: Entity type the id belongs to.
        attributes: Display and filter metadata (gender, country, birthdate,
            image_path, ...). The engine itself never reads it.
    """

    id: str
    rating100: int | None = None
    name: str = ""
    kind: EntityKind = "performers"
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def rating(self) -> int:
        """Effective rating, defaulting unrated entities to 50."""
        return self.rating100 if self.rating100 is not None else DEFAULT_RATING

    def with_rating(self, rating: int) -> Entity:
        """Return a copy carrying a new rating."""
        return replace(self, rating100=rating)


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a best-effort rating write.

    Attributes:
        entity_id: Entity whose rating was written.
        rating: Rating that was sent.
        ok: Whether the write succeeded.
        error: Failure reason when ok is False.
    """

    entity_id: str
    rating: int
    ok: bool = True
    error: str | None = None
