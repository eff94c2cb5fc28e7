"""Translate entity filters into Stash GraphQL filters and in-memory predicates."""

from __future__ import annotations

from datetime import date
from typing import Any

from hotornot.core.config import EntityFilter, EntityKind
from hotornot.models import Entity


def _years_before(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 on a non-leap target year
        return today.replace(year=today.year - years, day=28)


def _rating_criterion(entity_filter: EntityFilter) -> dict[str, Any] | None:
    low, high = entity_filter.min_rating, entity_filter.max_rating
    if low is not None and high is not None:
        return {"value": low, "value2": high, "modifier": "BETWEEN"}
    if low is not None:
        return {"value": low, "modifier": "GREATER_THAN"}
    if high is not None:
        return {"value": high, "modifier": "LESS_THAN"}
    return None


def _birthdate_criterion(entity_filter: EntityFilter, today: date) -> dict[str, Any] | None:
    # Oldest allowed birthdate comes from max_age, youngest from min_age
    oldest = (
        _years_before(today, entity_filter.max_age).isoformat()
        if entity_filter.max_age is not None
        else None
    )
    youngest = (
        _years_before(today, entity_filter.min_age).isoformat()
        if entity_filter.min_age is not None
        else None
    )
    if oldest and youngest:
        return {"value": oldest, "value2": youngest, "modifier": "BETWEEN"}
    if oldest:
        return {"value": oldest, "modifier": "GREATER_THAN"}
    if youngest:
        return {"value": youngest, "modifier": "LESS_THAN"}
    return None


def to_graphql_filter(
    entity_filter: EntityFilter, kind: EntityKind, today: date | None = None
) -> dict[str, Any]:
    """Build the Stash ``*_filter`` argument for an entity filter.

    Performers get every predicate. Scenes and images only honour the rating
    range, since the remaining predicates describe people.

    Args:
        entity_filter: Filter chosen by the user.
        kind: Entity type being queried.
        today: Reference date for age ranges (defaults to today).

    Returns:
        GraphQL filter object.
    """
    result: dict[str, Any] = {}

    rating = _rating_criterion(entity_filter)
    if rating:
        result["rating100"] = rating

    if kind != "performers":
        return result

    if entity_filter.genders:
        result["gender"] = {"value_list": list(entity_filter.genders), "modifier": "INCLUDES"}
    if entity_filter.ethnicity:
        result["ethnicity"] = {"value": entity_filter.ethnicity, "modifier": "INCLUDES"}
    if entity_filter.country:
        result["country"] = {"value": entity_filter.country, "modifier": "INCLUDES"}

    birthdate = _birthdate_criterion(entity_filter, today or date.today())
    if birthdate:
        result["birthdate"] = birthdate

    if entity_filter.name_search:
        result["name"] = {"value": entity_filter.name_search, "modifier": "INCLUDES"}
    if entity_filter.require_image:
        result["NOT"] = {"is_missing": "image"}

    return result


def _contains(value: Any, needle: str) -> bool:
    return value is not None and needle.lower() in str(value).lower()


def _rating_matches(entity_filter: EntityFilter, entity: Entity) -> bool:
    rating = entity.rating100
    low, high = entity_filter.min_rating, entity_filter.max_rating
    if low is None and high is None:
        return True
    if rating is None:
        return False
    if low is not None and high is not None:
        return low <= rating <= high
    if low is not None:
        return rating > low
    return rating < high


def _birthdate_matches(entity_filter: EntityFilter, entity: Entity, today: date) -> bool:
    criterion = _birthdate_criterion(entity_filter, today)
    if criterion is None:
        return True
    raw = entity.attributes.get("birthdate")
    if not raw:
        return False
    birthdate = raw.isoformat() if isinstance(raw, date) else str(raw)
    if criterion["modifier"] == "BETWEEN":
        return criterion["value"] <= birthdate <= criterion["value2"]
    if criterion["modifier"] == "GREATER_THAN":
        return birthdate > criterion["value"]
    return birthdate < criterion["value"]


def matches(entity_filter: EntityFilter, entity: Entity, today: date | None = None) -> bool:
    """Evaluate a filter against an in-memory entity.

    Mirrors the semantics Stash applies to ``to_graphql_filter`` output, so
    the in-memory repository resolves the same pool as a live server.
    """
    if not _rating_matches(entity_filter, entity):
        return False
    if entity.kind != "performers":
        return True

    attrs = entity.attributes
    if entity_filter.genders and attrs.get("gender") not in entity_filter.genders:
        return False
    if entity_filter.ethnicity and not _contains(attrs.get("ethnicity"), entity_filter.ethnicity):
        return False
    if entity_filter.country and not _contains(attrs.get("country"), entity_filter.country):
        return False
    if not _birthdate_matches(entity_filter, entity, today or date.today()):
        return False
    if entity_filter.name_search and not _contains(entity.name, entity_filter.name_search):
        return False
    return not (entity_filter.require_image and not attrs.get("image_path"))
