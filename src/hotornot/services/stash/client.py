"""Entity repositories: Stash GraphQL client and an in-memory fake."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Any

import httpx
import structlog
import yaml

from hotornot.core.config import EntityFilter, EntityKind, StashConfig, clamp_rating
from hotornot.core.errors import APIKeyError, RepositoryError
from hotornot.models import Entity, WriteResult
from hotornot.services.stash.filters import matches, to_graphql_filter

logger = structlog.get_logger()

_FAKE_ENTITIES_PATH = Path(__file__).parent / "fake_entities.yaml"


def sort_by_rating(entities: list[Entity]) -> list[Entity]:
    """Sort entities by effective rating descending, ties by ascending id.

    Numeric ids compare numerically so that "9" ranks before "10".
    """

    def _key(entity: Entity) -> tuple[int, int, int, str]:
        if entity.id.isdigit():
            return (-entity.rating, 0, int(entity.id), "")
        return (-entity.rating, 1, 0, entity.id)

    return sorted(entities, key=_key)


class EntityRepository(ABC):
    """Abstract data access for the entities being ranked."""

    kind: EntityKind = "performers"

    @abstractmethod
    async def count(self, entity_filter: EntityFilter) -> int:
        """Count entities matching the filter."""

    @abstractmethod
    async def list_sorted(
        self, entity_filter: EntityFilter, limit: int | None = None
    ) -> list[Entity]:
        """List matching entities sorted by rating descending.

        Args:
            entity_filter: Filter to apply.
            limit: Maximum number of entities, None for all.

        Returns:
            Entities, highest rated first.
        """

    @abstractmethod
    async def list_random_sample(self, entity_filter: EntityFilter, limit: int) -> list[Entity]:
        """List up to ``limit`` matching entities in random order."""

    @abstractmethod
    async def update_rating(self, entity_id: str, rating: int) -> WriteResult:
        """Write a new rating100 for one entity.

        Never raises for transport or server failures; the returned
        WriteResult carries the error instead.
        """

    async def close(self) -> None:  # noqa: B027
        """Close any resources. Override if needed."""


def _load_fake_entities() -> dict[str, Any]:
    """Load the bundled demo catalogue (cached after first call)."""
    if not hasattr(_load_fake_entities, "_cache"):
        with _FAKE_ENTITIES_PATH.open(encoding="utf-8") as f:
            _load_fake_entities._cache = yaml.safe_load(f)
    return _load_fake_entities._cache


class InMemoryRepository(EntityRepository):
    """Dict-backed repository for tests and dry runs.

    Attributes:
        entities: Stored entities keyed by id.
        writes: Every rating write, in order, as (entity_id, rating).
        fail_reads: Raise RepositoryError from read calls when True.
        fail_writes: Return failed WriteResults when True.
    """

    def __init__(
        self,
        entities: list[Entity] | None = None,
        kind: EntityKind = "performers",
        seed: int | None = None,
        today: date | None = None,
    ) -> None:
        self.kind = kind
        self.entities: dict[str, Entity] = {e.id: e for e in entities or []}
        self.writes: list[tuple[str, int]] = []
        self.fail_reads = False
        self.fail_writes = False
        self._rng = random.Random(seed)  # noqa: S311
        self._today = today

    @classmethod
    def from_demo_catalogue(cls, kind: EntityKind = "performers", seed: int | None = None):
        """Build a repository from the bundled demo catalogue."""
        data = _load_fake_entities()
        entities = [
            Entity(
                id=str(item["id"]),
                rating100=item.get("rating100"),
                name=item.get("name", ""),
                kind=kind,
                attributes=dict(item.get("attributes", {})),
            )
            for item in data.get(kind, [])
        ]
        return cls(entities, kind=kind, seed=seed)

    def _matching(self, entity_filter: EntityFilter) -> list[Entity]:
        if self.fail_reads:
            raise RepositoryError("query", "in-memory repository set to fail")
        return [e for e in self.entities.values() if matches(entity_filter, e, self._today)]

    async def count(self, entity_filter: EntityFilter) -> int:
        return len(self._matching(entity_filter))

    async def list_sorted(
        self, entity_filter: EntityFilter, limit: int | None = None
    ) -> list[Entity]:
        ranked = sort_by_rating(self._matching(entity_filter))
        return ranked if limit is None else ranked[:limit]

    async def list_random_sample(self, entity_filter: EntityFilter, limit: int) -> list[Entity]:
        pool = self._matching(entity_filter)
        self._rng.shuffle(pool)
        return pool[:limit]

    async def update_rating(self, entity_id: str, rating: int) -> WriteResult:
        rating = clamp_rating(rating)
        if self.fail_writes:
            return WriteResult(entity_id, rating, ok=False, error="write failure")
        if entity_id not in self.entities:
            return WriteResult(entity_id, rating, ok=False, error="unknown entity")
        self.entities[entity_id] = self.entities[entity_id].with_rating(rating)
        self.writes.append((entity_id, rating))
        return WriteResult(entity_id, rating)


# Per-kind GraphQL vocabulary
_QUERIES: dict[str, dict[str, str]] = {
    "performers": {
        "find": "findPerformers",
        "items": "performers",
        "filter_arg": "performer_filter",
        "filter_type": "PerformerFilterType",
        "update": "performerUpdate",
        "update_input": "PerformerUpdateInput",
        "fields": "id name rating100 gender ethnicity country birthdate image_path",
    },
    "scenes": {
        "find": "findScenes",
        "items": "scenes",
        "filter_arg": "scene_filter",
        "filter_type": "SceneFilterType",
        "update": "sceneUpdate",
        "update_input": "SceneUpdateInput",
        "fields": "id title rating100 paths { screenshot } files { path duration }",
    },
    "images": {
        "find": "findImages",
        "items": "images",
        "filter_arg": "image_filter",
        "filter_type": "ImageFilterType",
        "update": "imageUpdate",
        "update_input": "ImageUpdateInput",
        "fields": "id title rating100 paths { thumbnail } files { path }",
    },
}

_NAME_FIELDS = ("id", "name", "title", "rating100")


def _entity_from_payload(kind: EntityKind, item: dict[str, Any]) -> Entity:
    label = {"performers": "Performer", "scenes": "Scene", "images": "Image"}[kind]
    name = item.get("name") or item.get("title") or f"{label} #{item['id']}"
    attributes = {k: v for k, v in item.items() if k not in _NAME_FIELDS}
    return Entity(
        id=str(item["id"]),
        rating100=item.get("rating100"),
        name=name,
        kind=kind,
        attributes=attributes,
    )


class StashRepository(EntityRepository):
    """Entity repository backed by a Stash server's GraphQL API."""

    def __init__(
        self,
        config: StashConfig,
        kind: EntityKind = "performers",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize Stash repository.

        Args:
            config: Stash connection settings.
            kind: Entity type this repository serves.
            client: Optional preconfigured HTTP client (tests inject a
                MockTransport-backed one).
        """
        self.config = config
        self.kind = kind
        self._q = _QUERIES[kind]
        headers = {"Content-Type": "application/json"}
        api_key = config.get_api_key()
        if api_key:
            headers["ApiKey"] = api_key
        self.client = client or httpx.AsyncClient(timeout=config.timeout_seconds)
        self._headers = headers

    async def _execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL operation and return its ``data`` object.

        Raises:
            APIKeyError: If Stash answers 401.
            RepositoryError: On transport, HTTP or GraphQL errors.
        """
        try:
            response = await self.client.post(
                self.config.url,
                headers=self._headers,
                json={"query": query, "variables": variables},
            )
        except httpx.HTTPError as e:
            raise RepositoryError("graphql request", str(e) or type(e).__name__) from e

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise APIKeyError()
        try:
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPStatusError, ValueError) as e:
            raise RepositoryError("graphql request", str(e)) from e

        if payload.get("errors"):
            message = payload["errors"][0].get("message", "unknown GraphQL error")
            logger.error("graphql_error", errors=payload["errors"])
            raise RepositoryError("graphql query", message)
        return payload.get("data") or {}

    def _find_query(self, with_items: bool) -> str:
        q = self._q
        body = f"{q['items']} {{ {q['fields']} }}" if with_items else "count"
        return (
            f"query Find($entity_filter: {q['filter_type']}, $filter: FindFilterType) {{\n"
            f"  {q['find']}({q['filter_arg']}: $entity_filter, filter: $filter) {{ {body} }}\n"
            f"}}"
        )

    async def _find(
        self, entity_filter: EntityFilter, find_filter: dict[str, Any], with_items: bool = True
    ) -> dict[str, Any]:
        data = await self._execute(
            self._find_query(with_items),
            {
                "entity_filter": to_graphql_filter(entity_filter, self.kind),
                "filter": find_filter,
            },
        )
        return data.get(self._q["find"]) or {}

    async def count(self, entity_filter: EntityFilter) -> int:
        result = await self._find(entity_filter, {"per_page": 0}, with_items=False)
        return int(result.get("count", 0))

    async def list_sorted(
        self, entity_filter: EntityFilter, limit: int | None = None
    ) -> list[Entity]:
        result = await self._find(
            entity_filter,
            {"per_page": -1 if limit is None else limit, "sort": "rating", "direction": "DESC"},
        )
        items = result.get(self._q["items"]) or []
        entities = [_entity_from_payload(self.kind, item) for item in items]
        # Stash leaves the order of equal ratings unspecified
        return sort_by_rating(entities)

    async def list_random_sample(self, entity_filter: EntityFilter, limit: int) -> list[Entity]:
        result = await self._find(entity_filter, {"per_page": limit, "sort": "random"})
        items = result.get(self._q["items"]) or []
        return [_entity_from_payload(self.kind, item) for item in items]

    async def update_rating(self, entity_id: str, rating: int) -> WriteResult:
        rating = clamp_rating(rating)
        q = self._q
        mutation = (
            f"mutation Update($input: {q['update_input']}!) {{\n"
            f"  {q['update']}(input: $input) {{ id rating100 }}\n"
            f"}}"
        )
        try:
            await self._execute(mutation, {"input": {"id": entity_id, "rating100": rating}})
        except (RepositoryError, APIKeyError) as e:
            logger.warning("rating_write_failed", entity_id=entity_id, rating=rating, error=str(e))
            return WriteResult(entity_id, rating, ok=False, error=str(e))

        logger.info("rating_updated", kind=self.kind, entity_id=entity_id, rating=rating)
        return WriteResult(entity_id, rating)

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()


def create_repository(
    config: StashConfig,
    kind: EntityKind = "performers",
    dry_run: bool = False,
    seed: int | None = None,
) -> EntityRepository:
    """Create the appropriate repository for the settings.

    Args:
        config: Stash connection settings.
        kind: Entity type to rank.
        dry_run: Use the in-memory demo catalogue instead of a server.
        seed: Random seed for the demo repository.

    Returns:
        EntityRepository instance.
    """
    if dry_run:
        logger.info("using_demo_repository", kind=kind, seed=seed)
        return InMemoryRepository.from_demo_catalogue(kind=kind, seed=seed)

    return StashRepository(config, kind=kind)
