"""Tests for the Stash GraphQL repository and the in-memory repository."""

import json

import httpx
import pytest

from hotornot.core.config import EntityFilter, StashConfig
from hotornot.core.errors import APIKeyError, RepositoryError
from hotornot.models import Entity
from hotornot.services.stash import (
    InMemoryRepository,
    StashRepository,
    create_repository,
    sort_by_rating,
)

ANY = EntityFilter(genders=(), require_image=False)


def _repository(handler, kind="performers", api_key=None):
    config = StashConfig(url="http://stash.test/graphql", api_key=api_key)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StashRepository(config, kind=kind, client=client)


def _performers_response(items):
    return httpx.Response(200, json={"data": {"findPerformers": {"performers": items}}})


class TestSortByRating:
    """Tests for pool ordering."""

    def test_ties_break_on_numeric_id(self):
        """Test equal ratings order by ascending numeric id."""
        entities = [
            Entity(id="10", rating100=50),
            Entity(id="9", rating100=50),
            Entity(id="3", rating100=70),
            Entity(id="4"),
        ]
        assert [e.id for e in sort_by_rating(entities)] == ["3", "4", "9", "10"]


class TestStashRepository:
    """Tests for StashRepository against a mock transport."""

    @pytest.mark.asyncio
    async def test_list_sorted(self):
        """Test the sorted query sends the filter and parses entities."""
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            return _performers_response(
                [
                    {"id": "7", "name": "Gia", "rating100": 55, "gender": "FEMALE"},
                    {"id": "2", "name": "Bea", "rating100": 85, "gender": "FEMALE"},
                    {"id": "9", "name": "Iris", "rating100": None, "gender": "FEMALE"},
                ]
            )

        repo = _repository(handler)
        entities = await repo.list_sorted(EntityFilter())
        await repo.close()

        assert [e.id for e in entities] == ["2", "7", "9"]
        assert entities[0].name == "Bea"
        assert entities[0].attributes["gender"] == "FEMALE"
        assert entities[2].rating == 50

        body = requests[0]
        assert "findPerformers" in body["query"]
        assert body["variables"]["filter"] == {
            "per_page": -1,
            "sort": "rating",
            "direction": "DESC",
        }
        assert body["variables"]["entity_filter"]["gender"]["value_list"] == ["FEMALE"]

    @pytest.mark.asyncio
    async def test_count(self):
        """Test counting asks for no items."""

        def handler(request):
            body = json.loads(request.content)
            assert body["variables"]["filter"] == {"per_page": 0}
            return httpx.Response(200, json={"data": {"findScenes": {"count": 12}}})

        repo = _repository(handler, kind="scenes")
        assert await repo.count(ANY) == 12

    @pytest.mark.asyncio
    async def test_random_sample(self):
        """Test the random sample uses Stash's random sort."""

        def handler(request):
            body = json.loads(request.content)
            assert body["variables"]["filter"] == {"per_page": 2, "sort": "random"}
            return httpx.Response(
                200,
                json={"data": {"findImages": {"images": [{"id": "201"}, {"id": "204"}]}}},
            )

        repo = _repository(handler, kind="images")
        entities = await repo.list_random_sample(ANY, 2)

        assert [e.id for e in entities] == ["201", "204"]
        assert entities[0].name == "Image #201"
        assert entities[0].kind == "images"

    @pytest.mark.asyncio
    async def test_api_key_header(self):
        """Test the API key is sent when configured."""
        seen = {}

        def handler(request):
            seen["key"] = request.headers.get("ApiKey")
            return _performers_response([])

        repo = _repository(handler, api_key="secret")
        await repo.list_sorted(ANY)
        assert seen["key"] == "secret"

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        """Test a 401 raises APIKeyError."""
        repo = _repository(lambda request: httpx.Response(401))
        with pytest.raises(APIKeyError):
            await repo.list_sorted(ANY)

    @pytest.mark.asyncio
    async def test_graphql_error(self):
        """Test GraphQL errors raise RepositoryError."""

        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "unknown field"}]})

        repo = _repository(handler)
        with pytest.raises(RepositoryError, match="unknown field"):
            await repo.list_sorted(ANY)

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Test connection failures raise RepositoryError."""

        def handler(request):
            raise httpx.ConnectError("connection refused")

        repo = _repository(handler)
        with pytest.raises(RepositoryError, match="connection refused"):
            await repo.count(ANY)

    @pytest.mark.asyncio
    async def test_server_error(self):
        """Test 5xx responses raise RepositoryError."""
        repo = _repository(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(RepositoryError):
            await repo.count(ANY)

    @pytest.mark.asyncio
    async def test_update_rating(self):
        """Test rating updates use the kind's mutation and clamp the value."""
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(
                200, json={"data": {"sceneUpdate": {"id": "101", "rating100": 100}}}
            )

        repo = _repository(handler, kind="scenes")
        result = await repo.update_rating("101", 104)

        assert result.ok is True
        assert result.rating == 100
        assert "sceneUpdate" in requests[0]["query"]
        assert requests[0]["variables"]["input"] == {"id": "101", "rating100": 100}

    @pytest.mark.asyncio
    async def test_update_rating_failure_returns_result(self):
        """Test write failures come back as a failed WriteResult."""
        repo = _repository(lambda request: httpx.Response(500))
        result = await repo.update_rating("1", 60)

        assert result.ok is False
        assert result.error


class TestInMemoryRepository:
    """Tests for the in-memory repository."""

    @pytest.mark.asyncio
    async def test_demo_catalogue(self):
        """Test the demo catalogue honours the default filter."""
        repo = InMemoryRepository.from_demo_catalogue()
        entities = await repo.list_sorted(EntityFilter())

        ids = [e.id for e in entities]
        assert "11" not in ids
        assert "12" not in ids
        assert ids[0] == "1"
        assert await repo.count(EntityFilter()) == len(ids)

    @pytest.mark.asyncio
    async def test_demo_scenes(self):
        """Test the demo catalogue serves scenes."""
        repo = InMemoryRepository.from_demo_catalogue(kind="scenes")
        entities = await repo.list_sorted(EntityFilter(), limit=3)
        assert [e.id for e in entities] == ["101", "102", "103"]

    @pytest.mark.asyncio
    async def test_update_unknown_entity(self):
        """Test writing an unknown id fails without raising."""
        repo = InMemoryRepository([Entity(id="1", rating100=50)])
        result = await repo.update_rating("2", 60)
        assert result.ok is False

    @pytest.mark.asyncio
    async def test_fail_reads(self):
        """Test read failures can be simulated."""
        repo = InMemoryRepository([Entity(id="1", rating100=50)])
        repo.fail_reads = True
        with pytest.raises(RepositoryError):
            await repo.list_sorted(ANY)

    def test_create_repository(self):
        """Test the factory picks the repository by dry-run flag."""
        assert isinstance(create_repository(StashConfig(), dry_run=True), InMemoryRepository)
        assert isinstance(create_repository(StashConfig()), StashRepository)
