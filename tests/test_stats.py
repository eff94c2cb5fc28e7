"""Tests for the participation statistics repository."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlmodel import create_engine

from hotornot.services.match import StatsCollector
from hotornot.services.storage import StatsRepository

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def stats(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'stats.db'}")
    return StatsRepository(engine, kind="performers")


def test_satisfies_collector_protocol(stats):
    """Test the repository plugs into the reporter."""
    assert isinstance(stats, StatsCollector)


@pytest.mark.asyncio
async def test_unknown_entity_zeroed(stats):
    """Test an entity that never played reports zeros."""
    result = await stats.get_stats("404")
    assert result["matches"] == 0
    assert result["wins"] == 0
    assert result["last_match_at"] is None


@pytest.mark.asyncio
async def test_streaks(stats):
    """Test win and loss streaks are tracked with signs."""
    for i, outcome in enumerate(["win", "win", "win", "loss", "loss"]):
        await stats.record_participation("1", outcome, T0 + timedelta(minutes=i))

    result = await stats.get_stats("1")
    assert result["matches"] == 5
    assert result["wins"] == 3
    assert result["losses"] == 2
    assert result["current_streak"] == -2
    assert result["best_streak"] == 3


@pytest.mark.asyncio
async def test_participation_only(stats):
    """Test a defender record counts the match but not the result."""
    await stats.record_participation("1", "win", T0)
    await stats.record_participation("1", None, T0 + timedelta(minutes=1))

    result = await stats.get_stats("1")
    assert result["matches"] == 2
    assert result["wins"] == 1
    assert result["losses"] == 0
    assert result["current_streak"] == 1
    assert result["last_match_at"].replace(tzinfo=UTC) == T0 + timedelta(minutes=1)


@pytest.mark.asyncio
async def test_unknown_outcome_rejected(stats):
    """Test outcomes other than win, loss or None are refused."""
    with pytest.raises(ValueError, match="Unknown outcome"):
        await stats.record_participation("1", "draw", T0)


@pytest.mark.asyncio
async def test_leaderboard_order(stats):
    """Test the leaderboard orders by wins, then fewest losses."""
    await stats.record_participation("a", "win", T0)
    await stats.record_participation("a", "loss", T0)
    await stats.record_participation("b", "win", T0)
    await stats.record_participation("c", "win", T0)
    await stats.record_participation("c", "win", T0)

    board = await stats.get_leaderboard()
    assert [row.entity_id for row in board] == ["c", "b", "a"]

    top = await stats.get_leaderboard(limit=1)
    assert [row.entity_id for row in top] == ["c"]


@pytest.mark.asyncio
async def test_kinds_kept_apart(tmp_path):
    """Test scene and performer stats with the same id do not mix."""
    engine = create_engine(f"sqlite:///{tmp_path / 'stats.db'}")
    performers = StatsRepository(engine, kind="performers")
    scenes = StatsRepository(engine, kind="scenes")

    await performers.record_participation("1", "win", T0)

    assert (await performers.get_stats("1"))["wins"] == 1
    assert (await scenes.get_stats("1"))["matches"] == 0
    assert await scenes.get_leaderboard() == []
