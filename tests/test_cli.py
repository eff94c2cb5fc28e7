"""Tests for the command line interface."""

import pytest
import yaml
from rich.console import Console
from typer.testing import CliRunner

from hotornot import __version__
from hotornot.cli import ConsoleView, _next_mode, app
from hotornot.models import Entity
from hotornot.services.match import ComparisonPair, ComparisonView, StreakInfo, TerminalEvent

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({"mode": "gauntlet", "stats_db": None}))
    return path


def test_version():
    """Test --version prints the package version."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_info():
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0
    assert "hotornot rank" in result.stdout


def test_validate(config_path):
    """Test a valid config is summarised."""
    result = runner.invoke(app, ["validate", str(config_path)])
    assert result.exit_code == 0
    assert "Configuration is valid" in result.stdout
    assert "gauntlet" in result.stdout


def test_validate_missing_file(tmp_path):
    """Test a missing config exits with an error."""
    result = runner.invoke(app, ["validate", str(tmp_path / "nope.yaml")])
    assert result.exit_code == 1


def test_validate_invalid(tmp_path):
    """Test an invalid config exits with an error."""
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.dump({"mode": "knockout"}))
    result = runner.invoke(app, ["validate", str(path)])
    assert result.exit_code == 1


def test_leaderboard_dry_run(config_path):
    """Test the leaderboard lists the demo catalogue."""
    result = runner.invoke(app, ["leaderboard", str(config_path), "--dry-run", "--limit", "3"])
    assert result.exit_code == 0
    assert "Ava Lark" in result.stdout


def test_next_mode_cycles():
    assert _next_mode("swiss") == "gauntlet"
    assert _next_mode("gauntlet") == "champion"
    assert _next_mode("champion") == "swiss"


class TestConsoleView:
    """Tests for the terminal view."""

    def _view(self):
        console = Console(record=True, width=100)
        return ConsoleView(console), console

    def test_satisfies_protocol(self):
        view, _ = self._view()
        assert isinstance(view, ComparisonView)

    def test_pair_with_streak(self):
        """Test pairs render both sides and the champion's streak."""
        view, console = self._view()
        pair = ComparisonPair(
            Entity(id="1", rating100=70, name="Ava"), Entity(id="2", name="Bea"), 2, None
        )

        view.on_pair_ready(pair, StreakInfo("1", 3))

        text = console.export_text()
        assert view.state == "pair"
        assert "Ava" in text
        assert "Bea" in text
        assert "Streak: 3" in text
        assert "unranked" in text

    def test_terminal_and_errors(self):
        """Test terminal events and errors switch the view state."""
        view, console = self._view()

        view.on_terminal_event(
            TerminalEvent("placement", Entity(id="1", name="Ava"), rank=4, rating=31)
        )
        assert view.state == "terminal"
        assert "placed at #4" in console.export_text()

        view.on_error("boom", retryable=True)
        assert view.state == "error"
        view.on_error("bad key", retryable=False)
        assert view.state == "fatal"
        view.on_pool_too_small("Not enough performers")
        assert view.state == "pool"
