"""CLI for HotOrNot."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import structlog
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from hotornot import __version__
from hotornot.core.config import MODES, EntityKind, HotOrNotConfig, Mode, load_config
from hotornot.core.errors import ConfigurationError, HotOrNotError
from hotornot.models import Entity
from hotornot.services.match import (
    ComparisonPair,
    ComparisonSession,
    Matchmaker,
    MatchOutcomeReporter,
    StreakInfo,
    TerminalEvent,
)
from hotornot.services.stash import create_repository
from hotornot.services.storage import StatsRepository, create_stats_engine

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="hotornot",
    help="HotOrNot - rank Stash performers, scenes and images by head-to-head picks",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"hotornot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """HotOrNot CLI."""


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _describe(entity: Entity, rank: int | None) -> str:
    rank_text = f"#{rank}" if rank is not None else "unranked"
    lines = [f"[bold]{entity.name}[/bold]", f"Rating: {entity.rating}  Rank: {rank_text}"]
    for key in ("gender", "country", "ethnicity", "birthdate"):
        if entity.attributes.get(key):
            lines.append(f"{key.capitalize()}: {entity.attributes[key]}")
    return "\n".join(lines)


class ConsoleView:
    """Renders a comparison session to the terminal.

    Attributes:
        state: What is on screen: "idle", "pair", "terminal", "pool", "error"
            (retryable) or "fatal".
    """

    def __init__(self, out: Console) -> None:
        self.out = out
        self.state = "idle"

    def on_pair_ready(self, pair: ComparisonPair, streak: StreakInfo | None) -> None:
        self.state = "pair"
        table = Table(show_header=True, expand=True)
        table.add_column("[1] Left")
        table.add_column("[2] Right")
        left = _describe(pair.left, pair.left_rank)
        right = _describe(pair.right, pair.right_rank)
        if streak is not None:
            badge = f"\n[magenta]Streak: {streak.wins}[/magenta]"
            if streak.entity_id == pair.left.id:
                left += badge
            else:
                right += badge
        table.add_row(left, right)
        self.out.print(table)

    def on_terminal_event(self, event: TerminalEvent) -> None:
        self.state = "terminal"
        if event.kind == "victory":
            body = (
                f"[bold green]{event.entity.name} is the champion![/bold green]\n"
                f"Conquered all {event.pool_size} with a {event.streak} win streak."
            )
        else:
            body = (
                f"[bold yellow]{event.entity.name} placed at #{event.rank}[/bold yellow]\n"
                f"Final rating: {event.rating}"
            )
        self.out.print(Panel(body, title=event.kind.capitalize()))

    def on_pool_too_small(self, message: str) -> None:
        self.state = "pool"
        self.out.print(f"[red]{message}[/red]")

    def on_error(self, message: str, retryable: bool) -> None:
        self.state = "error" if retryable else "fatal"
        self.out.print(f"[red]Error loading pair:[/red] {message}")


def _create_stats(
    config: HotOrNotConfig, kind: EntityKind, dry_run: bool
) -> StatsRepository | None:
    if dry_run or not config.stats_db:
        return None
    return StatsRepository(create_stats_engine(config.stats_db), kind=kind)


def _next_mode(mode: Mode) -> Mode:
    return MODES[(MODES.index(mode) + 1) % len(MODES)]


async def _interactive(session: ComparisonSession, view: ConsoleView) -> None:
    await session.start()
    while True:
        if view.state == "terminal":
            await asyncio.to_thread(
                Prompt.ask, "Press Enter to start a new run", default="", show_default=False
            )
            await session.acknowledge()
            continue
        if view.state == "fatal":
            return

        if view.state in ("pool", "error"):
            answer = await asyncio.to_thread(
                Prompt.ask, "r = retry, m = mode, q = quit", choices=["r", "m", "q"], default="r"
            )
        else:
            skip_hint = ", s = skip" if session.skip_allowed else ""
            answer = await asyncio.to_thread(
                Prompt.ask,
                f"{session.mode}: 1 = left, 2 = right{skip_hint}, m = mode, q = quit",
                choices=["1", "2", "s", "m", "q"],
            )

        if answer == "q":
            return
        if answer == "m":
            new_mode = _next_mode(session.mode)
            console.print(f"[cyan]Switching to {new_mode} mode[/cyan]")
            await session.set_mode(new_mode)
        elif answer == "r":
            await session.retry()
        elif answer == "s":
            if not await session.skip():
                console.print("[yellow]Skip is disabled during an active run[/yellow]")
        elif session.current_pair is not None:
            pair = session.current_pair
            winner = pair.left if answer == "1" else pair.right
            await session.choose(winner.id)


@app.command()
def rank(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
    mode: Annotated[
        str | None, typer.Option("--mode", help="Matchmaking mode: swiss, gauntlet or champion")
    ] = None,
    kind: Annotated[
        str | None, typer.Option("--kind", help="Entity type: performers, scenes or images")
    ] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Use the bundled demo catalogue, no Stash server")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")] = False,
) -> None:
    """Start an interactive comparison session.

    Args:
        config_path: Path to YAML configuration file.
        mode: Override the configured mode.
        kind: Override the configured entity type.
        dry_run: If True, use the in-memory demo repository.
        verbose: Enable debug logging.
    """
    _configure_logging(verbose)
    load_dotenv()

    try:
        config = load_config(config_path)
        overrides = {
            key: value
            for key, value in {"mode": mode, "entity_kind": kind}.items()
            if value is not None
        }
        if overrides:
            config = HotOrNotConfig.model_validate({**config.model_dump(), **overrides})

        if dry_run:
            console.print("[yellow]DRY RUN MODE - using the demo catalogue[/yellow]")
        repository = create_repository(
            config.stash, kind=config.entity_kind, dry_run=dry_run, seed=config.matchmaking.seed
        )
        view = ConsoleView(console)
        session = ComparisonSession(
            Matchmaker(repository, config.matchmaking),
            MatchOutcomeReporter(
                repository, config.rating, _create_stats(config, config.entity_kind, dry_run)
            ),
            view,
            mode=config.mode,
            entity_filter=config.filter,
        )

        async def _run() -> None:
            try:
                await _interactive(session, view)
            finally:
                await repository.close()

        asyncio.run(_run())

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1) from e


@app.command()
def leaderboard(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
    limit: Annotated[int, typer.Option("--limit", help="Number of entries to show")] = 20,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Use the bundled demo catalogue, no Stash server")
    ] = False,
) -> None:
    """Show the current ranking with comparison statistics.

    Args:
        config_path: Path to YAML configuration file.
        limit: Number of entries to show.
        dry_run: If True, use the in-memory demo repository.
    """
    load_dotenv()
    try:
        config = load_config(config_path)
        repository = create_repository(config.stash, kind=config.entity_kind, dry_run=dry_run)
        stats = _create_stats(config, config.entity_kind, dry_run)

        async def _load() -> list[tuple[Entity, dict | None]]:
            try:
                entities = await repository.list_sorted(config.filter, limit=limit)
                rows = []
                for entity in entities:
                    entity_stats = await stats.get_stats(entity.id) if stats else None
                    rows.append((entity, entity_stats))
                return rows
            finally:
                await repository.close()

        rows = asyncio.run(_load())
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except (ConfigurationError, HotOrNotError) as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e

    table = Table(title=f"Top {config.entity_kind}")
    table.add_column("Rank", justify="right")
    table.add_column("Name")
    table.add_column("Rating", justify="right")
    table.add_column("W-L", justify="right")
    table.add_column("Streak", justify="right")
    for position, (entity, entity_stats) in enumerate(rows, start=1):
        record = f"{entity_stats['wins']}-{entity_stats['losses']}" if entity_stats else "-"
        streak = str(entity_stats["current_streak"]) if entity_stats else "-"
        table.add_row(str(position), entity.name, str(entity.rating), record, streak)
    console.print(table)


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file without running.

    Args:
        config_path: Path to YAML configuration file.
    """
    try:
        config = load_config(config_path)
        console.print("[green]Configuration is valid![/green]")
        console.print(f"  Entity kind: {config.entity_kind}")
        console.print(f"  Mode: {config.mode}")
        console.print(f"  Stash URL: {config.stash.url}")
        console.print(f"  K-factor: {config.rating.k_factor}")
        console.print(f"  Swiss window: ±{config.matchmaking.swiss_window}")
        console.print(f"  Stats database: {config.stats_db or 'disabled'}")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Validation error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command()
def info() -> None:
    """Show tool information and example commands."""
    console.print("[bold]HotOrNot for Stash[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print("[bold]Example Commands:[/bold]")
    console.print("  # Try it without a Stash server")
    console.print("  uv run hotornot rank config.yaml --dry-run\n")

    console.print("  # Gauntlet run over performers")
    console.print("  uv run hotornot rank config.yaml --mode gauntlet\n")

    console.print("  # Rank scenes instead")
    console.print("  uv run hotornot rank config.yaml --kind scenes\n")

    console.print("  # Current standings")
    console.print("  uv run hotornot leaderboard config.yaml --limit 10\n")

    console.print("  # Validate config")
    console.print("  uv run hotornot validate config.yaml")


if __name__ == "__main__":
    app()
