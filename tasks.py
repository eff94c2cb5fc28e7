from pathlib import Path

from invoke import task
from invoke.exceptions import Exit


@task
def lint(c):
    c.run("ruff check src tests tasks.py")


@task
def format_check(c):
    c.run("ruff format --check src tests tasks.py")


@task
def test(c, k=""):
    c.run(f"pytest -k '{k}'" if k else "pytest")


@task
def demo(c, config="config.example.yaml", mode="gauntlet"):
    """Rank the bundled demo catalogue without a Stash server."""
    if not Path(config).exists():
        raise Exit(f"Missing config file: {config}")
    c.run(f"hotornot rank {config} --mode {mode} --dry-run", pty=True)


@task
def ci(c):
    lint(c)
    format_check(c)
    test(c)
