"""Async access to the SQLModel stats database."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from sqlmodel import Session, SQLModel

if TYPE_CHECKING:
    from sqlalchemy import Engine

T = TypeVar("T")


class AsyncRepository:
    """Run blocking SQLModel work off the event loop.

    Every call opens its own Session on a worker thread, so concurrent
    callers never share a connection.
    """

    def __init__(self, engine: Engine, create_tables: bool = True) -> None:
        self._engine = engine
        if create_tables:
            SQLModel.metadata.create_all(engine)

    async def _run_session(self, fn: Callable[[Session], T]) -> T:
        """Run a read-only function inside a Session."""

        def _run() -> T:
            with Session(self._engine) as session:
                return fn(session)

        return await asyncio.to_thread(_run)

    async def _run_transaction(self, fn: Callable[[Session], T]) -> T:
        """Run a function inside a Session and commit when it returns."""

        def _run() -> T:
            with Session(self._engine) as session, session.begin():
                return fn(session)

        return await asyncio.to_thread(_run)
