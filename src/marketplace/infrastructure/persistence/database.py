"""Engine lifecycle and schema setup."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from marketplace.infrastructure.persistence.sql_unit_of_work import SqlUnitOfWork
from marketplace.infrastructure.persistence.tables import metadata

logger = logging.getLogger(__name__)


class Database:
    """Owns the async engine and hands out units of work.

    ``connect()`` is idempotent and safe to call from concurrent tasks:
    the schema is created once, by whichever call gets there first.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._init_task: asyncio.Task | None = None

    async def connect(self) -> None:
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialise())
        try:
            await asyncio.shield(self._init_task)
        except Exception:
            self._init_task = None
            raise

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        self._init_task = None

    def unit_of_work(self) -> SqlUnitOfWork:
        if self._session_factory is None:
            raise RuntimeError("Database.connect() must be awaited first")
        return SqlUnitOfWork(self._session_factory)

    async def _initialise(self) -> None:
        _ensure_sqlite_directory(self.url)
        engine = create_async_engine(self.url, echo=self._echo)
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        self._engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)
        logger.info("database ready", extra={"url": make_url(self.url).render_as_string(hide_password=True)})


def _ensure_sqlite_directory(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
