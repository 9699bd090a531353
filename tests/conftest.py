from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from campus_sync.adapters.sqlalchemy import (
    create_all_tables,
    enable_sqlite_foreign_keys,
    start_mappers,
)
from campus_sync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCampusUnitOfWork,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine


def make_memory_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)
    return engine


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncIterator[AsyncEngine]:
    engine = make_memory_engine()
    start_mappers()
    await create_all_tables(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_unit_of_work(
    sqlite_engine: AsyncEngine,
) -> AsyncIterator[Callable[[], SqlAlchemyCampusUnitOfWork]]:
    await startup(engine=sqlite_engine, force=True, migrate=False)

    def factory() -> SqlAlchemyCampusUnitOfWork:
        return SqlAlchemyCampusUnitOfWork()

    try:
        yield factory
    finally:
        await shutdown()
