"""SQLAlchemy-backed unit of work for synchronization runs."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from campus_sync.adapters.sqlalchemy.mappings import enable_sqlite_foreign_keys, start_mappers
from campus_sync.adapters.sqlalchemy.migrations import upgrade_head
from campus_sync.adapters.sqlalchemy.repositories import (
    SqlAlchemyAccountRepository,
    SqlAlchemyBookRepository,
    SqlAlchemyClassroomRepository,
    SqlAlchemyCourseRepository,
    SqlAlchemyLectureRepository,
    SqlAlchemyPersonRepository,
    SqlAlchemyScheduleRepository,
    SqlAlchemySchoolRepository,
)
from campus_sync.config import get_database_config
from campus_sync.domain.ports.unit_of_work import CampusRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.ext.asyncio import AsyncEngine


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: AsyncEngine | None = None
    _session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine | None:
        return self._engine

    @engine.setter
    def engine(self, value: AsyncEngine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call campus_sync.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


async def startup(
    *,
    engine: AsyncEngine | None = None,
    database_uri: str | None = None,
    force: bool = False,
    migrate: bool = True,
) -> None:
    """Initialise the async engine, mappers, schema and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        config = get_database_config()
        engine = create_async_engine(database_uri or config.uri, echo=config.echo)
    enable_sqlite_foreign_keys(engine)
    start_mappers()
    if migrate:
        await upgrade_head(engine=engine)

    _STATE.engine = engine


def configured_engine() -> AsyncEngine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


async def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        await _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic async unit of work with pluggable repository collections.

    Concurrent tasks may share one instance. The gate serialises their use of
    the single underlying session, commits included.
    """

    def __init__(self) -> None:
        self.session_factory: async_sessionmaker[AsyncSession] = _STATE.session_factory
        self._session: AsyncSession | None = None
        self.gate = asyncio.Lock()

    @abstractmethod
    def _build_repositories(self, session: AsyncSession, gate: asyncio.Lock) -> TRepositories: ...

    async def __aenter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session, self.gate)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            await self.rollback()
        await self.session.close()
        self.session = None
        return False

    async def commit(self) -> None:
        async with self.gate:
            await self.session.commit()

    async def rollback(self) -> None:
        async with self.gate:
            await self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: AsyncSession | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyCampusUnitOfWork(BaseSqlAlchemyUnitOfWork[CampusRepositories]):
    """Unit of work over every repository the reconciliation engine uses."""

    def _build_repositories(self, session: AsyncSession, gate: asyncio.Lock) -> CampusRepositories:
        return CampusRepositories(
            schools=SqlAlchemySchoolRepository(session, gate),
            courses=SqlAlchemyCourseRepository(session, gate),
            books=SqlAlchemyBookRepository(session, gate),
            classrooms=SqlAlchemyClassroomRepository(session, gate),
            schedules=SqlAlchemyScheduleRepository(session, gate),
            lectures=SqlAlchemyLectureRepository(session, gate),
            accounts=SqlAlchemyAccountRepository(session, gate),
            persons=SqlAlchemyPersonRepository(session, gate),
        )


if TYPE_CHECKING:
    from campus_sync.domain.ports.unit_of_work import CampusUnitOfWork

    _uow_check: CampusUnitOfWork = SqlAlchemyCampusUnitOfWork()
