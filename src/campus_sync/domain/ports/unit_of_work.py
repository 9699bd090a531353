"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from campus_sync.domain.ports.persistence import (
        AccountRepository,
        BookRepository,
        ClassroomRepository,
        CourseRepository,
        LectureRepository,
        PersonRepository,
        ScheduleRepository,
        SchoolRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Async unit-of-work boundary around a repository collection.

    One unit of work owns one store session. Concurrent tasks may share it;
    implementations serialise every call on the session.
    """

    @property
    def repositories(self) -> TRepositories: ...

    async def __aenter__(self) -> UnitOfWork[TRepositories]: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


@dataclass(slots=True)
class CampusRepositories(RepositoryCollection):
    """Repositories required by the reconciliation engine."""

    schools: SchoolRepository
    courses: CourseRepository
    books: BookRepository
    classrooms: ClassroomRepository
    schedules: ScheduleRepository
    lectures: LectureRepository
    accounts: AccountRepository
    persons: PersonRepository


type CampusUnitOfWork = UnitOfWork[CampusRepositories]
