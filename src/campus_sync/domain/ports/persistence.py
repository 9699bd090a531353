"""Ports for persisting the school domain graph.

Every method is a coroutine: implementations talk to the store over
asynchronous I/O. Batch methods return the entities they persisted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from campus_sync.domain.model import (
    Account,
    Book,
    Classroom,
    Course,
    Entity,
    Lecture,
    Obviable,
    Person,
    Schedule,
    School,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime, time
    from uuid import UUID

    from campus_sync.domain.model import DayOfWeek, RoleRank


@runtime_checkable
class Repository[TEntity: Entity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    async def find_by_id(self, entity_id: UUID) -> TEntity | None: ...

    async def create_batch(self, entities: Sequence[TEntity]) -> list[TEntity]: ...

    async def update_batch(self, entities: Sequence[TEntity]) -> list[TEntity]: ...


@runtime_checkable
class ObviableRepository[TEntity: Obviable](Repository[TEntity], Protocol):
    """Repository for rows that are retired by timestamp."""

    async def obviate_batch(self, entities: Sequence[TEntity]) -> list[TEntity]: ...

    async def restore_batch(self, entities: Sequence[TEntity]) -> list[TEntity]: ...

    async def delete_obviated(self, *, before: datetime) -> int: ...


@runtime_checkable
class SchoolRepository(ObviableRepository[School], Protocol):
    async def find_by_code(self, code: str) -> School | None: ...

    async def find_live(self) -> list[School]: ...


@runtime_checkable
class CourseRepository(ObviableRepository[Course], Protocol):
    async def find_by_code(self, school_id: UUID, code: str) -> Course | None: ...

    async def find_live_for_school(self, school_id: UUID) -> list[Course]: ...

    async def book_ids(self, course_id: UUID) -> set[UUID]: ...

    async def replace_books(self, course_id: UUID, book_ids: Iterable[UUID]) -> None: ...


@runtime_checkable
class BookRepository(Repository[Book], Protocol):
    async def find_by_name(self, school_id: UUID, name: str) -> Book | None: ...


@runtime_checkable
class ClassroomRepository(ObviableRepository[Classroom], Protocol):
    async def find_by_name(self, school_id: UUID, name: str) -> Classroom | None: ...

    async def find_live_for_school(self, school_id: UUID) -> list[Classroom]: ...


@runtime_checkable
class ScheduleRepository(ObviableRepository[Schedule], Protocol):
    async def find_by_slot(
        self, course_id: UUID, day_of_week: DayOfWeek, start_time: time
    ) -> Schedule | None: ...

    async def find_live_for_school(self, school_id: UUID) -> list[Schedule]: ...


@runtime_checkable
class LectureRepository(ObviableRepository[Lecture], Protocol):
    async def find_by_start(self, course_id: UUID, start_at: datetime) -> Lecture | None: ...

    async def find_live_scheduled(self, schedule_id: UUID) -> list[Lecture]: ...


@runtime_checkable
class AccountRepository(Repository[Account], Protocol):
    async def find_by_username(self, username: str) -> Account | None: ...

    async def roles(self, account_id: UUID) -> set[RoleRank]: ...

    async def add_roles(self, account_id: UUID, roles: Iterable[RoleRank]) -> None: ...

    async def remove_roles(self, account_id: UUID, roles: Iterable[RoleRank]) -> None: ...

    async def delete_orphans(self) -> int: ...


@runtime_checkable
class PersonRepository(ObviableRepository[Person], Protocol):
    async def find_by_account(self, account_id: UUID) -> Person | None: ...

    async def find_live_for_school(self, school_id: UUID) -> list[Person]: ...

    async def school_ids(self, person_id: UUID) -> set[UUID]: ...

    async def add_schools(self, person_id: UUID, school_ids: Iterable[UUID]) -> None: ...

    async def remove_schools(self, person_id: UUID, school_ids: Iterable[UUID]) -> None: ...

    async def course_ids(self, person_id: UUID) -> set[UUID]: ...

    async def add_courses(self, person_id: UUID, course_ids: Iterable[UUID]) -> None: ...

    async def remove_courses(self, person_id: UUID, course_ids: Iterable[UUID]) -> None: ...

    async def dependents(self, guardian_id: UUID) -> list[Person]: ...

    async def link_dependent(self, guardian_id: UUID, dependent_id: UUID) -> None: ...
