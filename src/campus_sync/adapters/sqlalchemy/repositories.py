"""Repository implementations backed by one shared async SQLAlchemy session.

Phases of a run use the same session from concurrent tasks. Every statement
and every flush therefore runs under the unit of work's gate, an
``asyncio.Lock``. The gate is not re-entrant: repository methods never call
each other while holding it.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import and_, delete, exists, func, insert, select

from campus_sync.adapters.sqlalchemy.mappings import (
    account_role_table,
    account_table,
    book_table,
    classroom_table,
    course_book_table,
    course_table,
    lecture_table,
    person_course_table,
    person_guardian_table,
    person_school_table,
    person_table,
    schedule_table,
    school_table,
)
from campus_sync.domain.model import (
    Account,
    Book,
    Classroom,
    Course,
    Entity,
    Lecture,
    LectureStatus,
    Obviable,
    Person,
    RoleRank,
    Schedule,
    School,
)

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable, Iterable, Sequence
    from datetime import time

    from sqlalchemy import CursorResult, Executable, Select, Table
    from sqlalchemy.ext.asyncio import AsyncSession

    from campus_sync.domain.model import DayOfWeek


def utc_now() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyRepository[TEntity: Entity]:
    """Shared helpers for repositories of one mapped entity class."""

    def __init__(
        self,
        session: AsyncSession,
        gate: asyncio.Lock,
        entity_cls: type[TEntity],
        table: Table,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.session = session
        self.gate = gate
        self._entity_cls = entity_cls
        self._table = table
        self._clock = clock

    async def find_by_id(self, entity_id: uuid.UUID) -> TEntity | None:
        async with self.gate:
            return await self.session.get(self._entity_cls, entity_id)

    async def create_batch(self, entities: Sequence[TEntity]) -> list[TEntity]:
        now = self._clock()
        for entity in entities:
            entity.created_at = now
            entity.updated_at = now
        return await self._flush(entities)

    async def update_batch(self, entities: Sequence[TEntity]) -> list[TEntity]:
        now = self._clock()
        for entity in entities:
            entity.updated_at = now
        return await self._flush(entities)

    async def _flush(self, entities: Sequence[TEntity]) -> list[TEntity]:
        async with self.gate:
            self.session.add_all(entities)
            await self.session.flush()
        return list(entities)

    async def _first(self, stmt: Select[tuple[TEntity]]) -> TEntity | None:
        async with self.gate:
            result = await self.session.execute(stmt.limit(1))
            return result.scalars().first()

    async def _all(self, stmt: Select[tuple[TEntity]]) -> list[TEntity]:
        async with self.gate:
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

    async def _ids(self, stmt: Select[tuple[uuid.UUID]]) -> set[uuid.UUID]:
        async with self.gate:
            result = await self.session.execute(stmt)
            return set(result.scalars().all())

    async def _execute(self, stmt: Executable, params: list[dict[str, Any]] | None = None) -> int:
        async with self.gate:
            await self.session.flush()
            result = cast("CursorResult[Any]", await self.session.execute(stmt, params))
            return result.rowcount or 0

    def _select(self) -> Select[tuple[TEntity]]:
        return select(self._entity_cls)


class SqlAlchemyObviableRepository[TEntity: Obviable](SqlAlchemyRepository[TEntity]):
    async def obviate_batch(self, entities: Sequence[TEntity]) -> list[TEntity]:
        now = self._clock()
        for entity in entities:
            entity.obviate(now)
            entity.updated_at = now
        return await self._flush(entities)

    async def restore_batch(self, entities: Sequence[TEntity]) -> list[TEntity]:
        now = self._clock()
        for entity in entities:
            entity.restore()
            entity.updated_at = now
        return await self._flush(entities)

    async def delete_obviated(self, *, before: datetime) -> int:
        column = self._table.c.obviated_at
        stmt = delete(self._table).where(column.is_not(None)).where(column < before)
        async with self.gate:
            await self.session.flush()
            result = cast("CursorResult[Any]", await self.session.execute(stmt))
            # rows deleted by Core are gone from the store; drop stale instances
            self.session.expunge_all()
            return result.rowcount or 0

    def _live(self) -> Select[tuple[TEntity]]:
        return self._select().where(self._table.c.obviated_at.is_(None))


class SqlAlchemySchoolRepository(SqlAlchemyObviableRepository[School]):
    def __init__(self, session: AsyncSession, gate: asyncio.Lock) -> None:
        super().__init__(session, gate, School, school_table)

    async def find_by_code(self, code: str) -> School | None:
        return await self._first(self._select().where(school_table.c.code == code))

    async def find_live(self) -> list[School]:
        return await self._all(self._live().order_by(school_table.c.code))


class SqlAlchemyClassroomRepository(SqlAlchemyObviableRepository[Classroom]):
    def __init__(self, session: AsyncSession, gate: asyncio.Lock) -> None:
        super().__init__(session, gate, Classroom, classroom_table)

    async def find_by_name(self, school_id: uuid.UUID, name: str) -> Classroom | None:
        stmt = (
            self._select()
            .where(classroom_table.c.school_id == school_id)
            .where(func.lower(classroom_table.c.name) == name.lower())
        )
        return await self._first(stmt)

    async def find_live_for_school(self, school_id: uuid.UUID) -> list[Classroom]:
        return await self._all(self._live().where(classroom_table.c.school_id == school_id))


class SqlAlchemyCourseRepository(SqlAlchemyObviableRepository[Course]):
    def __init__(self, session: AsyncSession, gate: asyncio.Lock) -> None:
        super().__init__(session, gate, Course, course_table)

    async def find_by_code(self, school_id: uuid.UUID, code: str) -> Course | None:
        stmt = (
            self._select()
            .where(course_table.c.school_id == school_id)
            .where(course_table.c.code == code)
        )
        return await self._first(stmt)

    async def find_live_for_school(self, school_id: uuid.UUID) -> list[Course]:
        return await self._all(self._live().where(course_table.c.school_id == school_id))

    async def book_ids(self, course_id: uuid.UUID) -> set[uuid.UUID]:
        stmt = select(course_book_table.c.book_id).where(course_book_table.c.course_id == course_id)
        return await self._ids(stmt)

    async def replace_books(self, course_id: uuid.UUID, book_ids: Iterable[uuid.UUID]) -> None:
        wanted = set(book_ids)
        current = await self.book_ids(course_id)
        if current - wanted:
            await self._execute(
                delete(course_book_table)
                .where(course_book_table.c.course_id == course_id)
                .where(course_book_table.c.book_id.in_(current - wanted))
            )
        if wanted - current:
            await self._execute(
                insert(course_book_table),
                [{"course_id": course_id, "book_id": book_id} for book_id in wanted - current],
            )


class SqlAlchemyBookRepository(SqlAlchemyRepository[Book]):
    def __init__(self, session: AsyncSession, gate: asyncio.Lock) -> None:
        super().__init__(session, gate, Book, book_table)

    async def find_by_name(self, school_id: uuid.UUID, name: str) -> Book | None:
        stmt = (
            self._select()
            .where(book_table.c.school_id == school_id)
            .where(func.lower(book_table.c.name) == name.lower())
        )
        return await self._first(stmt)


class SqlAlchemyScheduleRepository(SqlAlchemyObviableRepository[Schedule]):
    def __init__(self, session: AsyncSession, gate: asyncio.Lock) -> None:
        super().__init__(session, gate, Schedule, schedule_table)

    async def find_by_slot(
        self, course_id: uuid.UUID, day_of_week: DayOfWeek, start_time: time
    ) -> Schedule | None:
        stmt = (
            self._select()
            .where(schedule_table.c.course_id == course_id)
            .where(schedule_table.c.day_of_week == day_of_week)
            .where(schedule_table.c.start_time == start_time)
        )
        return await self._first(stmt)

    async def find_live_for_school(self, school_id: uuid.UUID) -> list[Schedule]:
        stmt = (
            self._live()
            .join(course_table, schedule_table.c.course_id == course_table.c.id)
            .where(course_table.c.school_id == school_id)
        )
        return await self._all(stmt)


class SqlAlchemyLectureRepository(SqlAlchemyObviableRepository[Lecture]):
    def __init__(self, session: AsyncSession, gate: asyncio.Lock) -> None:
        super().__init__(session, gate, Lecture, lecture_table)

    async def find_by_start(self, course_id: uuid.UUID, start_at: datetime) -> Lecture | None:
        stmt = (
            self._select()
            .where(lecture_table.c.course_id == course_id)
            .where(lecture_table.c.start_at == start_at)
        )
        return await self._first(stmt)

    async def find_live_scheduled(self, schedule_id: uuid.UUID) -> list[Lecture]:
        stmt = (
            self._live()
            .where(lecture_table.c.schedule_id == schedule_id)
            .where(lecture_table.c.status == LectureStatus.SCHEDULED)
            .order_by(lecture_table.c.start_at)
        )
        return await self._all(stmt)


class SqlAlchemyAccountRepository(SqlAlchemyRepository[Account]):
    def __init__(self, session: AsyncSession, gate: asyncio.Lock) -> None:
        super().__init__(session, gate, Account, account_table)

    async def find_by_username(self, username: str) -> Account | None:
        return await self._first(self._select().where(account_table.c.username == username))

    async def roles(self, account_id: uuid.UUID) -> set[RoleRank]:
        stmt = select(account_role_table.c.role).where(
            account_role_table.c.account_id == account_id
        )
        async with self.gate:
            result = await self.session.execute(stmt)
            return {RoleRank(role) for role in result.scalars().all()}

    async def add_roles(self, account_id: uuid.UUID, roles: Iterable[RoleRank]) -> None:
        wanted = set(roles)
        if not wanted:
            return
        missing = wanted - await self.roles(account_id)
        if missing:
            await self._execute(
                insert(account_role_table),
                [{"account_id": account_id, "role": role} for role in sorted(missing)],
            )

    async def remove_roles(self, account_id: uuid.UUID, roles: Iterable[RoleRank]) -> None:
        unwanted = set(roles)
        if not unwanted:
            return
        await self._execute(
            delete(account_role_table)
            .where(account_role_table.c.account_id == account_id)
            .where(account_role_table.c.role.in_(unwanted))
        )

    async def delete_orphans(self) -> int:
        has_person = exists().where(person_table.c.account_id == account_table.c.id)
        return await self._execute(delete(account_table).where(~has_person))


class SqlAlchemyPersonRepository(SqlAlchemyObviableRepository[Person]):
    def __init__(self, session: AsyncSession, gate: asyncio.Lock) -> None:
        super().__init__(session, gate, Person, person_table)

    async def find_by_account(self, account_id: uuid.UUID) -> Person | None:
        return await self._first(self._select().where(person_table.c.account_id == account_id))

    async def find_live_for_school(self, school_id: uuid.UUID) -> list[Person]:
        stmt = (
            self._live()
            .join(person_school_table, person_school_table.c.person_id == person_table.c.id)
            .where(person_school_table.c.school_id == school_id)
        )
        return await self._all(stmt)

    async def school_ids(self, person_id: uuid.UUID) -> set[uuid.UUID]:
        stmt = select(person_school_table.c.school_id).where(
            person_school_table.c.person_id == person_id
        )
        return await self._ids(stmt)

    async def add_schools(self, person_id: uuid.UUID, school_ids: Iterable[uuid.UUID]) -> None:
        await self._link(person_school_table, "school_id", person_id, school_ids)

    async def remove_schools(self, person_id: uuid.UUID, school_ids: Iterable[uuid.UUID]) -> None:
        await self._unlink(person_school_table, "school_id", person_id, school_ids)

    async def course_ids(self, person_id: uuid.UUID) -> set[uuid.UUID]:
        stmt = select(person_course_table.c.course_id).where(
            person_course_table.c.person_id == person_id
        )
        return await self._ids(stmt)

    async def add_courses(self, person_id: uuid.UUID, course_ids: Iterable[uuid.UUID]) -> None:
        await self._link(person_course_table, "course_id", person_id, course_ids)

    async def remove_courses(self, person_id: uuid.UUID, course_ids: Iterable[uuid.UUID]) -> None:
        await self._unlink(person_course_table, "course_id", person_id, course_ids)

    async def dependents(self, guardian_id: uuid.UUID) -> list[Person]:
        stmt = (
            self._select()
            .join(
                person_guardian_table,
                and_(
                    person_guardian_table.c.dependent_id == person_table.c.id,
                    person_guardian_table.c.guardian_id == guardian_id,
                ),
            )
            .order_by(person_table.c.dependence_order)
        )
        return await self._all(stmt)

    async def link_dependent(self, guardian_id: uuid.UUID, dependent_id: uuid.UUID) -> None:
        await self._execute(
            insert(person_guardian_table),
            [{"guardian_id": guardian_id, "dependent_id": dependent_id}],
        )

    async def _link(
        self, table: Table, column: str, person_id: uuid.UUID, ids: Iterable[uuid.UUID]
    ) -> None:
        rows = [{"person_id": person_id, column: item} for item in set(ids)]
        if rows:
            await self._execute(insert(table), rows)

    async def _unlink(
        self, table: Table, column: str, person_id: uuid.UUID, ids: Iterable[uuid.UUID]
    ) -> None:
        targets = set(ids)
        if targets:
            await self._execute(
                delete(table)
                .where(table.c.person_id == person_id)
                .where(table.c[column].in_(targets))
            )
