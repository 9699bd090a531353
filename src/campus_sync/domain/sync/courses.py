"""Course (offering) synchronization, including their books."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from campus_sync.domain.model import Book, Course, CourseKey, normalize_name
from campus_sync.domain.ports import CourseRecord

from .context import fetch_for_schools
from .errors import RECORD_ERRORS
from .keys import EMPTY_COURSE_KEYS, freeze
from .obviation import RepositoryObviator, obviate_per_school
from .upsert import apply_plan, plan_upserts

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from uuid import UUID

    from campus_sync.domain.model import SchoolKey
    from campus_sync.domain.ports import BookRecord, BookRepository, CourseRepository

    from .context import SyncContext
    from .keys import CourseKeys, SchoolKeys

log = getLogger(__name__)


@dataclass(slots=True)
class CourseStrategy:
    school_id: UUID
    school: SchoolKey
    courses: CourseRepository
    label: str = "course"

    def describe(self, record: CourseRecord) -> str:
        return f"{record.title!r} ({self.school}/{record.code})"

    def resolve_key(self, record: CourseRecord) -> CourseKey:
        return CourseKey(self.school, record.code)

    def to_entity(self, record: CourseRecord, key: CourseKey) -> Course:
        if (
            record.first_date is not None
            and record.last_date is not None
            and record.first_date > record.last_date
        ):
            raise ValueError(f"Course {key} ends before it starts")
        return Course(
            school_id=self.school_id,
            code=key.code,
            name=record.name,
            sub_course=record.sub_course,
            level=record.level,
            group=record.group,
            comments=record.comments,
            first_date=record.first_date,
            last_date=record.last_date,
        )

    async def find_existing(self, key: CourseKey) -> Course | None:
        return await self.courses.find_by_code(self.school_id, key.code)


@dataclass(slots=True)
class BookStrategy:
    school_id: UUID
    books: BookRepository
    label: str = "book"

    def describe(self, record: BookRecord) -> str:
        return repr(record.name)

    def resolve_key(self, record: BookRecord) -> str:
        return normalize_name(record.name)

    def to_entity(self, record: BookRecord, key: str) -> Book:
        return Book(
            school_id=self.school_id, name=key, publisher=record.publisher, info=record.info
        )

    async def find_existing(self, key: str) -> Book | None:
        return await self.books.find_by_name(self.school_id, key)


@dataclass(frozen=True, slots=True)
class CoursePull:
    keys: CourseKeys = EMPTY_COURSE_KEYS
    book_ids: tuple[UUID, ...] = ()

    @property
    def ids(self) -> tuple[UUID, ...]:
        return tuple(self.keys)


@dataclass(slots=True)
class CourseSynchronizer:
    """Mirror course records of the schools in ``schools``."""

    context: SyncContext
    schools: SchoolKeys
    phase: str = field(default="courses", init=False)

    async def pull(self) -> CoursePull:
        context = self.context
        courses = context.repositories.courses
        grouped = await fetch_for_schools(context, CourseRecord, self.schools)

        keys: dict[UUID, CourseKey] = {}
        book_ids: list[UUID] = []
        for school_id, records in grouped.items():
            school = self.schools[school_id]
            strategy = CourseStrategy(school_id, school, courses)
            plan = await plan_upserts(records, strategy, verbose=context.verbose)
            for course in await apply_plan(plan, courses):
                keys[course.id] = CourseKey(school, course.code)

            book_ids.extend(await self._put_books(school_id, plan.planned_pairs()))

        return CoursePull(keys=freeze(keys.items()), book_ids=tuple(book_ids))

    async def _put_books(
        self, school_id: UUID, courses: Sequence[tuple[CourseRecord, Course]]
    ) -> list[UUID]:
        """Upsert the books of ``courses`` and link each course to its books."""

        repositories = self.context.repositories
        strategy = BookStrategy(school_id, repositories.books)

        unique: dict[str, BookRecord] = {}
        for record, _ in courses:
            for book in record.books:
                try:
                    unique.setdefault(normalize_name(book.name), book)
                except ValueError:
                    log.warning("Nameless book of course %s skipped", record.code)

        plan = await plan_upserts(unique.values(), strategy, verbose=self.context.verbose)
        books = {book.name: book.id for book in await apply_plan(plan, repositories.books)}

        for record, course in courses:
            try:
                wanted = {
                    books[normalize_name(book.name)] for book in record.books if book.name.strip()
                }
                await repositories.courses.replace_books(course.id, wanted)
            except RECORD_ERRORS:
                log.exception("Books of course %s not linked", course.code)
        return list(books.values())

    async def obviate(self, keep: Collection[UUID]) -> list[UUID]:
        courses = self.context.repositories.courses
        return await obviate_per_school(
            label="courses",
            schools=self.schools,
            keep=keep,
            find_live=courses.find_live_for_school,
            obviate=RepositoryObviator(courses, "course", verbose=self.context.verbose),
        )

    def obviation_skip_reason(self) -> str | None:
        return None
