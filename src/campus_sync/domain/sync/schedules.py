"""Schedule synchronization, with the classrooms and lectures derived from it.

Responsibilities of this phase:
- upsert the classrooms named by schedule records of known courses
- upsert weekly schedules keyed by course, weekday and start time
- regenerate the scheduled lectures of every pulled schedule
- obviate schedules (and their scheduled lectures) no longer published

Classroom obviation waits until the concurrent phases have joined; see
:meth:`ScheduleSynchronizer.obviate_classrooms`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from campus_sync.domain.model import Classroom, CourseKey, Schedule, normalize_name
from campus_sync.domain.ports import ScheduleRecord

from .context import fetch_for_schools
from .errors import RECORD_ERRORS, UnresolvedReferenceError
from .keys import CourseIndex
from .lectures import generate_lectures
from .obviation import RepositoryObviator, obviate_per_school
from .upsert import apply_plan, plan_upserts

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping, Sequence
    from datetime import time
    from uuid import UUID

    from campus_sync.domain.model import Course, DayOfWeek, SchoolKey
    from campus_sync.domain.ports import (
        ClassroomRepository,
        LectureRepository,
        ScheduleRepository,
    )

    from .context import SyncContext
    from .keys import CourseKeys, SchoolKeys

log = getLogger(__name__)

type SlotKey = tuple[UUID, DayOfWeek, time]


@dataclass(slots=True)
class ClassroomStrategy:
    school_id: UUID
    classrooms: ClassroomRepository
    label: str = "classroom"

    def describe(self, record: ScheduleRecord) -> str:
        return repr(record.classroom_name)

    def resolve_key(self, record: ScheduleRecord) -> str:
        return normalize_name(record.classroom_name or "")

    def to_entity(self, record: ScheduleRecord, key: str) -> Classroom:
        return Classroom(school_id=self.school_id, name=key)

    async def find_existing(self, key: str) -> Classroom | None:
        return await self.classrooms.find_by_name(self.school_id, key)


@dataclass(slots=True)
class ScheduleStrategy:
    school: SchoolKey
    courses: CourseIndex
    classrooms: Mapping[str, UUID]
    schedules: ScheduleRepository
    label: str = "schedule"

    def describe(self, record: ScheduleRecord) -> str:
        return (
            f"{record.title!r} ({self.school}/{record.course_code} "
            f"{record.day_of_week.label} {record.start_time:%H:%M})"
        )

    def resolve_key(self, record: ScheduleRecord) -> SlotKey:
        course_key = CourseKey(self.school, record.course_code)
        course_id = self.courses.resolve(course_key)
        if course_id is None:
            raise UnresolvedReferenceError(f"Course {course_key} is not part of this run")
        return (course_id, record.day_of_week, record.start_time)

    def to_entity(self, record: ScheduleRecord, key: SlotKey) -> Schedule:
        course_id, day_of_week, start_time = key
        classroom_id = None
        if record.classroom_name:
            classroom_id = self.classrooms.get(normalize_name(record.classroom_name))
        return Schedule(
            course_id=course_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=record.end_time,
            classroom_id=classroom_id,
            comments=record.comments,
        )

    async def find_existing(self, key: SlotKey) -> Schedule | None:
        return await self.schedules.find_by_slot(*key)


@dataclass(slots=True)
class ScheduleObviator:
    """Obviate schedules together with their still-scheduled lectures."""

    schedules: ScheduleRepository
    lectures: LectureRepository
    obviated_lectures: list[UUID] = field(default_factory=list)
    verbose: bool = True

    async def __call__(self, candidates: Sequence[Schedule]) -> list[UUID]:
        obviate = RepositoryObviator(self.schedules, "schedule", verbose=self.verbose)
        obviated = await obviate(candidates)
        for schedule in candidates:
            lectures = await self.lectures.find_live_scheduled(schedule.id)
            if lectures:
                retired = await self.lectures.obviate_batch(lectures)
                self.obviated_lectures.extend(lecture.id for lecture in retired)
        return obviated


@dataclass(frozen=True, slots=True)
class SchedulePull:
    schedule_ids: tuple[UUID, ...] = ()
    classroom_ids: tuple[UUID, ...] = ()
    lecture_ids: tuple[UUID, ...] = ()
    obviated_lecture_ids: tuple[UUID, ...] = ()

    @property
    def ids(self) -> tuple[UUID, ...]:
        return self.schedule_ids


@dataclass(slots=True)
class ScheduleSynchronizer:
    context: SyncContext
    schools: SchoolKeys
    courses: CourseKeys
    phase: str = field(default="schedules", init=False)
    obviated_lecture_ids: list[UUID] = field(default_factory=list, init=False)

    async def pull(self) -> SchedulePull:
        context = self.context
        repositories = context.repositories
        index = CourseIndex(self.courses)
        grouped = await fetch_for_schools(context, ScheduleRecord, self.schools)

        schedule_ids: list[UUID] = []
        classroom_ids: list[UUID] = []
        lecture_ids: list[UUID] = []
        obviated_lecture_ids: list[UUID] = []
        for school_id, records in grouped.items():
            school = await repositories.schools.find_by_id(school_id)
            if school is None:
                raise UnresolvedReferenceError(f"School {self.schools[school_id]} vanished")

            classrooms = await self._put_classrooms(school_id, records, index)
            classroom_ids.extend(classrooms.values())

            strategy = ScheduleStrategy(school.key, index, classrooms, repositories.schedules)
            plan = await plan_upserts(records, strategy, verbose=context.verbose)
            schedules = await apply_plan(plan, repositories.schedules)
            schedule_ids.extend(schedule.id for schedule in schedules)

            course_cache: dict[UUID, Course] = {}
            for schedule in schedules:
                try:
                    course = course_cache.get(schedule.course_id)
                    if course is None:
                        course = await repositories.courses.find_by_id(schedule.course_id)
                        if course is None:
                            raise UnresolvedReferenceError(
                                f"Course {schedule.course_id} of schedule {schedule.id} is missing"
                            )
                        course_cache[course.id] = course
                    outcome = await generate_lectures(
                        schedule, course, school.zone, repositories.lectures
                    )
                except RECORD_ERRORS:
                    log.exception("Lectures of schedule %s not generated", schedule.id)
                    continue
                lecture_ids.extend((*outcome.created, *outcome.updated))
                obviated_lecture_ids.extend(outcome.obviated)
                context.detail(
                    "Schedule %s %s %s: %s lectures created, %s updated (%s restored), "
                    "%s obviated",
                    course.code,
                    schedule.day_of_week.label,
                    schedule.start_time,
                    len(outcome.created),
                    len(outcome.updated),
                    len(outcome.restored),
                    len(outcome.obviated),
                )

        return SchedulePull(
            schedule_ids=tuple(schedule_ids),
            classroom_ids=tuple(classroom_ids),
            lecture_ids=tuple(lecture_ids),
            obviated_lecture_ids=tuple(obviated_lecture_ids),
        )

    async def _put_classrooms(
        self, school_id: UUID, records: Sequence[ScheduleRecord], courses: CourseIndex
    ) -> dict[str, UUID]:
        """Upsert the classrooms of schedules whose course is part of this run."""

        classrooms = self.context.repositories.classrooms
        school = self.schools[school_id]
        unique: dict[str, ScheduleRecord] = {}
        for record in records:
            if not record.classroom_name or not _has_course(courses, school, record):
                continue
            try:
                unique.setdefault(normalize_name(record.classroom_name), record)
            except ValueError:
                log.warning("Blank classroom of schedule %r ignored", record.title)
        plan = await plan_upserts(
            unique.values(), ClassroomStrategy(school_id, classrooms), verbose=self.context.verbose
        )
        return {classroom.name: classroom.id for classroom in await apply_plan(plan, classrooms)}

    async def obviate(self, keep: Collection[UUID]) -> list[UUID]:
        repositories = self.context.repositories
        return await obviate_per_school(
            label="schedules",
            schools=self.schools,
            keep=keep,
            find_live=repositories.schedules.find_live_for_school,
            obviate=ScheduleObviator(
                repositories.schedules,
                repositories.lectures,
                obviated_lectures=self.obviated_lecture_ids,
                verbose=self.context.verbose,
            ),
        )

    async def obviate_classrooms(self, keep: Collection[UUID]) -> list[UUID]:
        """Obviate classrooms of this run's schools not used by any pulled schedule."""

        classrooms = self.context.repositories.classrooms
        return await obviate_per_school(
            label="classrooms",
            schools=self.schools,
            keep=keep,
            find_live=classrooms.find_live_for_school,
            obviate=RepositoryObviator(classrooms, "classroom", verbose=self.context.verbose),
        )

    def obviation_skip_reason(self) -> str | None:
        return None


def _has_course(courses: CourseIndex, school: SchoolKey, record: ScheduleRecord) -> bool:
    try:
        return courses.resolve(CourseKey(school, record.course_code)) is not None
    except ValueError:
        return False
