"""Generation of lecture occurrences from a weekly schedule."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from campus_sync.domain.model import Lecture

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID
    from zoneinfo import ZoneInfo

    from campus_sync.domain.model import Course, DayOfWeek, Schedule
    from campus_sync.domain.ports import LectureRepository

log = getLogger(__name__)


def weekly_dates(first: date, last: date, day_of_week: DayOfWeek) -> Iterator[date]:
    """Every date in ``[first, last]`` falling on ``day_of_week``."""

    current = first + timedelta(days=(day_of_week - first.weekday()) % 7)
    while current <= last:
        yield current
        current += timedelta(weeks=1)


def lecture_slots(
    schedule: Schedule, course: Course, zone: ZoneInfo
) -> list[tuple[datetime, datetime]]:
    """UTC start and end instants of every occurrence of ``schedule``.

    Each instant is computed from the local wall-clock time on its own date,
    so occurrences keep their local time across daylight-saving changes.
    """

    if course.first_date is None or course.last_date is None:
        return []
    return [
        (
            datetime.combine(day, schedule.start_time, tzinfo=zone).astimezone(UTC),
            datetime.combine(day, schedule.end_time, tzinfo=zone).astimezone(UTC),
        )
        for day in weekly_dates(course.first_date, course.last_date, schedule.day_of_week)
    ]


@dataclass(slots=True)
class LectureOutcome:
    created: list[UUID] = field(default_factory=list)
    updated: list[UUID] = field(default_factory=list)
    restored: list[UUID] = field(default_factory=list)
    obviated: list[UUID] = field(default_factory=list)


async def generate_lectures(
    schedule: Schedule,
    course: Course,
    zone: ZoneInfo,
    lectures: LectureRepository,
) -> LectureOutcome:
    """Reconcile the scheduled lectures of ``schedule`` with its course dates.

    Lectures are matched by course and start instant. A lecture whose status
    is no longer ``SCHEDULED`` was changed by hand and is left alone. Scheduled
    lectures of this schedule outside the generated set are obviated.
    """

    outcome = LectureOutcome()
    if not course.has_date_range:
        log.warning(
            "Course %s has no valid date range; no lectures generated for schedule %s %s",
            course.code,
            schedule.day_of_week.label,
            schedule.start_time,
        )
        slots: list[tuple[datetime, datetime]] = []
    else:
        slots = lecture_slots(schedule, course, zone)

    generated: set[UUID] = set()
    to_create: list[Lecture] = []
    to_update: list[Lecture] = []
    to_restore: list[Lecture] = []
    for start_at, end_at in slots:
        existing = await lectures.find_by_start(course.id, start_at)
        if existing is None:
            lecture = Lecture(
                course_id=course.id,
                schedule_id=schedule.id,
                start_at=start_at,
                end_at=end_at,
                classroom_id=schedule.classroom_id,
            )
            to_create.append(lecture)
            generated.add(lecture.id)
            continue
        if not existing.is_scheduled:
            log.debug("Lecture %s is %s and is left untouched", existing.id, existing.status)
            continue

        existing.end_at = end_at
        existing.classroom_id = schedule.classroom_id
        existing.schedule_id = schedule.id
        to_update.append(existing)
        if existing.is_obviated:
            to_restore.append(existing)
        generated.add(existing.id)

    if to_create:
        outcome.created = [item.id for item in await lectures.create_batch(to_create)]
    if to_update:
        outcome.updated = [item.id for item in await lectures.update_batch(to_update)]
    if to_restore:
        outcome.restored = [item.id for item in await lectures.restore_batch(to_restore)]

    stale = [
        lecture
        for lecture in await lectures.find_live_scheduled(schedule.id)
        if lecture.id not in generated
    ]
    if stale:
        outcome.obviated = [item.id for item in await lectures.obviate_batch(stale)]
    return outcome
