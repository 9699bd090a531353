from __future__ import annotations

from datetime import UTC, date, datetime, time
from uuid import uuid4
from zoneinfo import ZoneInfo

from campus_sync.domain.model import Course, DayOfWeek, Schedule
from campus_sync.domain.sync.lectures import lecture_slots, weekly_dates


def _course(first: date | None, last: date | None) -> Course:
    return Course(school_id=uuid4(), code="MATH1", name="Math", first_date=first, last_date=last)


def _schedule(course: Course, day: DayOfWeek = DayOfWeek.MONDAY) -> Schedule:
    return Schedule(
        course_id=course.id, day_of_week=day, start_time=time(10, 0), end_time=time(11, 0)
    )


def test_weekly_dates_starts_on_first_matching_day() -> None:
    dates = list(weekly_dates(date(2025, 1, 1), date(2025, 1, 31), DayOfWeek.MONDAY))

    assert dates == [date(2025, 1, 6), date(2025, 1, 13), date(2025, 1, 20), date(2025, 1, 27)]


def test_weekly_dates_include_both_bounds() -> None:
    dates = list(weekly_dates(date(2025, 1, 6), date(2025, 1, 20), DayOfWeek.MONDAY))

    assert dates == [date(2025, 1, 6), date(2025, 1, 13), date(2025, 1, 20)]


def test_weekly_dates_empty_when_day_never_occurs() -> None:
    assert list(weekly_dates(date(2025, 1, 7), date(2025, 1, 9), DayOfWeek.MONDAY)) == []


def test_lecture_slots_cover_thirteen_mondays() -> None:
    course = _course(date(2025, 1, 6), date(2025, 3, 31))

    slots = lecture_slots(_schedule(course), course, ZoneInfo("UTC"))

    assert len(slots) == 13
    assert slots[0] == (
        datetime(2025, 1, 6, 10, 0, tzinfo=UTC),
        datetime(2025, 1, 6, 11, 0, tzinfo=UTC),
    )


def test_lecture_slots_keep_local_time_across_daylight_saving() -> None:
    course = _course(date(2025, 3, 24), date(2025, 4, 4))
    zone = ZoneInfo("Europe/Berlin")

    slots = lecture_slots(_schedule(course), course, zone)

    assert [start for start, _ in slots] == [
        datetime(2025, 3, 24, 9, 0, tzinfo=UTC),
        datetime(2025, 3, 31, 8, 0, tzinfo=UTC),
    ]
    assert all(start.astimezone(zone).time() == time(10, 0) for start, _ in slots)


def test_lecture_slots_empty_without_date_range() -> None:
    course = _course(None, date(2025, 3, 31))

    assert lecture_slots(_schedule(course), course, ZoneInfo("UTC")) == []
