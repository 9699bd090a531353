"""Reusable fakes and record builders for synchronization tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import TYPE_CHECKING, Any, cast

from campus_sync.domain.model import DayOfWeek, RoleRank, SchoolKey
from campus_sync.domain.ports.fetching import (
    BookRecord,
    ClientRecord,
    ContactRecord,
    ContentSource,
    CourseRecord,
    PersonnelRecord,
    ScheduleRecord,
    SchoolRecord,
    SourceRecord,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

# 13 Mondays, the last one after the switch to summer time in Europe
TERM_START = date(2025, 1, 6)
TERM_END = date(2025, 3, 31)


@dataclass
class FakeSource:
    """In-memory implementation of the content source port."""

    records: dict[type[SourceRecord], list[SourceRecord]] = field(default_factory=dict)
    failures: dict[type[SourceRecord], Exception] = field(default_factory=dict)
    calls: list[tuple[str, SchoolKey | None]] = field(default_factory=list)

    def put(self, *records: SourceRecord) -> FakeSource:
        for record in records:
            self.records.setdefault(type(record), []).append(record)
        return self

    def replace(self, record_type: type[SourceRecord], records: Iterable[SourceRecord]) -> None:
        self.records[record_type] = list(records)

    def fail(self, record_type: type[SourceRecord], error: Exception) -> None:
        self.failures[record_type] = error

    async def fetch_records[TRecord: SourceRecord](
        self,
        record_type: type[TRecord],
        *,
        school: SchoolKey | None = None,
    ) -> list[TRecord]:
        self.calls.append((record_type.KIND, school))
        if record_type in self.failures:
            raise self.failures[record_type]
        items = list(self.records.get(record_type, []))
        if school is not None:
            items = [
                item
                for item in items
                if item.school_code is not None and item.school_code.upper() == school.code
            ]
        return cast("list[TRecord]", items)


def school_record(code: str = "ACME", **overrides: Any) -> SchoolRecord:
    values: dict[str, Any] = {
        "title": f"{code} school",
        "school_code": code,
        "code": code,
        "name": f"{code.capitalize()} Academy",
        "time_zone": "Europe/Berlin",
        "phone_country_code": "+49",
    }
    values.update(overrides)
    return SchoolRecord(**values)


def course_record(
    code: str = "MATH1",
    *,
    school: str = "ACME",
    books: Iterable[BookRecord] = (),
    **overrides: Any,
) -> CourseRecord:
    values: dict[str, Any] = {
        "title": f"{code} course",
        "school_code": school,
        "code": code,
        "name": f"Course {code}",
        "first_date": TERM_START,
        "last_date": TERM_END,
        "books": tuple(books),
    }
    values.update(overrides)
    return CourseRecord(**values)


def schedule_record(
    course_code: str = "MATH1",
    *,
    school: str = "ACME",
    day_of_week: DayOfWeek = DayOfWeek.MONDAY,
    start: time = time(10, 0),
    end: time = time(11, 0),
    classroom: str | None = "R1",
) -> ScheduleRecord:
    return ScheduleRecord(
        title=f"{course_code} {day_of_week.label}",
        school_code=school,
        course_code=course_code,
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        classroom_name=classroom,
    )


def contact(
    full_name: str,
    phone: str | None = None,
    *,
    email: str | None = None,
    courses: Iterable[str] = (),
) -> ContactRecord:
    return ContactRecord(
        full_name=full_name, phone=phone, email=email, course_codes=tuple(courses)
    )


def staff_record(
    full_name: str,
    phone: str | None,
    *,
    school: str = "ACME",
    role: RoleRank = RoleRank.TEACHER,
    courses: Iterable[str] = (),
) -> PersonnelRecord:
    return PersonnelRecord(
        title=full_name,
        school_code=school,
        contact=contact(full_name, phone, courses=courses),
        role=role,
    )


def client_record(
    student: ContactRecord,
    *parents: ContactRecord,
    school: str = "ACME",
) -> ClientRecord:
    return ClientRecord(
        title=student.full_name, school_code=school, student=student, parents=tuple(parents)
    )


def acme_source() -> FakeSource:
    """One school, one course, one weekly Monday slot in room R1."""

    return FakeSource().put(school_record(), course_record(), schedule_record())


if TYPE_CHECKING:
    _source_check: ContentSource = FakeSource()
