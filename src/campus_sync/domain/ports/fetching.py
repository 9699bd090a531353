"""Ports for fetching records from the external content source."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import date, time

    from campus_sync.domain.model import DayOfWeek, RoleRank, SchoolKey


@dataclass(frozen=True, slots=True, kw_only=True)
class SourceRecord:
    """One structured record of the content source.

    ``school_code`` correlates the record with its tenant; ``title`` is only
    used to identify the record in logs.
    """

    KIND: ClassVar[str]

    title: str
    school_code: str | None


@dataclass(frozen=True, slots=True, kw_only=True)
class SchoolRecord(SourceRecord):
    KIND: ClassVar[str] = "school"

    code: str
    name: str
    slug: str | None = None
    city: str | None = None
    address: str | None = None
    description: str | None = None
    language: str = "en"
    secondary_language: str | None = None
    time_zone: str = "UTC"
    phone_country_code: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class BookRecord:
    name: str
    publisher: str | None = None
    info: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CourseRecord(SourceRecord):
    KIND: ClassVar[str] = "course"

    code: str
    name: str
    sub_course: str | None = None
    level: str | None = None
    group: str | None = None
    comments: str | None = None
    first_date: date | None = None
    last_date: date | None = None
    books: tuple[BookRecord, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class ScheduleRecord(SourceRecord):
    KIND: ClassVar[str] = "schedule"

    course_code: str
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    classroom_name: str | None = None
    comments: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ContactRecord:
    """Person fields shared by staff, students and parents."""

    full_name: str
    phone: str | None = None
    email: str | None = None
    course_codes: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True, kw_only=True)
class PersonnelRecord(SourceRecord):
    KIND: ClassVar[str] = "personnel"

    contact: ContactRecord
    role: RoleRank


@dataclass(frozen=True, slots=True, kw_only=True)
class ClientRecord(SourceRecord):
    KIND: ClassVar[str] = "client"

    student: ContactRecord
    parents: tuple[ContactRecord, ...] = ()

    @property
    def is_self_determined(self) -> bool:
        return bool(self.student.phone)


@runtime_checkable
class ContentSource(Protocol):
    """Port for retrieving records of one kind, optionally for a single school."""

    async def fetch_records[TRecord: SourceRecord](
        self,
        record_type: type[TRecord],
        *,
        school: SchoolKey | None = None,
    ) -> list[TRecord]: ...


__all__ = [
    "BookRecord",
    "ClientRecord",
    "ContactRecord",
    "ContentSource",
    "CourseRecord",
    "PersonnelRecord",
    "ScheduleRecord",
    "SchoolRecord",
    "SourceRecord",
]
