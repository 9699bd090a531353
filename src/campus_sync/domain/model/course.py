"""Courses, their books, weekly schedules and generated lectures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from campus_sync.domain.model.base import Entity, Obviable
from campus_sync.domain.model.enums import DayOfWeek, LectureStatus

if TYPE_CHECKING:
    from datetime import date, datetime, time
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class Course(Obviable):
    school_id: UUID
    code: str
    name: str
    sub_course: str | None = None
    level: str | None = None
    group: str | None = None
    comments: str | None = None
    first_date: date | None = None
    last_date: date | None = None

    @property
    def has_date_range(self) -> bool:
        return (
            self.first_date is not None
            and self.last_date is not None
            and self.first_date <= self.last_date
        )


@dataclass(eq=False, kw_only=True)
class Book(Entity):
    """Reference material; append-only, never obviated."""

    school_id: UUID
    name: str
    publisher: str | None = None
    info: str | None = None


@dataclass(eq=False, kw_only=True)
class Schedule(Obviable):
    course_id: UUID
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    classroom_id: UUID | None = None
    comments: str | None = None

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise ValueError(
                f"Schedule must end after it starts ({self.start_time} - {self.end_time})"
            )


@dataclass(eq=False, kw_only=True)
class Lecture(Obviable):
    course_id: UUID
    schedule_id: UUID | None
    start_at: datetime
    end_at: datetime
    classroom_id: UUID | None = None
    status: LectureStatus = LectureStatus.SCHEDULED

    @property
    def is_scheduled(self) -> bool:
        return self.status is LectureStatus.SCHEDULED
