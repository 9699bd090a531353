"""Public domain model surface."""

from __future__ import annotations

from campus_sync.domain.model.base import Entity, Obviable, new_id
from campus_sync.domain.model.course import Book, Course, Lecture, Schedule
from campus_sync.domain.model.enums import DayOfWeek, LectureStatus, RoleCategory, RoleRank
from campus_sync.domain.model.keys import CourseKey, SchoolKey, normalize_code, normalize_name
from campus_sync.domain.model.person import Account, Person
from campus_sync.domain.model.school import Classroom, School

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "Obviable",
    "new_id",
    # keys
    "SchoolKey",
    "CourseKey",
    "normalize_code",
    "normalize_name",
    # enums
    "DayOfWeek",
    "LectureStatus",
    "RoleCategory",
    "RoleRank",
    # entities
    "School",
    "Classroom",
    "Course",
    "Book",
    "Schedule",
    "Lecture",
    "Account",
    "Person",
]
