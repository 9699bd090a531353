"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import (
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
from .persistence import (
    AccountRepository,
    BookRepository,
    ClassroomRepository,
    CourseRepository,
    LectureRepository,
    ObviableRepository,
    PersonRepository,
    Repository,
    ScheduleRepository,
    SchoolRepository,
)
from .unit_of_work import CampusRepositories, CampusUnitOfWork, RepositoryCollection, UnitOfWork

__all__ = [
    "AccountRepository",
    "BookRecord",
    "BookRepository",
    "CampusRepositories",
    "CampusUnitOfWork",
    "ClassroomRepository",
    "ClientRecord",
    "ContactRecord",
    "ContentSource",
    "CourseRecord",
    "CourseRepository",
    "LectureRepository",
    "ObviableRepository",
    "PersonRepository",
    "PersonnelRecord",
    "Repository",
    "RepositoryCollection",
    "ScheduleRecord",
    "ScheduleRepository",
    "SchoolRecord",
    "SchoolRepository",
    "SourceRecord",
    "UnitOfWork",
]
