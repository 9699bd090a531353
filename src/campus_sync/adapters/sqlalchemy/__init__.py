"""SQLAlchemy adapter package for campus-sync."""

from __future__ import annotations

from .mappings import (
    create_all_tables,
    enable_sqlite_foreign_keys,
    mapper_registry,
    start_mappers,
)
from .repositories import (
    SqlAlchemyAccountRepository,
    SqlAlchemyBookRepository,
    SqlAlchemyClassroomRepository,
    SqlAlchemyCourseRepository,
    SqlAlchemyLectureRepository,
    SqlAlchemyPersonRepository,
    SqlAlchemyScheduleRepository,
    SqlAlchemySchoolRepository,
)
from .unit_of_work import SqlAlchemyCampusUnitOfWork, is_started, shutdown, startup

__all__ = [
    "SqlAlchemyAccountRepository",
    "SqlAlchemyBookRepository",
    "SqlAlchemyCampusUnitOfWork",
    "SqlAlchemyClassroomRepository",
    "SqlAlchemyCourseRepository",
    "SqlAlchemyLectureRepository",
    "SqlAlchemyPersonRepository",
    "SqlAlchemyScheduleRepository",
    "SqlAlchemySchoolRepository",
    "create_all_tables",
    "enable_sqlite_foreign_keys",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
