"""SQLAlchemy mapping metadata for the campus domain model.

Entities are mapped imperatively without ORM relationships; association
tables are read and written with Core statements by the repositories.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Time,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    event,
    orm,
)
from sqlalchemy.orm import configure_mappers

from campus_sync.domain.model import (
    Account,
    Book,
    Classroom,
    Course,
    DayOfWeek,
    Lecture,
    LectureStatus,
    Person,
    RoleRank,
    Schedule,
    School,
)

if TYPE_CHECKING:
    from enum import Enum as PyEnum

    from sqlalchemy.ext.asyncio import AsyncEngine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _values(enum_cls: type[PyEnum]) -> list[str]:
    return [str(member.value) for member in enum_cls]


def _value_enum(enum_cls: type[PyEnum], name: str) -> Enum:
    return Enum(enum_cls, name=name, native_enum=False, values_callable=_values, length=32)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _timestamps(*, obviable: bool = True) -> list[Column[Any]]:
    columns: list[Column[Any]] = [
        Column("created_at", UTCDateTime(), nullable=True),
        Column("updated_at", UTCDateTime(), nullable=True),
    ]
    if obviable:
        columns.append(Column("obviated_at", UTCDateTime(), nullable=True, index=True))
    return columns


# Tenants ---------------------------------------------------------------------

school_table = Table(
    "school",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("code", String(32), nullable=False, unique=True),
    Column("name", String, nullable=False),
    Column("slug", String, nullable=True),
    Column("city", String, nullable=True),
    Column("address", Text, nullable=True),
    Column("description", Text, nullable=True),
    Column("language", String(8), nullable=False),
    Column("secondary_language", String(8), nullable=True),
    Column("time_zone", String(64), nullable=False),
    Column("phone_country_code", String(8), nullable=False),
    *_timestamps(),
)

classroom_table = Table(
    "classroom",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "school_id",
        UUIDColumnType,
        ForeignKey("school.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("name", String, nullable=False),
    Column("info", Text, nullable=True),
    *_timestamps(),
    UniqueConstraint("school_id", "name"),
)

# Offerings -------------------------------------------------------------------

course_table = Table(
    "course",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "school_id",
        UUIDColumnType,
        ForeignKey("school.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("code", String(32), nullable=False),
    Column("name", String, nullable=False),
    Column("sub_course", String, nullable=True),
    Column("level", String, nullable=True),
    Column("group", String, nullable=True),
    Column("comments", Text, nullable=True),
    Column("first_date", Date, nullable=True),
    Column("last_date", Date, nullable=True),
    *_timestamps(),
    UniqueConstraint("school_id", "code"),
)

book_table = Table(
    "book",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "school_id",
        UUIDColumnType,
        ForeignKey("school.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("name", String, nullable=False),
    Column("publisher", String, nullable=True),
    Column("info", Text, nullable=True),
    *_timestamps(obviable=False),
    UniqueConstraint("school_id", "name"),
)

course_book_table = Table(
    "course_book",
    mapper_registry.metadata,
    Column(
        "course_id",
        UUIDColumnType,
        ForeignKey("course.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "book_id",
        UUIDColumnType,
        ForeignKey("book.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

schedule_table = Table(
    "schedule",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "course_id",
        UUIDColumnType,
        ForeignKey("course.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("day_of_week", Enum(DayOfWeek, name="day_of_week", native_enum=False), nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    Column(
        "classroom_id",
        UUIDColumnType,
        ForeignKey("classroom.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("comments", Text, nullable=True),
    *_timestamps(),
    UniqueConstraint("course_id", "day_of_week", "start_time"),
)

lecture_table = Table(
    "lecture",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "course_id",
        UUIDColumnType,
        ForeignKey("course.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "schedule_id",
        UUIDColumnType,
        ForeignKey("schedule.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
    Column("start_at", UTCDateTime(), nullable=False),
    Column("end_at", UTCDateTime(), nullable=False),
    Column(
        "classroom_id",
        UUIDColumnType,
        ForeignKey("classroom.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("status", _value_enum(LectureStatus, "lecture_status"), nullable=False),
    *_timestamps(),
    Index("ix_lecture_course_id_start_at", "course_id", "start_at"),
)

# People ----------------------------------------------------------------------

account_table = Table(
    "account",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("username", String, nullable=False, unique=True),
    Column("phone_number", String(32), nullable=False),
    Column("phone_confirmed", Boolean, nullable=False, default=False),
    *_timestamps(obviable=False),
)

account_role_table = Table(
    "account_role",
    mapper_registry.metadata,
    Column(
        "account_id",
        UUIDColumnType,
        ForeignKey("account.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("role", _value_enum(RoleRank, "role_rank"), primary_key=True),
)

person_table = Table(
    "person",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "account_id",
        UUIDColumnType,
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("full_name", String, nullable=False),
    Column("email", String, nullable=True),
    Column("dependence_order", Integer, nullable=False, default=0),
    *_timestamps(),
)

person_school_table = Table(
    "person_school",
    mapper_registry.metadata,
    Column(
        "person_id",
        UUIDColumnType,
        ForeignKey("person.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "school_id",
        UUIDColumnType,
        ForeignKey("school.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

person_course_table = Table(
    "person_course",
    mapper_registry.metadata,
    Column(
        "person_id",
        UUIDColumnType,
        ForeignKey("person.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "course_id",
        UUIDColumnType,
        ForeignKey("course.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

person_guardian_table = Table(
    "person_guardian",
    mapper_registry.metadata,
    Column(
        "guardian_id",
        UUIDColumnType,
        ForeignKey("person.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "dependent_id",
        UUIDColumnType,
        ForeignKey("person.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


@cache
def start_mappers() -> orm.registry:
    """Map domain classes to tables; safe to call more than once."""

    mapper_registry.map_imperatively(School, school_table)
    mapper_registry.map_imperatively(Classroom, classroom_table)
    mapper_registry.map_imperatively(Course, course_table)
    mapper_registry.map_imperatively(Book, book_table)
    mapper_registry.map_imperatively(Schedule, schedule_table)
    mapper_registry.map_imperatively(Lecture, lecture_table)
    mapper_registry.map_imperatively(Account, account_table)
    mapper_registry.map_imperatively(Person, person_table)

    configure_mappers()
    return mapper_registry


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turn on foreign key enforcement for every SQLite connection of ``engine``."""

    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection: Any, connection_record: Any) -> None:  # pyright: ignore[reportUnusedFunction]
        _ = connection_record
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async def create_all_tables(engine: AsyncEngine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    async with engine.begin() as connection:
        await connection.run_sync(mapper_registry.metadata.create_all)
