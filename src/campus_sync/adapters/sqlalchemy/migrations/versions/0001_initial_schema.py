"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00

"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from alembic import op

from campus_sync.adapters.sqlalchemy.mappings import UTCDateTime

if TYPE_CHECKING:
    from collections.abc import Sequence

revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

LECTURE_STATUSES = ("scheduled", "rescheduled", "canceled", "manual")
ROLE_RANKS = (
    "none",
    "student",
    "parent",
    "teacher",
    "secretary",
    "school_admin",
    "school_owner",
)
DAYS = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY")


def _timestamps(*, obviable: bool = True) -> list[sa.Column[object]]:
    columns: list[sa.Column[object]] = [
        sa.Column("created_at", UTCDateTime(), nullable=True),
        sa.Column("updated_at", UTCDateTime(), nullable=True),
    ]
    if obviable:
        columns.append(sa.Column("obviated_at", UTCDateTime(), nullable=True))
    return columns


def _fk(
    column: str, target: str, *, ondelete: str = "CASCADE", **kwargs: bool
) -> sa.Column[object]:
    return sa.Column(column, sa.Uuid(), sa.ForeignKey(f"{target}.id", ondelete=ondelete), **kwargs)


def upgrade() -> None:
    op.create_table(
        "school",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("language", sa.String(8), nullable=False),
        sa.Column("secondary_language", sa.String(8), nullable=True),
        sa.Column("time_zone", sa.String(64), nullable=False),
        sa.Column("phone_country_code", sa.String(8), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("code", name="uq_school_code"),
    )
    op.create_index("ix_school_obviated_at", "school", ["obviated_at"])

    op.create_table(
        "classroom",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _fk("school_id", "school", nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("info", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("school_id", "name", name="uq_classroom_school_id"),
    )
    op.create_index("ix_classroom_obviated_at", "classroom", ["obviated_at"])

    op.create_table(
        "course",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _fk("school_id", "school", nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sub_course", sa.String(), nullable=True),
        sa.Column("level", sa.String(), nullable=True),
        sa.Column("group", sa.String(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("first_date", sa.Date(), nullable=True),
        sa.Column("last_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("school_id", "code", name="uq_course_school_id"),
    )
    op.create_index("ix_course_obviated_at", "course", ["obviated_at"])

    op.create_table(
        "book",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _fk("school_id", "school", nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("publisher", sa.String(), nullable=True),
        sa.Column("info", sa.Text(), nullable=True),
        *_timestamps(obviable=False),
        sa.UniqueConstraint("school_id", "name", name="uq_book_school_id"),
    )

    op.create_table(
        "course_book",
        _fk("course_id", "course", primary_key=True),
        _fk("book_id", "book", primary_key=True),
    )

    op.create_table(
        "schedule",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _fk("course_id", "course", nullable=False),
        sa.Column(
            "day_of_week",
            sa.Enum(*DAYS, name="day_of_week", native_enum=False),
            nullable=False,
        ),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        _fk("classroom_id", "classroom", ondelete="SET NULL", nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "course_id", "day_of_week", "start_time", name="uq_schedule_course_id"
        ),
    )
    op.create_index("ix_schedule_obviated_at", "schedule", ["obviated_at"])

    op.create_table(
        "lecture",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _fk("course_id", "course", nullable=False),
        _fk("schedule_id", "schedule", ondelete="SET NULL", nullable=True),
        sa.Column("start_at", UTCDateTime(), nullable=False),
        sa.Column("end_at", UTCDateTime(), nullable=False),
        _fk("classroom_id", "classroom", ondelete="SET NULL", nullable=True),
        sa.Column(
            "status",
            sa.Enum(*LECTURE_STATUSES, name="lecture_status", native_enum=False, length=32),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("ix_lecture_obviated_at", "lecture", ["obviated_at"])
    op.create_index("ix_lecture_schedule_id", "lecture", ["schedule_id"])
    op.create_index("ix_lecture_course_id_start_at", "lecture", ["course_id", "start_at"])

    op.create_table(
        "account",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("phone_number", sa.String(32), nullable=False),
        sa.Column("phone_confirmed", sa.Boolean(), nullable=False),
        *_timestamps(obviable=False),
        sa.UniqueConstraint("username", name="uq_account_username"),
    )

    op.create_table(
        "account_role",
        _fk("account_id", "account", primary_key=True),
        sa.Column(
            "role",
            sa.Enum(*ROLE_RANKS, name="role_rank", native_enum=False, length=32),
            primary_key=True,
        ),
    )

    op.create_table(
        "person",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _fk("account_id", "account", nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("dependence_order", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("account_id", name="uq_person_account_id"),
    )
    op.create_index("ix_person_obviated_at", "person", ["obviated_at"])

    op.create_table(
        "person_school",
        _fk("person_id", "person", primary_key=True),
        _fk("school_id", "school", primary_key=True),
    )
    op.create_table(
        "person_course",
        _fk("person_id", "person", primary_key=True),
        _fk("course_id", "course", primary_key=True),
    )
    op.create_table(
        "person_guardian",
        _fk("guardian_id", "person", primary_key=True),
        _fk("dependent_id", "person", primary_key=True),
    )


def downgrade() -> None:
    for table in (
        "person_guardian",
        "person_course",
        "person_school",
        "person",
        "account_role",
        "account",
        "lecture",
        "schedule",
        "course_book",
        "book",
        "course",
        "classroom",
        "school",
    ):
        op.drop_table(table)
