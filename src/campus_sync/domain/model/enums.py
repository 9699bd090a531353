"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class RoleCategory(StrEnum):
    NONE = "none"
    CLIENT = "client"
    STAFF = "staff"


class RoleRank(StrEnum):
    NONE = "none"

    # client-like
    STUDENT = "student"
    PARENT = "parent"

    # staff-like
    TEACHER = "teacher"
    SECRETARY = "secretary"
    SCHOOL_ADMIN = "school_admin"
    SCHOOL_OWNER = "school_owner"

    @property
    def category(self) -> RoleCategory:
        if self in _CLIENT_RANKS:
            return RoleCategory.CLIENT
        if self in _STAFF_RANKS:
            return RoleCategory.STAFF
        return RoleCategory.NONE

    @property
    def is_client(self) -> bool:
        return self.category is RoleCategory.CLIENT

    @property
    def is_staff(self) -> bool:
        return self.category is RoleCategory.STAFF

    @classmethod
    def parse(cls, value: str) -> RoleRank:
        normalized = value.strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None


_CLIENT_RANKS = frozenset({RoleRank.STUDENT, RoleRank.PARENT})
_STAFF_RANKS = frozenset(
    {RoleRank.TEACHER, RoleRank.SECRETARY, RoleRank.SCHOOL_ADMIN, RoleRank.SCHOOL_OWNER}
)


class LectureStatus(StrEnum):
    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    CANCELED = "canceled"
    MANUAL = "manual"


class DayOfWeek(IntEnum):
    """Weekday numbering as returned by ``date.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def parse(cls, value: str | int) -> DayOfWeek:
        if isinstance(value, int):
            return cls(value)
        normalized = value.strip().upper()
        for day in cls:
            if day.name == normalized or day.name[:3] == normalized:
                return day
        raise ValueError(f"Unknown day of week: {value!r}")

    @property
    def label(self) -> str:
        return self.name.capitalize()
