"""Schools (tenants) and their classrooms."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from campus_sync.domain.model.base import Obviable
from campus_sync.domain.model.keys import SchoolKey

if TYPE_CHECKING:
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class School(Obviable):
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

    @property
    def key(self) -> SchoolKey:
        return SchoolKey(self.code)

    @property
    def zone(self) -> ZoneInfo:
        # ZoneInfo instances are cached by the standard library per key
        return ZoneInfo(self.time_zone)


@dataclass(eq=False, kw_only=True)
class Classroom(Obviable):
    school_id: UUID
    name: str
    info: str | None = None
