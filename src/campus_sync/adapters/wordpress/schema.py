"""Pydantic models describing WordPress REST payloads and their custom fields.

Structured content lives in Advanced Custom Fields attached to each post. ACF
serialises unset fields as ``""`` or ``false`` and an empty field set as ``[]``,
so every optional value passes through ``_blank_to_none`` first.
"""

from __future__ import annotations

import html
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ACF_DATE_FORMATS = ("%Y%m%d", "%Y-%m-%d", "%d/%m/%Y")
_ACF_TIME_FORMATS = ("%H:%M:%S", "%H:%M", "%I:%M %p", "%I:%M%p", "%I:%M:%S %p")
_LIST_SEPARATORS = re.compile(r"[,;\n]")


def _blank_to_none(value: object) -> object:
    if value is False:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _parse_acf_date(value: object) -> object:
    value = _blank_to_none(value)
    if not isinstance(value, str):
        return value
    for fmt in _ACF_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()  # noqa: DTZ007
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


def _parse_acf_time(value: object) -> object:
    value = _blank_to_none(value)
    if not isinstance(value, str):
        return value
    for fmt in _ACF_TIME_FORMATS:
        try:
            return datetime.strptime(value.upper(), fmt).time()  # noqa: DTZ007
        except ValueError:
            continue
    raise ValueError(f"Unrecognised time: {value!r}")


def _split_codes(value: object) -> object:
    value = _blank_to_none(value)
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in _LIST_SEPARATORS.split(value) if part.strip()]
    return value


def _blank_group(value: object) -> object:
    value = _blank_to_none(value)
    if isinstance(value, Sequence) and not isinstance(value, str) and not value:
        return None
    return value


class WordPressBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RenderedText(WordPressBaseModel):
    rendered: str = ""

    @property
    def text(self) -> str:
        return html.unescape(self.rendered).strip()


class PostPayload(WordPressBaseModel):
    id: int
    slug: str = ""
    title: RenderedText = Field(default_factory=RenderedText)
    acf: dict[str, Any] = Field(default_factory=dict)

    @field_validator("acf", mode="before")
    @classmethod
    def _empty_field_set(cls, value: object) -> object:
        if value is None or value is False:
            return {}
        if isinstance(value, Sequence) and not isinstance(value, str) and not value:
            return {}
        return value

    @property
    def label(self) -> str:
        return self.title.text or f"post {self.id}"


class CategoryPayload(WordPressBaseModel):
    id: int
    slug: str
    name: str = ""
    count: int = 0


class ErrorPayload(WordPressBaseModel):
    code: str
    message: str
    data: dict[str, Any] | None = None

    @property
    def status(self) -> int | None:
        if self.data is None:
            return None
        status = self.data.get("status")
        return status if isinstance(status, int) else None


# Custom field sets -------------------------------------------------------------


class SchoolFields(WordPressBaseModel):
    code: str = Field(validation_alias="school_code")
    name: str | None = None
    city: str | None = None
    address: str | None = None
    description: str | None = None
    language: str = "en"
    secondary_language: str | None = None
    time_zone: str = "UTC"
    phone_country_code: str = ""

    _normalize_optional = field_validator(
        "name", "city", "address", "description", "secondary_language", mode="before"
    )(_blank_to_none)

    @field_validator("language", "time_zone", "phone_country_code", mode="before")
    @classmethod
    def _default_when_blank(cls, value: object) -> object:
        value = _blank_to_none(value)
        if value is None:
            # field defaults are applied by the translator
            return ""
        return value


class BookFields(WordPressBaseModel):
    name: str
    publisher: str | None = None
    info: str | None = None

    _normalize_optional = field_validator("publisher", "info", mode="before")(_blank_to_none)


class CourseFields(WordPressBaseModel):
    school: str
    code: str = Field(validation_alias="course_code")
    name: str | None = None
    sub_course: str | None = None
    level: str | None = None
    group: str | None = None
    comments: str | None = None
    first_date: date | None = None
    last_date: date | None = None
    books: list[BookFields] = Field(default_factory=list)

    _normalize_optional = field_validator(
        "name", "sub_course", "level", "group", "comments", mode="before"
    )(_blank_to_none)
    _normalize_dates = field_validator("first_date", "last_date", mode="before")(
        _parse_acf_date
    )

    @field_validator("books", mode="before")
    @classmethod
    def _normalize_books(cls, value: object) -> object:
        value = _blank_to_none(value)
        if value is None:
            return []
        if isinstance(value, Sequence) and not isinstance(value, str):
            rows = cast(Sequence[object], value)
            # repeater rows with an empty name are placeholders
            return [
                row
                for row in rows
                if not isinstance(row, Mapping)
                or _blank_to_none(cast(Mapping[str, object], row).get("name")) is not None
            ]
        return value


class ScheduleFields(WordPressBaseModel):
    school: str
    course_code: str
    day_of_week: str | int
    start_time: time
    end_time: time
    classroom: str | None = None
    comments: str | None = None

    _normalize_optional = field_validator("classroom", "comments", mode="before")(_blank_to_none)
    _normalize_times = field_validator("start_time", "end_time", mode="before")(_parse_acf_time)


class ContactFields(WordPressBaseModel):
    full_name: str
    phone: str | None = None
    email: str | None = None

    _normalize_optional = field_validator("phone", "email", mode="before")(_blank_to_none)

    @field_validator("phone", mode="before")
    @classmethod
    def _stringify_phone(cls, value: object) -> object:
        # ACF number fields arrive as integers
        if isinstance(value, int):
            return str(value)
        return value


class PersonnelFields(ContactFields):
    school: str
    role: str
    course_codes: list[str] = Field(default_factory=list)

    _normalize_codes = field_validator("course_codes", mode="before")(_split_codes)


class ClientFields(ContactFields):
    school: str
    course_codes: list[str] = Field(default_factory=list)
    parent1: ContactFields | None = None
    parent2: ContactFields | None = None

    _normalize_codes = field_validator("course_codes", mode="before")(_split_codes)

    @field_validator("parent1", "parent2", mode="before")
    @classmethod
    def _normalize_parent(cls, value: object) -> object:
        value = _blank_group(value)
        if isinstance(value, Mapping):
            group = cast(Mapping[str, object], value)
            if _blank_to_none(group.get("full_name")) is None:
                return None
        return value
