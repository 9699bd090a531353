"""Translate WordPress posts into source records for the reconciliation engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from campus_sync.domain.model import DayOfWeek, RoleRank
from campus_sync.domain.ports.fetching import (
    BookRecord,
    ClientRecord,
    ContactRecord,
    CourseRecord,
    PersonnelRecord,
    ScheduleRecord,
    SchoolRecord,
    SourceRecord,
)

from .schema import (
    ClientFields,
    ContactFields,
    CourseFields,
    PersonnelFields,
    PostPayload,
    ScheduleFields,
    SchoolFields,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


def _required_name(value: str | None, *, what: str) -> str:
    name = (value or "").strip()
    if not name:
        raise ValueError(f"{what} must not be blank")
    return name


def parse_school(post: PostPayload) -> SchoolRecord:
    fields = SchoolFields.model_validate(post.acf)
    return SchoolRecord(
        title=post.label,
        school_code=fields.code,
        code=fields.code,
        name=_required_name(fields.name or post.title.text, what="School name"),
        slug=post.slug or None,
        city=fields.city,
        address=fields.address,
        description=fields.description,
        language=fields.language or "en",
        secondary_language=fields.secondary_language,
        time_zone=fields.time_zone or "UTC",
        phone_country_code=fields.phone_country_code,
    )


def parse_course(post: PostPayload) -> CourseRecord:
    fields = CourseFields.model_validate(post.acf)
    return CourseRecord(
        title=post.label,
        school_code=fields.school,
        code=fields.code,
        name=_required_name(fields.name or post.title.text, what="Course name"),
        sub_course=fields.sub_course,
        level=fields.level,
        group=fields.group,
        comments=fields.comments,
        first_date=fields.first_date,
        last_date=fields.last_date,
        books=tuple(
            BookRecord(name=book.name, publisher=book.publisher, info=book.info)
            for book in fields.books
        ),
    )


def parse_schedule(post: PostPayload) -> ScheduleRecord:
    fields = ScheduleFields.model_validate(post.acf)
    if fields.end_time <= fields.start_time:
        raise ValueError(f"Schedule ends before it starts: {fields.start_time}-{fields.end_time}")
    return ScheduleRecord(
        title=post.label,
        school_code=fields.school,
        course_code=fields.course_code,
        day_of_week=DayOfWeek.parse(fields.day_of_week),
        start_time=fields.start_time,
        end_time=fields.end_time,
        classroom_name=fields.classroom,
        comments=fields.comments,
    )


def _contact(fields: ContactFields, *, course_codes: list[str] | None = None) -> ContactRecord:
    return ContactRecord(
        full_name=_required_name(fields.full_name, what="Full name"),
        phone=fields.phone,
        email=fields.email,
        course_codes=tuple(course_codes or ()),
    )


def parse_personnel(post: PostPayload) -> PersonnelRecord:
    fields = PersonnelFields.model_validate(post.acf)
    return PersonnelRecord(
        title=post.label,
        school_code=fields.school,
        contact=_contact(fields, course_codes=fields.course_codes),
        role=RoleRank.parse(fields.role),
    )


def parse_client(post: PostPayload) -> ClientRecord:
    fields = ClientFields.model_validate(post.acf)
    parents = tuple(
        _contact(parent) for parent in (fields.parent1, fields.parent2) if parent is not None
    )
    return ClientRecord(
        title=post.label,
        school_code=fields.school,
        student=_contact(fields, course_codes=fields.course_codes),
        parents=parents,
    )


_PARSERS: Mapping[type[SourceRecord], Callable[[PostPayload], SourceRecord]] = {
    SchoolRecord: parse_school,
    CourseRecord: parse_course,
    ScheduleRecord: parse_schedule,
    PersonnelRecord: parse_personnel,
    ClientRecord: parse_client,
}


def parse_record[TRecord: SourceRecord](record_type: type[TRecord], post: PostPayload) -> TRecord:
    """Translate ``post`` into a record of ``record_type``.

    Raises ``ValueError`` (pydantic's ``ValidationError`` included) when the
    custom fields are missing or malformed.
    """

    try:
        parser = _PARSERS[record_type]
    except KeyError:
        raise TypeError(f"No WordPress translation for {record_type.__name__}") from None
    return cast("TRecord", parser(post))
