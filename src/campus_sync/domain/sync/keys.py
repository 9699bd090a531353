"""Immutable identifier maps handed from one phase to the next."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from campus_sync.domain.model import CourseKey, SchoolKey

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from uuid import UUID

type SchoolKeys = Mapping[UUID, SchoolKey]
type CourseKeys = Mapping[UUID, CourseKey]


def freeze[TKey](pairs: Iterable[tuple[UUID, TKey]]) -> Mapping[UUID, TKey]:
    return MappingProxyType(dict(pairs))


EMPTY_SCHOOL_KEYS: SchoolKeys = MappingProxyType({})
EMPTY_COURSE_KEYS: CourseKeys = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class SchoolIndex:
    """Reverse lookup over a :data:`SchoolKeys` map."""

    keys: SchoolKeys
    _ids: dict[SchoolKey, UUID] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_ids", {key: school_id for school_id, key in self.keys.items()})

    def resolve(self, code: str | None) -> UUID | None:
        if code is None:
            return None
        try:
            return self._ids.get(SchoolKey(code))
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class CourseIndex:
    """Reverse lookups over a :data:`CourseKeys` map."""

    keys: CourseKeys
    _ids: dict[CourseKey, UUID] = field(init=False, repr=False)
    _by_school: dict[SchoolKey, frozenset[UUID]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        ids: dict[CourseKey, UUID] = {}
        by_school: defaultdict[SchoolKey, set[UUID]] = defaultdict(set)
        for course_id, key in self.keys.items():
            ids[key] = course_id
            by_school[key.school].add(course_id)
        object.__setattr__(self, "_ids", ids)
        object.__setattr__(
            self, "_by_school", {school: frozenset(items) for school, items in by_school.items()}
        )

    def resolve(self, key: CourseKey) -> UUID | None:
        return self._ids.get(key)

    def for_school(self, school: SchoolKey) -> frozenset[UUID]:
        return self._by_school.get(school, frozenset())
