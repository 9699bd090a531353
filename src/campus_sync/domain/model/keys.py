"""Natural keys used to match source records against stored rows."""

from __future__ import annotations

import re
from dataclasses import dataclass

_CODE_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9_.-]{0,31}$")
_SPACES = re.compile(r"\s+")


def normalize_code(value: str, *, what: str) -> str:
    normalized = value.strip().upper()
    if not _CODE_PATTERN.match(normalized):
        raise ValueError(f"Invalid {what} code: {value!r}")
    return normalized


def normalize_name(value: str) -> str:
    """Collapse whitespace and title-case a human readable name."""
    collapsed = _SPACES.sub(" ", value).strip()
    if not collapsed:
        raise ValueError("Name must not be blank")
    return collapsed.title()


@dataclass(frozen=True, slots=True)
class SchoolKey:
    code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", normalize_code(self.code, what="school"))

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True, slots=True)
class CourseKey:
    school: SchoolKey
    code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", normalize_code(self.code, what="course"))

    def __str__(self) -> str:
        return f"{self.school}/{self.code}"
