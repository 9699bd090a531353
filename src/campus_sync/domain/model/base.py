"""
Base building blocks:
identity, timestamps and the obviation (soft delete) lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, ClassVar, Self
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from datetime import datetime


def new_id() -> UUID:
    return uuid4()


@dataclass(eq=False, kw_only=True)
class Entity:
    """Store identity exists as soon as the entity is constructed."""

    id: UUID = field(default_factory=new_id)
    created_at: datetime | None = field(default=None, repr=False)
    updated_at: datetime | None = field(default=None, repr=False)

    # fields that belong to the stored row rather than to the incoming payload
    IDENTITY_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"id", "created_at", "updated_at", "obviated_at"}
    )

    def merge(self, incoming: Self) -> None:
        """Overwrite every payload field with the values of ``incoming``.

        The store id and lifecycle timestamps of ``self`` are preserved.
        """
        if type(incoming) is not type(self):
            raise TypeError(
                f"Cannot merge {type(incoming).__name__} into {type(self).__name__}"
            )
        for item in fields(self):
            if item.name in self.IDENTITY_FIELDS:
                continue
            setattr(self, item.name, getattr(incoming, item.name))


@dataclass(eq=False, kw_only=True)
class Obviable(Entity):
    """Entity retired by timestamp instead of being deleted."""

    obviated_at: datetime | None = field(default=None, repr=False)

    @property
    def is_obviated(self) -> bool:
        return self.obviated_at is not None

    def obviate(self, at: datetime) -> None:
        if self.obviated_at is None:
            self.obviated_at = at

    def restore(self) -> None:
        self.obviated_at = None
