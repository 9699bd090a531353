"""People and the identity accounts they sign in with."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from campus_sync.domain.model.base import Entity, Obviable

if TYPE_CHECKING:
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class Account(Entity):
    """Upstream identity record. Role assignments hang off the account."""

    username: str
    phone_number: str
    phone_confirmed: bool = False


@dataclass(eq=False, kw_only=True)
class Person(Obviable):
    account_id: UUID
    full_name: str
    email: str | None = None
    # 0 for people with their own phone, 1.. for dependents sharing a guardian's
    dependence_order: int = 0

    @property
    def is_self_determined(self) -> bool:
        return self.dependence_order == 0
