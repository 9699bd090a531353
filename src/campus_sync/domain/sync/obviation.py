"""Obviation: retire stored rows the source no longer carries.

Candidates are always computed per school of the current run, so a
single-school run never touches another school's rows.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from campus_sync.domain.model import Obviable, RoleRank

from .context import BANNER

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Collection, Sequence
    from uuid import UUID

    from campus_sync.domain.model import Person, RoleCategory
    from campus_sync.domain.ports import (
        AccountRepository,
        ObviableRepository,
        PersonRepository,
    )

    from .keys import SchoolKeys

log = getLogger(__name__)


class GroupObviator[TEntity: Obviable](Protocol):
    """Retire a group of candidates and return the ids actually obviated."""

    async def __call__(self, candidates: Sequence[TEntity]) -> list[UUID]: ...


type SchoolScopedFinder[TEntity] = Callable[[UUID], Awaitable[Sequence[TEntity]]]


@dataclass(slots=True)
class RepositoryObviator[TEntity: Obviable]:
    """Plain obviation through the kind's repository."""

    repository: ObviableRepository[TEntity]
    label: str
    verbose: bool = True

    async def __call__(self, candidates: Sequence[TEntity]) -> list[UUID]:
        if not candidates:
            return []
        if self.verbose:
            for entity in candidates:
                log.info("Obviating %s %s", self.label, entity.id)
        obviated = await self.repository.obviate_batch(candidates)
        return [entity.id for entity in obviated]


@dataclass(slots=True)
class PersonObviator:
    """Obviation of people, exempting those who still hold other roles.

    ``NONE`` is ignored when deciding. A person whose remaining roles all
    belong to ``category`` is obviated and left with ``NONE`` only. A person
    who also holds roles of another category stays live and merely loses the
    roles of ``category``.
    """

    category: RoleCategory
    persons: PersonRepository
    accounts: AccountRepository
    verbose: bool = True
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def __call__(self, candidates: Sequence[Person]) -> list[UUID]:
        obviated: list[UUID] = []
        for person in candidates:
            # role check and soft delete must not interleave with the other person phase
            async with self.lock:
                if person.is_obviated or not await self._retire_roles(person):
                    continue
                retired = await self.persons.obviate_batch([person])
                obviated.extend(entity.id for entity in retired)
        return obviated

    async def _retire_roles(self, person: Person) -> bool:
        """Strip this category's roles; True when the person should be obviated."""

        roles = await self.accounts.roles(person.account_id)
        ranked = {role for role in roles if role is not RoleRank.NONE}
        own = {role for role in ranked if role.category is self.category}
        if ranked == own:
            await self.accounts.remove_roles(person.account_id, ranked)
            await self.accounts.add_roles(person.account_id, [RoleRank.NONE])
            if self.verbose:
                log.info("Obviating person %s", person.full_name)
            return True

        log.warning(
            "Obviation of person %s skipped because they hold roles outside %s",
            person.full_name,
            self.category,
        )
        await self.accounts.remove_roles(person.account_id, own)
        return False


async def obviate_per_school[TEntity: Obviable](
    *,
    label: str,
    schools: SchoolKeys,
    keep: Collection[UUID],
    find_live: SchoolScopedFinder[TEntity],
    obviate: GroupObviator[TEntity],
) -> list[UUID]:
    """Obviate live rows of each school in ``schools`` that are not in ``keep``."""

    log.info(BANNER)
    log.info("%s obviation started.", label.capitalize())

    keep_ids = set(keep)
    obviated: list[UUID] = []
    for school_id, key in schools.items():
        live = await find_live(school_id)
        candidates = [
            entity for entity in live if entity.id not in keep_ids and not entity.is_obviated
        ]
        log.info(
            "%s %s candidates for obviation in school \"%s\".", len(candidates), label, key
        )
        obviated.extend(await obviate(candidates))

    log.info("%s obviation finished: %s obviated.", label.capitalize(), len(obviated))
    return obviated
