"""Identity, role, membership and enrollment linking for people."""

from __future__ import annotations

import re
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from campus_sync.domain.model import (
    Account,
    CourseKey,
    Person,
    RoleRank,
    normalize_name,
)

from .errors import UnresolvedReferenceError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from campus_sync.domain.model import School, SchoolKey
    from campus_sync.domain.ports import CampusRepositories, ContactRecord

    from .keys import CourseIndex

log = getLogger(__name__)

_PHONE_NOISE = re.compile(r"[\s().\-/]")
_PHONE_DIGITS = re.compile(r"^\+?\d{4,20}$")

_STAFF_RANKS = frozenset(role for role in RoleRank if role.is_staff)


def normalize_phone(raw: str, *, country_code: str = "") -> str:
    """Canonical phone number, prefixed with ``country_code`` when local."""

    phone = _PHONE_NOISE.sub("", raw)
    if phone.startswith("00"):
        phone = f"+{phone[2:]}"
    elif not phone.startswith("+") and country_code:
        phone = f"{country_code.strip()}{phone.lstrip('0')}"
    if not _PHONE_DIGITS.match(phone):
        raise ValueError(f"Invalid phone number: {raw!r}")
    return phone


def make_username(school: SchoolKey, phone: str, dependence_order: int = 0) -> str:
    """Usernames are scoped by school; dependents carry their order as suffix."""

    username = f"{school.code.lower()}_{phone.lstrip('+')}"
    if dependence_order:
        username = f"{username}_{dependence_order}"
    return username


def roles_to_remove(current: Iterable[RoleRank], target: RoleRank) -> set[RoleRank]:
    """Roles that cannot be held together with ``target``.

    Staff roles only coexist with ``PARENT``, ``PARENT`` only coexists with
    staff roles, and ``STUDENT`` is exclusive. ``NONE`` always goes.
    """

    if target.is_staff:
        compatible: frozenset[RoleRank] = frozenset({RoleRank.PARENT})
    elif target is RoleRank.PARENT:
        compatible = _STAFF_RANKS
    else:
        compatible = frozenset()
    return {role for role in current if role is not target and role not in compatible}


@dataclass(slots=True)
class IdentityLinker:
    """Upserts people with their accounts and links them to schools and courses."""

    repositories: CampusRepositories
    verbose: bool = True

    async def put_account(self, username: str, phone: str) -> Account:
        accounts = self.repositories.accounts
        account = await accounts.find_by_username(username)
        if account is None:
            account = Account(username=username, phone_number=phone)
            await accounts.create_batch([account])
            return account
        return await self.rename_account(account, username, phone)

    async def rename_account(self, account: Account, username: str, phone: str) -> Account:
        if account.username != username or account.phone_number != phone:
            account.username = username
            account.phone_number = phone
            await self.repositories.accounts.update_batch([account])
        return account

    async def put_person(
        self,
        account: Account,
        contact: ContactRecord,
        *,
        dependence_order: int = 0,
    ) -> Person:
        persons = self.repositories.persons
        incoming = Person(
            account_id=account.id,
            full_name=normalize_name(contact.full_name),
            email=contact.email,
            dependence_order=dependence_order,
        )
        existing = await persons.find_by_account(account.id)
        if existing is None:
            if self.verbose:
                log.info("Creating person %s", incoming.full_name)
            await persons.create_batch([incoming])
            return incoming

        existing.merge(incoming)
        await persons.update_batch([existing])
        if existing.is_obviated:
            if self.verbose:
                log.info("Restoring person %s", existing.full_name)
            await persons.restore_batch([existing])
        elif self.verbose:
            log.info("Updating person %s", existing.full_name)
        return existing

    async def put_contact(
        self, school: School, contact: ContactRecord, *, role: RoleRank
    ) -> Person:
        """Upsert a person who signs in with their own phone."""

        if not contact.phone:
            raise ValueError(f"{role.value.capitalize()} {contact.full_name!r} has no phone")
        phone = normalize_phone(contact.phone, country_code=school.phone_country_code)
        account = await self.put_account(make_username(school.key, phone), phone)
        person = await self.put_person(account, contact)
        await self.assign_role(person, role)
        await self.put_membership(person, school.id)
        return person

    async def assign_role(self, person: Person, role: RoleRank) -> None:
        accounts = self.repositories.accounts
        current = await accounts.roles(person.account_id)
        removed = roles_to_remove(current, role)
        if removed:
            await accounts.remove_roles(person.account_id, removed)
        if role not in current:
            await accounts.add_roles(person.account_id, [role])

    async def put_membership(self, person: Person, school_id: UUID) -> None:
        """Make ``school_id`` the only school of ``person``."""

        persons = self.repositories.persons
        current = await persons.school_ids(person.id)
        if current - {school_id}:
            await persons.remove_schools(person.id, current - {school_id})
        if school_id not in current:
            await persons.add_schools(person.id, [school_id])

    async def put_enrollments(
        self,
        person: Person,
        requested: Sequence[str],
        *,
        school: SchoolKey,
        courses: CourseIndex,
    ) -> set[UUID]:
        """Enroll ``person`` in exactly the requested courses of ``school``.

        An empty request means every course of the school in this run.
        Unknown codes are logged and skipped.
        """

        if requested:
            target: set[UUID] = set()
            for code in requested:
                try:
                    course_id = courses.resolve(CourseKey(school, code))
                except ValueError:
                    course_id = None
                if course_id is None:
                    log.warning(
                        "Course %r of %s not found in school %s", code, person.full_name, school
                    )
                    continue
                target.add(course_id)
        else:
            target = set(courses.for_school(school))

        persons = self.repositories.persons
        current = await persons.course_ids(person.id)
        if current - target:
            await persons.remove_courses(person.id, current - target)
        if target - current:
            await persons.add_courses(person.id, target - current)
        return target

    async def find_dependent(self, guardians: Sequence[Person], full_name: str) -> Person | None:
        """Dependent of any of ``guardians`` with the given name, case-insensitively."""

        wanted = normalize_name(full_name).casefold()
        for guardian in guardians:
            for dependent in await self.repositories.persons.dependents(guardian.id):
                if dependent.full_name.casefold() == wanted:
                    return dependent
        return None

    async def next_dependence_order(self, guardian: Person) -> int:
        dependents = await self.repositories.persons.dependents(guardian.id)
        return max((item.dependence_order for item in dependents), default=0) + 1

    async def link_guardians(self, guardians: Sequence[Person], dependent: Person) -> None:
        persons = self.repositories.persons
        for guardian in guardians:
            linked = await persons.dependents(guardian.id)
            if all(item.id != dependent.id for item in linked):
                await persons.link_dependent(guardian.id, dependent.id)

    async def account_of(self, person: Person) -> Account:
        account = await self.repositories.accounts.find_by_id(person.account_id)
        if account is None:
            raise UnresolvedReferenceError(f"Account of person {person.full_name} is missing")
        return account
