"""Synchronization of people: staff and clients (students with their parents).

Both synchronizers upsert accounts and people, assign roles, and reconcile
school membership and course enrollment. They differ in which role category
they own, which matters when a person is about to be obviated.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar

from campus_sync.domain.model import RoleCategory, RoleRank
from campus_sync.domain.ports import ClientRecord, PersonnelRecord

from .context import fetch_for_schools
from .errors import RECORD_ERRORS, UnresolvedReferenceError
from .keys import CourseIndex
from .obviation import PersonObviator, obviate_per_school
from .roles import IdentityLinker, make_username, normalize_phone

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from uuid import UUID

    from campus_sync.domain.model import Person, School

    from .context import SyncContext
    from .keys import CourseKeys, SchoolKeys

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PersonPull:
    ids: tuple[UUID, ...] = ()


@dataclass(slots=True)
class _PersonSynchronizer:
    context: SyncContext
    schools: SchoolKeys
    courses: CourseKeys
    phase: ClassVar[str]
    category: ClassVar[RoleCategory]

    @property
    def linker(self) -> IdentityLinker:
        return IdentityLinker(self.context.repositories, verbose=self.context.verbose)

    async def school(self, school_id: UUID) -> School:
        school = await self.context.repositories.schools.find_by_id(school_id)
        if school is None:
            raise UnresolvedReferenceError(f"School {self.schools[school_id]} vanished")
        return school

    async def find_live(self, school_id: UUID) -> list[Person]:
        """Live members of ``school_id`` holding at least one role of this category."""

        repositories = self.context.repositories
        found: list[Person] = []
        for person in await repositories.persons.find_live_for_school(school_id):
            roles = await repositories.accounts.roles(person.account_id)
            if any(role.category is self.category for role in roles):
                found.append(person)
        return found

    async def obviate(self, keep: Collection[UUID]) -> list[UUID]:
        repositories = self.context.repositories
        return await obviate_per_school(
            label=self.phase,
            schools=self.schools,
            keep=keep,
            find_live=self.find_live,
            obviate=PersonObviator(
                self.category,
                repositories.persons,
                repositories.accounts,
                verbose=self.context.verbose,
                lock=self.context.people_lock,
            ),
        )

    def obviation_skip_reason(self) -> str | None:
        return None


@dataclass(slots=True)
class PersonnelSynchronizer(_PersonSynchronizer):
    """Staff members: teachers, secretaries, administrators and owners."""

    phase: ClassVar[str] = "personnel"
    category: ClassVar[RoleCategory] = RoleCategory.STAFF

    async def pull(self) -> PersonPull:
        grouped = await fetch_for_schools(self.context, PersonnelRecord, self.schools)
        index = CourseIndex(self.courses)
        linker = self.linker

        pulled: list[UUID] = []
        for school_id, records in grouped.items():
            school = await self.school(school_id)
            for record in records:
                try:
                    async with self.context.people_lock:
                        person = await self._put_staff(linker, school, record, index)
                except RECORD_ERRORS:
                    log.exception("Invalid personnel record %r skipped", record.title)
                    continue
                pulled.append(person.id)
        return PersonPull(ids=tuple(pulled))

    async def _put_staff(
        self,
        linker: IdentityLinker,
        school: School,
        record: PersonnelRecord,
        courses: CourseIndex,
    ) -> Person:
        if not record.role.is_staff:
            raise ValueError(f"{record.role} is not a staff role")
        person = await linker.put_contact(school, record.contact, role=record.role)
        await linker.put_enrollments(
            person, record.contact.course_codes, school=school.key, courses=courses
        )
        return person


@dataclass(slots=True)
class ClientSynchronizer(_PersonSynchronizer):
    """Students and their parents.

    Self-determined students sign in with their own phone. Dependent students
    share the phone of their first parent and are told apart by their
    dependence order.
    """

    phase: ClassVar[str] = "clients"
    category: ClassVar[RoleCategory] = RoleCategory.CLIENT

    async def pull(self) -> PersonPull:
        grouped = await fetch_for_schools(self.context, ClientRecord, self.schools)
        index = CourseIndex(self.courses)

        pulled: list[UUID] = []
        for school_id, records in grouped.items():
            school = await self.school(school_id)
            for record in records:
                try:
                    async with self.context.people_lock:
                        people = await self._put_client(school, record, index)
                except RECORD_ERRORS:
                    log.exception("Invalid client record %r skipped", record.title)
                    continue
                pulled.extend(person.id for person in people)
        return PersonPull(ids=tuple(dict.fromkeys(pulled)))

    async def _put_client(
        self, school: School, record: ClientRecord, courses: CourseIndex
    ) -> list[Person]:
        linker = self.linker
        parents = [
            await linker.put_contact(school, parent, role=RoleRank.PARENT)
            for parent in record.parents
        ]

        if record.is_self_determined:
            student = await linker.put_contact(school, record.student, role=RoleRank.STUDENT)
        else:
            student = await self._put_dependent(school, record, parents)
            await linker.assign_role(student, RoleRank.STUDENT)
            await linker.put_membership(student, school.id)

        await linker.put_enrollments(
            student, record.student.course_codes, school=school.key, courses=courses
        )
        await linker.link_guardians(parents, student)
        return [*parents, student]

    async def _put_dependent(
        self, school: School, record: ClientRecord, parents: Sequence[Person]
    ) -> Person:
        if not parents:
            raise ValueError(f"Student {record.student.full_name!r} has neither phone nor parent")
        linker = self.linker
        guardian = parents[0]
        guardian_account = await linker.account_of(guardian)

        existing = await linker.find_dependent(parents, record.student.full_name)
        if existing is not None and not existing.is_self_determined:
            order = existing.dependence_order
        else:
            order = await linker.next_dependence_order(guardian)

        phone = normalize_phone(
            guardian_account.phone_number, country_code=school.phone_country_code
        )
        username = make_username(school.key, phone, order)
        if existing is None:
            account = await linker.put_account(username, phone)
        else:
            account = await linker.rename_account(
                await linker.account_of(existing), username, phone
            )
        return await linker.put_person(account, record.student, dependence_order=order)
