"""School (tenant) synchronization."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from campus_sync.domain.model import School, SchoolKey
from campus_sync.domain.ports import SchoolRecord

from .keys import EMPTY_SCHOOL_KEYS, freeze
from .obviation import RepositoryObviator
from .upsert import apply_plan, plan_upserts

if TYPE_CHECKING:
    from collections.abc import Collection
    from uuid import UUID

    from campus_sync.domain.ports import SchoolRepository

    from .context import SyncContext
    from .keys import SchoolKeys

log = getLogger(__name__)

SINGLE_SCHOOL_SKIP = "Schools obviation skipped due to specific school mode."


@dataclass(slots=True)
class SchoolStrategy:
    schools: SchoolRepository
    label: str = "school"

    def describe(self, record: SchoolRecord) -> str:
        return f"{record.title!r} ({record.code})"

    def resolve_key(self, record: SchoolRecord) -> SchoolKey:
        return SchoolKey(record.code)

    def to_entity(self, record: SchoolRecord, key: SchoolKey) -> School:
        # unknown zones raise ZoneInfoNotFoundError, a KeyError
        ZoneInfo(record.time_zone)
        return School(
            code=key.code,
            name=record.name,
            slug=record.slug,
            city=record.city,
            address=record.address,
            description=record.description,
            language=record.language,
            secondary_language=record.secondary_language,
            time_zone=record.time_zone,
            phone_country_code=record.phone_country_code,
        )

    async def find_existing(self, key: SchoolKey) -> School | None:
        return await self.schools.find_by_code(key.code)


@dataclass(frozen=True, slots=True)
class SchoolPull:
    keys: SchoolKeys = EMPTY_SCHOOL_KEYS

    @property
    def ids(self) -> tuple[UUID, ...]:
        return tuple(self.keys)


@dataclass(slots=True)
class SchoolSynchronizer:
    """Mirror school records; produces the school map for later phases."""

    context: SyncContext
    phase: str = field(default="schools", init=False)

    async def pull(self) -> SchoolPull:
        context = self.context
        records = await context.source.fetch_records(SchoolRecord, school=context.scope)
        if context.scope is not None:
            records = [record for record in records if _matches(record, context.scope)]
            if not records:
                log.warning("School %s not found in the source", context.scope)
        log.info("%s school records found.", len(records))

        schools = context.repositories.schools
        plan = await plan_upserts(records, SchoolStrategy(schools), verbose=context.verbose)
        entities = await apply_plan(plan, schools)
        return SchoolPull(keys=freeze((school.id, school.key) for school in entities))

    async def obviate(self, keep: Collection[UUID]) -> list[UUID]:
        schools = self.context.repositories.schools
        keep_ids = set(keep)
        candidates = [school for school in await schools.find_live() if school.id not in keep_ids]
        log.info("%s school candidates for obviation.", len(candidates))
        obviate = RepositoryObviator(schools, "school", verbose=self.context.verbose)
        return await obviate(candidates)

    def obviation_skip_reason(self) -> str | None:
        return SINGLE_SCHOOL_SKIP if self.context.single_school else None


def _matches(record: SchoolRecord, scope: SchoolKey) -> bool:
    try:
        return SchoolKey(record.code) == scope
    except ValueError:
        return False
