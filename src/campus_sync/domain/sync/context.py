"""Shared state of one synchronization run."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from campus_sync.domain.model import SchoolKey

from .keys import SchoolIndex

if TYPE_CHECKING:
    from uuid import UUID

    from campus_sync.domain.ports import CampusRepositories, CampusUnitOfWork, ContentSource
    from campus_sync.domain.ports.fetching import SourceRecord

    from .keys import SchoolKeys

log = getLogger(__name__)

BANNER = "-" * 65


@dataclass(frozen=True, slots=True)
class SyncContext:
    """Collaborators every synchronizer of a run shares.

    ``scope`` is set when the run targets a single school instead of the
    whole catalogue. ``people_lock`` serialises person records of the
    concurrent staff and client phases, which may share accounts.
    """

    uow: CampusUnitOfWork
    source: ContentSource
    scope: SchoolKey | None = None
    verbose: bool = True
    people_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def repositories(self) -> CampusRepositories:
        return self.uow.repositories

    @property
    def single_school(self) -> bool:
        return self.scope is not None

    def detail(self, message: str, *args: object) -> None:
        """Per-record progress, only emitted in verbose mode."""
        if self.verbose:
            log.info(message, *args)


async def fetch_for_schools[TRecord: SourceRecord](
    context: SyncContext,
    record_type: type[TRecord],
    schools: SchoolKeys,
) -> dict[UUID, list[TRecord]]:
    """Fetch one kind of records and group them by the schools of this run.

    Records of schools outside the run are dropped so that one school's
    records are never matched against another's rows.
    """

    records = await context.source.fetch_records(record_type, school=context.scope)
    index = SchoolIndex(schools)
    grouped: dict[UUID, list[TRecord]] = {school_id: [] for school_id in schools}
    for record in records:
        school_id = index.resolve(record.school_code)
        if school_id is None:
            if record.school_code is None:
                log.error("Record %r names no school and is skipped", record.title)
            else:
                log.debug(
                    "Record %r belongs to school %r outside this run",
                    record.title,
                    record.school_code,
                )
            continue
        grouped[school_id].append(record)

    for school_id, items in grouped.items():
        log.info(
            "%s %s records found for school \"%s\".",
            len(items),
            record_type.KIND,
            schools[school_id],
        )
    return grouped
