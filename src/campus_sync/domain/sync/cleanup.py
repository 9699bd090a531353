"""Permanent removal of rows that stayed obviated past a grace period."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .context import BANNER

if TYPE_CHECKING:
    from collections.abc import Mapping

    from campus_sync.domain.ports import CampusUnitOfWork, ObviableRepository

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CleanupReport:
    cutoff: datetime
    deleted: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    orphan_accounts: int = 0

    @property
    def total(self) -> int:
        return sum(self.deleted.values()) + self.orphan_accounts


async def clean_obviated(
    uow: CampusUnitOfWork,
    *,
    age_threshold_days: int,
    now: datetime | None = None,
) -> CleanupReport:
    """Delete rows obviated more than ``age_threshold_days`` ago.

    Accounts left without a person are deleted afterwards. Live rows and rows
    obviated more recently are never touched.
    """

    if age_threshold_days < 0:
        raise ValueError("Age threshold must not be negative")
    cutoff = (now or datetime.now(UTC)) - timedelta(days=age_threshold_days)

    log.info(BANNER)
    log.info("Cleanup of rows obviated before %s started.", cutoff.isoformat())

    repositories = uow.repositories
    # dependents before the rows they reference
    targets: tuple[tuple[str, ObviableRepository[Any]], ...] = (
        ("lectures", repositories.lectures),
        ("schedules", repositories.schedules),
        ("classrooms", repositories.classrooms),
        ("courses", repositories.courses),
        ("persons", repositories.persons),
        ("schools", repositories.schools),
    )
    deleted: dict[str, int] = {}
    for name, repository in targets:
        deleted[name] = await repository.delete_obviated(before=cutoff)
        log.info("%s obviated %s deleted.", deleted[name], name)
    orphans = await repositories.accounts.delete_orphans()
    log.info("%s orphan accounts deleted.", orphans)
    await uow.commit()

    return CleanupReport(cutoff=cutoff, deleted=MappingProxyType(deleted), orphan_accounts=orphans)
