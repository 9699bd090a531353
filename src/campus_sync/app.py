"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from campus_sync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCampusUnitOfWork,
    is_started,
    startup,
)
from campus_sync.adapters.wordpress import WordPressSource
from campus_sync.config import get_sync_config
from campus_sync.domain.ports.unit_of_work import CampusUnitOfWork
from campus_sync.domain.sync import SyncKind, SyncOrchestrator
from campus_sync.domain.sync import clean_obviated as clean_obviated_rows

if TYPE_CHECKING:
    from campus_sync.config import SyncConfig
    from campus_sync.domain.model import SchoolKey
    from campus_sync.domain.ports.fetching import ContentSource
    from campus_sync.domain.sync import CleanupReport, PhaseResult, SyncReport

UnitOfWorkFactory = Callable[[], CampusUnitOfWork]


log = getLogger(__name__)


async def _ensure_started() -> None:
    if not is_started():
        await startup()


def _orchestrator(
    source: ContentSource | None,
    unit_of_work_factory: UnitOfWorkFactory | None,
    config: SyncConfig,
) -> SyncOrchestrator:
    return SyncOrchestrator(
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyCampusUnitOfWork,
        source=source or WordPressSource(page_size=config.page_size),
        verbose=config.verbose,
    )


async def sync_all(
    *,
    school: str | SchoolKey | None = None,
    source: ContentSource | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: SyncConfig | None = None,
) -> SyncReport:
    """Synchronise every kind, optionally restricted to one school."""

    await _ensure_started()
    effective_config = config or get_sync_config()
    orchestrator = _orchestrator(source, unit_of_work_factory, effective_config)

    report = await orchestrator.sync_all(school=school)
    for result in report.phases:
        log.info(
            "%s: pulled=%s, obviated=%s%s",
            result.phase,
            len(result.pulled_ids),
            len(result.obviated_ids),
            " (obviation skipped)" if result.obviation_skipped else "",
        )
    return report


async def sync_kind(
    kind: SyncKind | str,
    *,
    school: str | SchoolKey | None = None,
    source: ContentSource | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: SyncConfig | None = None,
) -> PhaseResult:
    """Synchronise one kind after pulling the kinds it depends on."""

    await _ensure_started()
    effective_config = config or get_sync_config()
    orchestrator = _orchestrator(source, unit_of_work_factory, effective_config)

    result = await orchestrator.sync_kind(SyncKind(kind), school=school)
    log.info(
        f"Finished {result.phase} sync: pulled={len(result.pulled_ids)}, "
        f"obviated={len(result.obviated_ids)}"
    )
    return result


async def clean_obviated(
    age_threshold_days: int | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> CleanupReport:
    """Hard-delete rows obviated longer ago than the threshold."""

    await _ensure_started()
    days = get_sync_config().cleanup_age_days if age_threshold_days is None else age_threshold_days
    effective_uow = unit_of_work_factory or SqlAlchemyCampusUnitOfWork

    async with effective_uow() as uow:
        report = await clean_obviated_rows(uow, age_threshold_days=days)

    log.info(f"Finished cleanup: deleted={report.total}, orphan_accounts={report.orphan_accounts}")
    return report
