"""Generic upsert core shared by every synchronizer.

Responsibilities of this module:
- resolve the natural key of each incoming record
- find the stored row for that key, obviated rows included
- split the batch into creates, updates and restores
- reject a single malformed record without failing the batch

Key resolution and entity construction are strategy-specific; the split and
the batch persistence are the same for every kind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Protocol, cast

from campus_sync.domain.model import Entity, Obviable

from .errors import RECORD_ERRORS

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable

    from campus_sync.domain.ports import ObviableRepository, Repository

log = getLogger(__name__)


class UpsertStrategy[TRecord, TKey: Hashable, TEntity: Entity](Protocol):
    """Kind-specific half of the upsert core."""

    label: str

    def describe(self, record: TRecord) -> str: ...

    def resolve_key(self, record: TRecord) -> TKey: ...

    def to_entity(self, record: TRecord, key: TKey) -> TEntity: ...

    async def find_existing(self, key: TKey) -> TEntity | None: ...


@dataclass(slots=True, kw_only=True)
class Upsert[TRecord, TEntity: Entity]:
    """Outcome of planning one record."""

    record: TRecord
    entity: TEntity
    created: bool = False
    restored: bool = False
    # another record of the batch already planned the same key
    duplicate: bool = False


@dataclass(slots=True)
class UpsertPlan[TRecord, TEntity: Entity]:
    items: list[Upsert[TRecord, TEntity]] = field(default_factory=list)
    rejected: list[TRecord] = field(default_factory=list)

    @property
    def planned(self) -> list[Upsert[TRecord, TEntity]]:
        return [item for item in self.items if not item.duplicate]

    @property
    def to_create(self) -> list[TEntity]:
        return [item.entity for item in self.planned if item.created]

    @property
    def to_update(self) -> list[TEntity]:
        return [item.entity for item in self.planned if not item.created]

    @property
    def to_restore(self) -> list[TEntity]:
        return [item.entity for item in self.planned if item.restored]

    @property
    def entities(self) -> list[TEntity]:
        return [item.entity for item in self.planned]

    def planned_pairs(self) -> list[tuple[TRecord, TEntity]]:
        return [(item.record, item.entity) for item in self.planned]


async def plan_upserts[TRecord, TKey: Hashable, TEntity: Entity](
    records: Iterable[TRecord],
    strategy: UpsertStrategy[TRecord, TKey, TEntity],
    *,
    verbose: bool = True,
) -> UpsertPlan[TRecord, TEntity]:
    """Match ``records`` against the store without persisting anything.

    A matched row receives every payload field of the incoming record. A
    matched row that was obviated is additionally scheduled for restore.
    """

    plan: UpsertPlan[TRecord, TEntity] = UpsertPlan()
    seen: dict[TKey, TEntity] = {}

    for record in records:
        try:
            key = strategy.resolve_key(record)
            incoming = strategy.to_entity(record, key)

            if key in seen:
                log.warning(
                    "Duplicate %s %s in batch; merged into the first occurrence",
                    strategy.label,
                    strategy.describe(record),
                )
                planned = seen[key]
                planned.merge(incoming)
                plan.items.append(Upsert(record=record, entity=planned, duplicate=True))
                continue

            existing = await strategy.find_existing(key)
        except RECORD_ERRORS:
            log.exception("Invalid %s %s skipped", strategy.label, strategy.describe(record))
            plan.rejected.append(record)
            continue

        if existing is None:
            if verbose:
                log.info("Creating %s %s", strategy.label, strategy.describe(record))
            seen[key] = incoming
            plan.items.append(Upsert(record=record, entity=incoming, created=True))
            continue

        existing.merge(incoming)
        restored = isinstance(existing, Obviable) and existing.is_obviated
        if verbose:
            log.info(
                "%s %s %s",
                "Restoring" if restored else "Updating",
                strategy.label,
                strategy.describe(record),
            )
        seen[key] = existing
        plan.items.append(Upsert(record=record, entity=existing, restored=restored))

    return plan


async def apply_plan[TEntity: Entity](
    plan: UpsertPlan[Any, TEntity],
    repository: Repository[TEntity],
) -> list[TEntity]:
    """Persist a plan: create, then update, then restore."""

    to_create = plan.to_create
    to_update = plan.to_update
    to_restore = plan.to_restore

    if to_create:
        await repository.create_batch(to_create)
    if to_update:
        await repository.update_batch(to_update)
    if to_restore:
        obviable = cast("ObviableRepository[Any]", repository)
        await obviable.restore_batch(to_restore)
    return plan.entities
