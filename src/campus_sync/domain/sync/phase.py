"""Phase contract: pull from the source, then obviate what was not pulled."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from .context import BANNER
from .errors import SyncPhaseError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Collection
    from uuid import UUID

log = getLogger(__name__)


class SyncKind(StrEnum):
    SCHOOLS = "schools"
    COURSES = "courses"
    SCHEDULES = "schedules"
    PERSONNEL = "personnel"
    CLIENTS = "clients"


@dataclass(frozen=True, slots=True)
class PhaseResult:
    """Ids touched by one phase of a run."""

    phase: str
    pulled_ids: tuple[UUID, ...] = ()
    obviated_ids: tuple[UUID, ...] = ()
    obviation_skipped: bool = False


class Pulled(Protocol):
    @property
    def ids(self) -> tuple[UUID, ...]: ...


class Synchronizer[TPulled: Pulled](Protocol):
    """Contract implemented by every per-kind synchronizer."""

    phase: str

    async def pull(self) -> TPulled: ...

    async def obviate(self, keep: Collection[UUID]) -> list[UUID]: ...

    def obviation_skip_reason(self) -> str | None: ...


async def run_phase[TPulled: Pulled](
    synchronizer: Synchronizer[TPulled],
    *,
    commit: Callable[[], Awaitable[None]],
    obviate: bool = True,
) -> tuple[TPulled, PhaseResult]:
    """Pull, commit, then obviate and commit again.

    Every failure escaping the synchronizer is reported as a
    :class:`SyncPhaseError` naming the phase.
    """

    phase = synchronizer.phase
    log.info(BANNER)
    log.info("%s synchronization started.", phase.capitalize())
    try:
        pulled = await synchronizer.pull()
        await commit()

        obviated: list[UUID] = []
        skip_reason = synchronizer.obviation_skip_reason() if obviate else None
        if skip_reason is not None:
            log.warning(skip_reason)
        elif obviate:
            obviated = await synchronizer.obviate(pulled.ids)
            await commit()
    except SyncPhaseError:
        raise
    except Exception as exc:
        log.exception("%s synchronization failed", phase.capitalize())
        raise SyncPhaseError(phase, str(exc)) from exc

    log.info(
        "%s synchronization finished: %s pulled, %s obviated.",
        phase.capitalize(),
        len(pulled.ids),
        len(obviated),
    )
    return pulled, PhaseResult(
        phase=phase,
        pulled_ids=pulled.ids,
        obviated_ids=tuple(obviated),
        obviation_skipped=skip_reason is not None,
    )
