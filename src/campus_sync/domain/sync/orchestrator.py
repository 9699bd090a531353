"""Phase ordering for full and single-kind synchronization runs.

Schools run first and courses second; both feed their key maps forward.
Schedules, personnel and clients then run concurrently on the same unit of
work. Classroom obviation waits for all three to finish.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from campus_sync.domain.model import SchoolKey

from .context import BANNER, SyncContext
from .courses import CourseSynchronizer
from .errors import InvalidSchoolScopeError, SyncPhaseError
from .persons import ClientSynchronizer, PersonnelSynchronizer
from .phase import PhaseResult, SyncKind, run_phase
from .schedules import ScheduleSynchronizer
from .schools import SchoolSynchronizer

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from uuid import UUID

    from campus_sync.domain.ports import CampusUnitOfWork, ContentSource

    from .keys import CourseKeys, SchoolKeys

log = getLogger(__name__)

CLASSROOMS_PHASE = "classrooms"
BOOKS_PHASE = "books"
LECTURES_PHASE = "lectures"


@dataclass(frozen=True, slots=True)
class SyncReport:
    """Per-phase outcome of a full run, in execution order."""

    phases: tuple[PhaseResult, ...] = ()

    def __getitem__(self, phase: str) -> PhaseResult:
        for result in self.phases:
            if result.phase == phase:
                return result
        raise KeyError(phase)

    @property
    def phase_names(self) -> tuple[str, ...]:
        return tuple(result.phase for result in self.phases)


def parse_scope(school: str | SchoolKey | None) -> SchoolKey | None:
    """Validate the optional single-school scope of a run."""

    if school is None or isinstance(school, SchoolKey):
        return school
    try:
        return SchoolKey(school)
    except ValueError as exc:
        raise InvalidSchoolScopeError(str(exc)) from exc


@dataclass(slots=True)
class SyncOrchestrator:
    """Run synchronizations against one content source.

    Each run opens its own unit of work from ``unit_of_work_factory``.
    Completed phases are committed and stay committed when a later phase fails.
    """

    unit_of_work_factory: Callable[[], CampusUnitOfWork]
    source: ContentSource
    verbose: bool = True

    async def sync_all(self, *, school: str | SchoolKey | None = None) -> SyncReport:
        scope = parse_scope(school)
        log.info(BANNER)
        log.info("Full synchronization started%s.", f" for school {scope}" if scope else "")

        async with self.unit_of_work_factory() as uow:
            context = SyncContext(uow=uow, source=self.source, scope=scope, verbose=self.verbose)
            commit = uow.commit

            schools, school_result = await run_phase(SchoolSynchronizer(context), commit=commit)
            courses, course_result = await run_phase(
                CourseSynchronizer(context, schools.keys), commit=commit
            )

            schedule_sync = ScheduleSynchronizer(context, schools.keys, courses.keys)
            personnel_sync = PersonnelSynchronizer(context, schools.keys, courses.keys)
            client_sync = ClientSynchronizer(context, schools.keys, courses.keys)
            try:
                async with asyncio.TaskGroup() as group:
                    schedule_task = group.create_task(run_phase(schedule_sync, commit=commit))
                    personnel_task = group.create_task(run_phase(personnel_sync, commit=commit))
                    client_task = group.create_task(run_phase(client_sync, commit=commit))
            except ExceptionGroup as errors:
                error = _first_phase_error(errors)
                raise error from error.__cause__

            schedules, schedule_result = schedule_task.result()
            lecture_result = PhaseResult(
                phase=LECTURES_PHASE,
                pulled_ids=schedules.lecture_ids,
                obviated_ids=(
                    *schedules.obviated_lecture_ids,
                    *schedule_sync.obviated_lecture_ids,
                ),
            )
            classroom_result = await self._obviate_classrooms(
                schedule_sync, schedules.classroom_ids, commit=commit
            )

        log.info("Full synchronization finished.")
        return SyncReport(
            phases=(
                school_result,
                course_result,
                PhaseResult(phase=BOOKS_PHASE, pulled_ids=courses.book_ids),
                schedule_result,
                lecture_result,
                personnel_task.result()[1],
                client_task.result()[1],
                classroom_result,
            )
        )

    async def sync_kind(
        self, kind: SyncKind, *, school: str | SchoolKey | None = None
    ) -> PhaseResult:
        """Fully synchronize one kind.

        Prerequisite phases are pulled, never obviated, so that the key maps
        the target kind depends on are current.
        """

        scope = parse_scope(school)
        kind = SyncKind(kind)

        async with self.unit_of_work_factory() as uow:
            context = SyncContext(uow=uow, source=self.source, scope=scope, verbose=self.verbose)
            commit = uow.commit

            school_sync = SchoolSynchronizer(context)
            if kind is SyncKind.SCHOOLS:
                return (await run_phase(school_sync, commit=commit))[1]
            schools, _ = await run_phase(school_sync, commit=commit, obviate=False)

            course_sync = CourseSynchronizer(context, schools.keys)
            if kind is SyncKind.COURSES:
                return (await run_phase(course_sync, commit=commit))[1]
            courses, _ = await run_phase(course_sync, commit=commit, obviate=False)

            return await self._sync_dependent(kind, context, schools.keys, courses.keys)

    async def _sync_dependent(
        self,
        kind: SyncKind,
        context: SyncContext,
        schools: SchoolKeys,
        courses: CourseKeys,
    ) -> PhaseResult:
        commit = context.uow.commit
        if kind is SyncKind.SCHEDULES:
            schedule_sync = ScheduleSynchronizer(context, schools, courses)
            pulled, result = await run_phase(schedule_sync, commit=commit)
            await self._obviate_classrooms(schedule_sync, pulled.classroom_ids, commit=commit)
            return result
        if kind is SyncKind.PERSONNEL:
            synchronizer = PersonnelSynchronizer(context, schools, courses)
        else:
            synchronizer = ClientSynchronizer(context, schools, courses)
        _, result = await run_phase(synchronizer, commit=commit)
        return result

    async def _obviate_classrooms(
        self,
        synchronizer: ScheduleSynchronizer,
        keep: tuple[UUID, ...],
        *,
        commit: Callable[[], Awaitable[None]],
    ) -> PhaseResult:
        try:
            obviated = await synchronizer.obviate_classrooms(keep)
            await commit()
        except Exception as exc:
            log.exception("Classroom obviation failed")
            raise SyncPhaseError(CLASSROOMS_PHASE, str(exc)) from exc
        return PhaseResult(phase=CLASSROOMS_PHASE, pulled_ids=keep, obviated_ids=tuple(obviated))


def _first_phase_error(errors: ExceptionGroup[Exception]) -> Exception:
    for error in errors.exceptions:
        if isinstance(error, SyncPhaseError):
            return error
    return errors.exceptions[0]
