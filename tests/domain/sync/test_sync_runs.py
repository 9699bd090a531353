from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from typing import TYPE_CHECKING

import pytest

from campus_sync.domain.model import DayOfWeek, LectureStatus, RoleRank, SchoolKey
from campus_sync.domain.ports.fetching import (
    CourseRecord,
    PersonnelRecord,
    ScheduleRecord,
    SchoolRecord,
)
from campus_sync.domain.sync import (
    InvalidSchoolScopeError,
    SyncKind,
    SyncOrchestrator,
    SyncPhaseError,
)
from tests.helpers.campus import (
    FakeSource,
    acme_source,
    client_record,
    contact,
    course_record,
    schedule_record,
    school_record,
    staff_record,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from campus_sync.adapters.sqlalchemy.unit_of_work import SqlAlchemyCampusUnitOfWork
    from campus_sync.domain.model import Lecture

    UowFactory = Callable[[], SqlAlchemyCampusUnitOfWork]

ADA_PHONE = "0151 1234567"
ADA_USERNAME = "acme_491511234567"


async def _scheduled_lectures(factory: UowFactory, schedule_id: UUID) -> list[Lecture]:
    async with factory() as uow:
        return await uow.repositories.lectures.find_live_scheduled(schedule_id)


async def _roles(factory: UowFactory, username: str) -> set[RoleRank]:
    async with factory() as uow:
        account = await uow.repositories.accounts.find_by_username(username)
        assert account is not None
        return await uow.repositories.accounts.roles(account.id)


@pytest.mark.asyncio
async def test_full_sync_generates_weekly_lectures(sqlite_unit_of_work: UowFactory) -> None:
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, acme_source(), verbose=False)

    report = await orchestrator.sync_all()

    assert report.phase_names == (
        "schools",
        "courses",
        "books",
        "schedules",
        "lectures",
        "personnel",
        "clients",
        "classrooms",
    )
    (school_id,) = report["schools"].pulled_ids
    (schedule_id,) = report["schedules"].pulled_ids
    lectures = await _scheduled_lectures(sqlite_unit_of_work, schedule_id)
    async with sqlite_unit_of_work() as uow:
        classroom = await uow.repositories.classrooms.find_by_name(school_id, "R1")

    assert classroom is not None
    assert report["classrooms"].pulled_ids == (classroom.id,)
    assert len(lectures) == 13
    assert set(report["lectures"].pulled_ids) == {lecture.id for lecture in lectures}
    assert report["lectures"].obviated_ids == ()
    assert all(lecture.classroom_id == classroom.id for lecture in lectures)
    # 10:00 in Berlin is 09:00 UTC in winter and 08:00 UTC in summer
    assert lectures[0].start_at == datetime(2025, 1, 6, 9, 0, tzinfo=UTC)
    assert lectures[-1].start_at == datetime(2025, 3, 31, 8, 0, tzinfo=UTC)
    assert lectures[-1].end_at == datetime(2025, 3, 31, 9, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_resync_is_idempotent(sqlite_unit_of_work: UowFactory) -> None:
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, acme_source(), verbose=False)

    first = await orchestrator.sync_all()
    second = await orchestrator.sync_all()

    for phase in first.phase_names:
        assert set(second[phase].pulled_ids) == set(first[phase].pulled_ids)
        assert second[phase].obviated_ids == ()
    (schedule_id,) = second["schedules"].pulled_ids
    assert len(await _scheduled_lectures(sqlite_unit_of_work, schedule_id)) == 13


@pytest.mark.asyncio
async def test_numeric_school_code_term(sqlite_unit_of_work: UowFactory) -> None:
    source = FakeSource().put(
        school_record("42", time_zone="UTC"),
        course_record(school="42", first_date=date(2024, 1, 1), last_date=date(2024, 3, 31)),
        schedule_record(school="42"),
    )

    report = await SyncOrchestrator(sqlite_unit_of_work, source, verbose=False).sync_all()

    (schedule_id,) = report["schedules"].pulled_ids
    lectures = await _scheduled_lectures(sqlite_unit_of_work, schedule_id)
    assert len(lectures) == 13
    assert {lecture.start_at.weekday() for lecture in lectures} == {0}
    assert lectures[0].start_at == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)
    assert lectures[-1].end_at == datetime(2024, 3, 25, 11, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_changed_end_time_updates_existing_lectures(
    sqlite_unit_of_work: UowFactory,
) -> None:
    source = acme_source()
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)
    first = await orchestrator.sync_all()
    (schedule_id,) = first["schedules"].pulled_ids
    before = await _scheduled_lectures(sqlite_unit_of_work, schedule_id)

    source.replace(ScheduleRecord, [schedule_record(end=time(11, 30))])
    second = await orchestrator.sync_all()
    after = await _scheduled_lectures(sqlite_unit_of_work, schedule_id)

    assert second["schedules"].pulled_ids == (schedule_id,)
    assert {lecture.id for lecture in after} == {lecture.id for lecture in before}
    assert all(lecture.end_at - lecture.start_at == timedelta(minutes=90) for lecture in after)


@pytest.mark.asyncio
async def test_manually_changed_lecture_is_left_alone(sqlite_unit_of_work: UowFactory) -> None:
    source = acme_source()
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)
    first = await orchestrator.sync_all()
    (schedule_id,) = first["schedules"].pulled_ids

    async with sqlite_unit_of_work() as uow:
        lectures = await uow.repositories.lectures.find_live_scheduled(schedule_id)
        canceled = lectures[0]
        canceled.status = LectureStatus.CANCELED
        await uow.repositories.lectures.update_batch([canceled])
        await uow.commit()

    source.replace(ScheduleRecord, [schedule_record(end=time(11, 30))])
    await orchestrator.sync_all()

    async with sqlite_unit_of_work() as uow:
        stored = await uow.repositories.lectures.find_by_id(canceled.id)
    assert stored is not None
    assert stored.status is LectureStatus.CANCELED
    assert stored.obviated_at is None
    assert stored.end_at == datetime(2025, 1, 6, 10, 0, tzinfo=UTC)
    assert len(await _scheduled_lectures(sqlite_unit_of_work, schedule_id)) == 12


@pytest.mark.asyncio
async def test_removed_course_is_obviated_and_restored(sqlite_unit_of_work: UowFactory) -> None:
    source = acme_source()
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)
    first = await orchestrator.sync_all()
    (course_id,) = first["courses"].pulled_ids
    (schedule_id,) = first["schedules"].pulled_ids
    lecture_ids = {
        lecture.id for lecture in await _scheduled_lectures(sqlite_unit_of_work, schedule_id)
    }

    source.replace(CourseRecord, [])
    second = await orchestrator.sync_all()

    assert second["courses"].obviated_ids == (course_id,)
    assert second["schedules"].obviated_ids == (schedule_id,)
    assert set(second["lectures"].obviated_ids) == lecture_ids
    assert await _scheduled_lectures(sqlite_unit_of_work, schedule_id) == []

    source.replace(CourseRecord, [course_record()])
    third = await orchestrator.sync_all()

    assert third["courses"].pulled_ids == (course_id,)
    assert third["schedules"].pulled_ids == (schedule_id,)
    assert third["classrooms"].pulled_ids == first["classrooms"].pulled_ids
    assert set(third["lectures"].pulled_ids) == lecture_ids
    restored = await _scheduled_lectures(sqlite_unit_of_work, schedule_id)
    assert {lecture.id for lecture in restored} == lecture_ids
    async with sqlite_unit_of_work() as uow:
        course = await uow.repositories.courses.find_by_id(course_id)
    assert course is not None
    assert not course.is_obviated


@pytest.mark.asyncio
async def test_schedule_for_unknown_course_is_skipped(sqlite_unit_of_work: UowFactory) -> None:
    source = acme_source().put(
        schedule_record("GHOST", day_of_week=DayOfWeek.TUESDAY, classroom="R9")
    )

    report = await SyncOrchestrator(sqlite_unit_of_work, source, verbose=False).sync_all()

    (school_id,) = report["schools"].pulled_ids
    (schedule_id,) = report["schedules"].pulled_ids
    async with sqlite_unit_of_work() as uow:
        repositories = uow.repositories
        stored = await repositories.schedules.find_live_for_school(school_id)
        ghost_room = await repositories.classrooms.find_by_name(school_id, "R9")
        room = await repositories.classrooms.find_by_name(school_id, "R1")

    assert [schedule.id for schedule in stored] == [schedule_id]
    assert ghost_room is None
    assert room is not None
    assert report["classrooms"].pulled_ids == (room.id,)
    assert len(await _scheduled_lectures(sqlite_unit_of_work, schedule_id)) == 13


@pytest.mark.asyncio
async def test_single_school_run_never_obviates_other_schools(
    sqlite_unit_of_work: UowFactory,
) -> None:
    source = acme_source().put(school_record("BETA"), course_record("ART", school="BETA"))
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)
    await orchestrator.sync_all()

    source.replace(SchoolRecord, [school_record()])
    source.replace(CourseRecord, [course_record()])
    source.calls.clear()
    report = await orchestrator.sync_all(school="acme")

    assert report["schools"].obviation_skipped
    assert report["schools"].obviated_ids == ()
    assert report["courses"].obviated_ids == ()
    assert {school for _, school in source.calls} == {SchoolKey("ACME")}
    async with sqlite_unit_of_work() as uow:
        beta = await uow.repositories.schools.find_by_code("BETA")
        assert beta is not None
        beta_courses = await uow.repositories.courses.find_live_for_school(beta.id)
    assert not beta.is_obviated
    assert [course.code for course in beta_courses] == ["ART"]


@pytest.mark.asyncio
async def test_invalid_scope_is_rejected_before_fetching(sqlite_unit_of_work: UowFactory) -> None:
    source = acme_source()
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)

    with pytest.raises(InvalidSchoolScopeError):
        await orchestrator.sync_all(school="not a code!")

    assert source.calls == []


@pytest.mark.asyncio
async def test_phase_failure_keeps_committed_phases(sqlite_unit_of_work: UowFactory) -> None:
    source = acme_source()
    source.fail(CourseRecord, RuntimeError("source offline"))
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)

    with pytest.raises(SyncPhaseError) as excinfo:
        await orchestrator.sync_all()

    assert excinfo.value.phase == "courses"
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    async with sqlite_unit_of_work() as uow:
        assert await uow.repositories.schools.find_by_code("ACME") is not None


@pytest.mark.asyncio
async def test_concurrent_phase_failure_names_the_phase(sqlite_unit_of_work: UowFactory) -> None:
    source = FakeSource()
    source.fail(PersonnelRecord, RuntimeError("personnel feed down"))
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)

    with pytest.raises(SyncPhaseError) as excinfo:
        await orchestrator.sync_all()

    assert excinfo.value.phase == "personnel"
    assert isinstance(excinfo.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_sync_kind_pulls_prerequisites_without_obviating_them(
    sqlite_unit_of_work: UowFactory,
) -> None:
    source = acme_source().put(school_record("BETA"))
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)
    first = await orchestrator.sync_all()
    (beta_id,) = await _school_ids(sqlite_unit_of_work, "BETA")

    source.replace(SchoolRecord, [school_record()])
    result = await orchestrator.sync_kind(SyncKind.SCHEDULES)

    assert result.phase == "schedules"
    assert result.pulled_ids == first["schedules"].pulled_ids
    assert (await _school_ids(sqlite_unit_of_work, "BETA")) == {beta_id}

    schools = await orchestrator.sync_kind("schools")

    assert schools.obviated_ids == (beta_id,)
    assert (await _school_ids(sqlite_unit_of_work, "BETA")) == set()


async def _school_ids(factory: UowFactory, code: str) -> set[UUID]:
    async with factory() as uow:
        schools = await uow.repositories.schools.find_live()
    return {school.id for school in schools if school.code == code}


@pytest.mark.asyncio
async def test_staff_member_is_obviated_with_role_none(sqlite_unit_of_work: UowFactory) -> None:
    source = acme_source().put(staff_record("Grace Hopper", "0170 7654321"))
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)
    first = await orchestrator.sync_all()
    (grace_id,) = first["personnel"].pulled_ids

    source.replace(PersonnelRecord, [])
    second = await orchestrator.sync_all()

    assert second["personnel"].obviated_ids == (grace_id,)
    assert await _roles(sqlite_unit_of_work, "acme_491707654321") == {RoleRank.NONE}


@pytest.mark.asyncio
async def test_person_with_other_roles_is_exempt_from_obviation(
    sqlite_unit_of_work: UowFactory,
) -> None:
    ada = contact("Ada Lovelace", ADA_PHONE)
    source = acme_source().put(
        staff_record("Ada Lovelace", ADA_PHONE),
        client_record(contact("Byron Junior"), ada),
    )
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)
    first = await orchestrator.sync_all()
    (ada_id,) = first["personnel"].pulled_ids

    assert ada_id in first["clients"].pulled_ids
    assert await _roles(sqlite_unit_of_work, ADA_USERNAME) == {RoleRank.TEACHER, RoleRank.PARENT}

    source.replace(PersonnelRecord, [])
    second = await orchestrator.sync_all()

    assert second["personnel"].obviated_ids == ()
    assert await _roles(sqlite_unit_of_work, ADA_USERNAME) == {RoleRank.PARENT}
    async with sqlite_unit_of_work() as uow:
        person = await uow.repositories.persons.find_by_id(ada_id)
    assert person is not None
    assert not person.is_obviated


@pytest.mark.asyncio
async def test_staff_member_turning_parent_stays_live(sqlite_unit_of_work: UowFactory) -> None:
    ada = contact("Ada Lovelace", ADA_PHONE)
    source = acme_source().put(
        staff_record("Ada Lovelace", ADA_PHONE),
        staff_record("Grace Hopper", "0170 7654321"),
    )
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)
    first = await orchestrator.sync_all()
    ada_id, grace_id = first["personnel"].pulled_ids

    source.replace(PersonnelRecord, [])
    source.put(client_record(contact("Byron Junior"), ada))
    second = await orchestrator.sync_all()

    assert second["personnel"].obviated_ids == (grace_id,)
    assert ada_id in second["clients"].pulled_ids
    assert await _roles(sqlite_unit_of_work, ADA_USERNAME) == {RoleRank.PARENT}
    assert await _roles(sqlite_unit_of_work, "acme_491707654321") == {RoleRank.NONE}
    async with sqlite_unit_of_work() as uow:
        ada_person = await uow.repositories.persons.find_by_id(ada_id)
        grace_person = await uow.repositories.persons.find_by_id(grace_id)
    assert ada_person is not None
    assert not ada_person.is_obviated
    assert grace_person is not None
    assert grace_person.is_obviated


@pytest.mark.asyncio
async def test_dependent_students_share_their_guardians_phone(
    sqlite_unit_of_work: UowFactory,
) -> None:
    ada = contact("Ada Lovelace", ADA_PHONE)
    source = acme_source().put(
        client_record(contact("Byron Junior"), ada),
        client_record(contact("ada junior", courses=["MATH1"]), ada),
    )
    orchestrator = SyncOrchestrator(sqlite_unit_of_work, source, verbose=False)

    first = await orchestrator.sync_all()
    second = await orchestrator.sync_all()

    assert len(first["clients"].pulled_ids) == 3
    assert set(second["clients"].pulled_ids) == set(first["clients"].pulled_ids)
    (course_id,) = first["courses"].pulled_ids
    async with sqlite_unit_of_work() as uow:
        repositories = uow.repositories
        guardian_account = await repositories.accounts.find_by_username(ADA_USERNAME)
        assert guardian_account is not None
        guardian = await repositories.persons.find_by_account(guardian_account.id)
        assert guardian is not None
        dependents = await repositories.persons.dependents(guardian.id)
        usernames = {
            account.username
            for account in [
                await repositories.accounts.find_by_id(person.account_id) for person in dependents
            ]
            if account is not None
        }
        guardian_courses = await repositories.persons.course_ids(guardian.id)
        enrolled = {
            person.full_name: await repositories.persons.course_ids(person.id)
            for person in dependents
        }

    assert [(person.full_name, person.dependence_order) for person in dependents] == [
        ("Byron Junior", 1),
        ("Ada Junior", 2),
    ]
    assert usernames == {f"{ADA_USERNAME}_1", f"{ADA_USERNAME}_2"}
    assert guardian_courses == set()
    assert enrolled == {"Byron Junior": {course_id}, "Ada Junior": {course_id}}
    assert await _roles(sqlite_unit_of_work, f"{ADA_USERNAME}_1") == {RoleRank.STUDENT}
