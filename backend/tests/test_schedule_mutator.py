"""
Manual moves and clearing

Moves are always written (unless frozen); the validator's findings for the
moved encounter come back as advisory conflicts.
"""

from datetime import time, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from courtplan.models import Encounter, EncounterStatus
from courtplan.services import conflict_validator, encounter_scheduler, schedule_mutator
from courtplan.utils.guards import InvalidTransitionError, SchedulingInputError
from courtplan.utils.schedule_models import ConflictKind, MoveEncounterRequest, ScheduleRequest

from tests.conftest import at, test_engine


def test_move_outside_availability_gives_one_violation(session: Session, builder):
    event = builder.event()
    c1 = builder.court(event, "1")
    builder.default_hours(event, start=time(8), end=time(18))
    division = builder.division(event, match_minutes=30)
    a, b = builder.units(division, 2)
    encounter = builder.encounter(division, a, b)
    encounter_scheduler.generate(session, ScheduleRequest(event_id=event.id))

    assert conflict_validator.validate(session, event.id) == []

    result = schedule_mutator.move_encounter(
        session, encounter.id, MoveEncounterRequest(court_id=c1.id, start_time=at(18, 30))
    )

    assert result.has_conflicts
    assert [c.kind for c in result.conflicts] == [ConflictKind.AVAILABILITY_VIOLATION]
    after = conflict_validator.validate(session, event.id)
    assert [c.kind for c in after] == [ConflictKind.AVAILABILITY_VIOLATION]
    session.refresh(encounter)
    assert encounter.estimated_start_time == at(18, 30)
    assert encounter.estimated_end_time == at(19)


def test_move_that_breaks_rest_reports_insufficient_rest(session: Session, builder):
    event = builder.event()
    c1, c2 = builder.courts(event, 2)
    builder.default_hours(event)
    division = builder.division(event, match_minutes=30, rest_minutes=15)
    a, b, c = builder.units(division, 3)
    first = builder.encounter(division, a, b, number=1)
    second = builder.encounter(division, a, c, number=2)
    encounter_scheduler.generate(session, ScheduleRequest(event_id=event.id))

    result = schedule_mutator.move_encounter(
        session, second.id, MoveEncounterRequest(court_id=c2.id, start_time=at(8, 35))
    )

    kinds = [c.kind for c in result.conflicts]
    assert ConflictKind.INSUFFICIENT_REST in kinds
    assert ConflictKind.PLAYER_OVERLAP in kinds
    assert all(c.involves(second.id) for c in result.conflicts)
    session.refresh(first)
    assert first.estimated_start_time == at(8)


def test_move_clean_has_no_conflicts(session: Session, builder):
    event = builder.event()
    c1, c2 = builder.courts(event, 2)
    builder.default_hours(event)
    division = builder.division(event, match_minutes=30)
    encounter = builder.encounter(division, court=c1, start=at(8), end=at(8, 30))

    result = schedule_mutator.move_encounter(
        session, encounter.id, MoveEncounterRequest(court_id=c2.id, start_time=at(11))
    )
    assert not result.has_conflicts
    assert (result.court_id, result.start_time, result.end_time) == (c2.id, at(11), at(11, 30))


def test_move_frozen_encounter_rejected(session: Session, builder):
    event = builder.event()
    court = builder.court(event, "1")
    division = builder.division(event)
    playing = builder.encounter(
        division, court=court, start=at(8), end=at(8, 30), status=EncounterStatus.in_progress.value
    )

    with pytest.raises(InvalidTransitionError):
        schedule_mutator.move_encounter(session, playing.id, MoveEncounterRequest(court_id=court.id, start_time=at(9)))
    session.refresh(playing)
    assert playing.estimated_start_time == at(8)


def test_move_checks_status_committed_by_another_writer(session: Session, builder):
    event = builder.event()
    court = builder.court(event, "1")
    division = builder.division(event)
    encounter = builder.encounter(division)

    # Play starts through a different session after this one loaded the encounter
    with Session(test_engine) as other:
        row = other.get(Encounter, encounter.id)
        row.status = EncounterStatus.in_progress.value
        other.add(row)
        other.commit()

    with pytest.raises(InvalidTransitionError):
        schedule_mutator.move_encounter(
            session, encounter.id, MoveEncounterRequest(court_id=court.id, start_time=at(9))
        )
    session.refresh(encounter)
    assert encounter.court_id is None


def set_timezone(session: Session, event, zone: str):
    event.timezone = zone
    session.add(event)
    session.commit()


@pytest.mark.parametrize(
    "zone, requested, stored",
    [
        ("UTC", at(9), at(9)),
        ("UTC", at(9).replace(tzinfo=timezone(timedelta(hours=2))), at(7)),
        ("Europe/Berlin", at(7).replace(tzinfo=timezone.utc), at(9)),
    ],
)
def test_move_stores_event_wall_clock(session: Session, builder, zone, requested, stored):
    event = builder.event()
    set_timezone(session, event, zone)
    court = builder.court(event, "1")
    division = builder.division(event, match_minutes=30)
    encounter = builder.encounter(division)

    result = schedule_mutator.move_encounter(
        session, encounter.id, MoveEncounterRequest(court_id=court.id, start_time=requested)
    )

    assert result.start_time == stored
    session.refresh(encounter)
    assert encounter.estimated_start_time == stored
    assert encounter.estimated_end_time == stored + timedelta(minutes=30)


def test_move_with_offset_into_unknown_timezone_rejected(session: Session, builder):
    event = builder.event()
    set_timezone(session, event, "Mars/Olympus")
    court = builder.court(event, "1")
    division = builder.division(event)
    encounter = builder.encounter(division)

    with pytest.raises(SchedulingInputError):
        schedule_mutator.move_encounter(
            session, encounter.id,
            MoveEncounterRequest(court_id=court.id, start_time=at(9).replace(tzinfo=timezone.utc)),
        )
    session.refresh(encounter)
    assert encounter.court_id is None


def test_move_to_court_of_other_event_rejected(session: Session, builder):
    event = builder.event()
    other = builder.event(name="Other")
    foreign_court = builder.court(other, "1")
    division = builder.division(event)
    encounter = builder.encounter(division)

    with pytest.raises(SchedulingInputError):
        schedule_mutator.move_encounter(
            session, encounter.id, MoveEncounterRequest(court_id=foreign_court.id, start_time=at(9))
        )


def test_move_endpoint(client: TestClient, builder):
    event = builder.event()
    court = builder.court(event, "1")
    builder.default_hours(event)
    division = builder.division(event, match_minutes=30)
    encounter = builder.encounter(division)
    done = builder.encounter(
        division, court=court, start=at(8), end=at(8, 30), number=2, status=EncounterStatus.completed.value
    )

    resp = client.put(
        f"/api/encounters/{encounter.id}/schedule/move",
        json={"court_id": court.id, "start_time": "2026-05-02T08:15:00"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["has_conflicts"] is True
    assert [c["kind"] for c in data["conflicts"]] == ["CourtDoubleBooking"]

    resp = client.put(
        f"/api/encounters/{done.id}/schedule/move",
        json={"court_id": court.id, "start_time": "2026-05-02T10:00:00"},
    )
    assert resp.status_code == 409

    resp = client.put("/api/encounters/999/schedule/move", json={"court_id": court.id, "start_time": "2026-05-02T10:00:00"})
    assert resp.status_code == 404


def test_clear_is_idempotent_and_skips_frozen(session: Session, builder):
    event = builder.event()
    court = builder.court(event, "1")
    builder.default_hours(event)
    division = builder.division(event)
    done = builder.encounter(
        division, court=court, start=at(8), end=at(8, 30), status=EncounterStatus.completed.value
    )
    scheduled = builder.encounter(division, court=court, start=at(9), end=at(9, 30), number=2)
    builder.encounter(division, number=3)

    assert schedule_mutator.clear_schedule(session, division.id) == 1
    assert schedule_mutator.clear_schedule(session, division.id) == 0

    session.refresh(done)
    session.refresh(scheduled)
    assert done.court_id == court.id
    assert scheduled.court_id is None
    assert scheduled.estimated_start_time is None
    assert scheduled.status == EncounterStatus.pending.value


def test_clear_by_phase(session: Session, builder):
    event = builder.event()
    court = builder.court(event, "1")
    division = builder.division(event)
    pool = builder.phase(division, "Pool", order=1)
    finals = builder.phase(division, "Finals", order=2)
    pool_match = builder.encounter(division, phase=pool, court=court, start=at(8), end=at(8, 30))
    final_match = builder.encounter(division, phase=finals, court=court, start=at(9), end=at(9, 30))

    assert schedule_mutator.clear_schedule(session, division.id, finals.id) == 1
    session.refresh(pool_match)
    session.refresh(final_match)
    assert pool_match.is_scheduled
    assert not final_match.is_scheduled


def test_clear_endpoint(client: TestClient, builder):
    event = builder.event()
    court = builder.court(event, "1")
    division = builder.division(event)
    builder.encounter(division, court=court, start=at(8), end=at(8, 30))

    resp = client.post(f"/api/divisions/{division.id}/schedule/clear")
    assert resp.status_code == 200
    assert resp.json()["cleared_count"] == 1

    assert client.post("/api/divisions/999/schedule/clear").status_code == 404
