"""
Conflict Validator

Each conflict kind is detected independently from persisted encounter state.
"""

from datetime import time

from fastapi.testclient import TestClient
from sqlmodel import Session

from courtplan.models import EncounterStatus
from courtplan.services import conflict_validator
from courtplan.utils.schedule_models import ConflictKind

from tests.conftest import at


def kinds(conflicts):
    return [c.kind for c in conflicts]


def setup_event(builder, courts=2):
    event = builder.event()
    court_list = builder.courts(event, courts)
    builder.default_hours(event, start=time(8), end=time(18))
    division = builder.division(event, match_minutes=30, rest_minutes=15)
    return event, court_list, division


def test_clean_schedule_has_no_conflicts(session: Session, builder):
    event, (c1, c2), division = setup_event(builder)
    a, b, c, d = builder.units(division, 4)
    builder.encounter(division, a, b, court=c1, start=at(8), end=at(8, 30))
    builder.encounter(division, c, d, court=c2, start=at(8), end=at(8, 30))
    builder.encounter(division, a, c, court=c1, start=at(8, 45), end=at(9, 15), number=2)

    assert conflict_validator.validate(session, event.id) == []


def test_court_double_booking(session: Session, builder):
    event, (c1, _), division = setup_event(builder)
    a, b, c, d = builder.units(division, 4)
    e1 = builder.encounter(division, a, b, court=c1, start=at(8), end=at(8, 30))
    e2 = builder.encounter(division, c, d, court=c1, start=at(8, 15), end=at(8, 45), number=2)

    conflicts = conflict_validator.validate(session, event.id)
    assert kinds(conflicts) == [ConflictKind.COURT_DOUBLE_BOOKING]
    assert (conflicts[0].encounter_id_1, conflicts[0].encounter_id_2) == (e1.id, e2.id)
    assert conflicts[0].court_id == c1.id


def test_same_unit_at_same_time_is_player_overlap(session: Session, builder):
    event, (c1, c2), division = setup_event(builder)
    a, b, c = builder.units(division, 3)
    builder.encounter(division, a, b, court=c1, start=at(8), end=at(8, 30))
    builder.encounter(division, a, c, court=c2, start=at(8), end=at(8, 30), number=2)

    conflicts = conflict_validator.validate(session, event.id)
    assert kinds(conflicts) == [ConflictKind.PLAYER_OVERLAP]
    assert conflicts[0].unit_id == a.id


def test_short_rest_reports_overlap_and_insufficient_rest(session: Session, builder):
    event, (c1, _), division = setup_event(builder)
    a, b, c = builder.units(division, 3)
    e1 = builder.encounter(division, a, b, court=c1, start=at(8), end=at(8, 30))
    e2 = builder.encounter(division, a, c, court=c1, start=at(8, 40), end=at(9, 10), number=2)

    conflicts = conflict_validator.validate(session, event.id)
    assert kinds(conflicts) == [ConflictKind.PLAYER_OVERLAP, ConflictKind.INSUFFICIENT_REST]
    for conflict in conflicts:
        assert (conflict.encounter_id_1, conflict.encounter_id_2) == (e1.id, e2.id)


def test_exact_rest_is_allowed(session: Session, builder):
    event, (c1, _), division = setup_event(builder)
    a, b, c = builder.units(division, 3)
    builder.encounter(division, a, b, court=c1, start=at(8), end=at(8, 30))
    builder.encounter(division, a, c, court=c1, start=at(8, 45), end=at(9, 15), number=2)

    assert conflict_validator.validate(session, event.id) == []


def test_shared_member_across_units_is_player_overlap(session: Session, builder):
    event, (c1, c2), division = setup_event(builder)
    x = builder.unit(division, "Mixed X", members=[100, 101])
    y = builder.unit(division, "Mixed Y", members=[100, 102])
    b = builder.unit(division, "B", members=[103])
    c = builder.unit(division, "C", members=[104])
    builder.encounter(division, x, b, court=c1, start=at(8), end=at(8, 30))
    builder.encounter(division, y, c, court=c2, start=at(8, 40), end=at(9, 10), number=2)

    conflicts = conflict_validator.validate(session, event.id)
    assert kinds(conflicts) == [ConflictKind.PLAYER_OVERLAP]
    assert conflicts[0].player_id == 100
    assert conflicts[0].unit_id is None


def test_rest_uses_larger_division_minimum(session: Session, builder):
    event, (c1, c2), quick = setup_event(builder)
    slow = builder.division(event, name="Seniors", rest_minutes=60)
    x = builder.unit(quick, "X", members=[7])
    y = builder.unit(slow, "Y", members=[7])
    builder.encounter(quick, x, None, court=c1, start=at(8), end=at(8, 30))
    builder.encounter(slow, y, None, court=c2, start=at(9), end=at(9, 30))

    conflicts = conflict_validator.validate(session, event.id)
    assert kinds(conflicts) == [ConflictKind.PLAYER_OVERLAP]


def test_round_dependency(session: Session, builder):
    event, (c1, c2), division = setup_event(builder)
    feeder = builder.encounter(division, court=c1, start=at(8), end=at(8, 30))
    final = builder.encounter(division, court=c2, start=at(8, 15), end=at(8, 45), round_number=2, sources=[feeder])

    conflicts = conflict_validator.validate(session, event.id)
    assert kinds(conflicts) == [ConflictKind.ROUND_DEPENDENCY]
    assert (conflicts[0].encounter_id_1, conflicts[0].encounter_id_2) == (final.id, feeder.id)


def test_unscheduled_source_is_not_a_round_dependency(session: Session, builder):
    event, (c1, _), division = setup_event(builder)
    feeder = builder.encounter(division)
    builder.encounter(division, court=c1, start=at(8), end=at(8, 30), round_number=2, sources=[feeder])

    assert conflict_validator.validate(session, event.id) == []


def test_availability_violation_outside_court_hours(session: Session, builder):
    event, (c1, _), division = setup_event(builder)
    builder.court_hours(c1, 1, time(10), time(12))
    encounter = builder.encounter(division, court=c1, start=at(9, 30), end=at(10, 0))

    conflicts = conflict_validator.validate(session, event.id)
    assert kinds(conflicts) == [ConflictKind.AVAILABILITY_VIOLATION]
    detail = conflicts[0].availability
    assert detail.encounter_id == encounter.id
    assert detail.day == 1
    assert (detail.window_start, detail.window_end) == (at(10), at(12))
    assert (detail.actual_start, detail.actual_end) == (at(9, 30), at(10))


def test_closed_day_always_violates(session: Session, builder):
    event = builder.event(days=2)
    court = builder.court(event, "1")
    builder.default_hours(event, day=1)
    division = builder.division(event)
    builder.encounter(division, court=court, start=at(9, day=2), end=at(9, 30, day=2))

    conflicts = conflict_validator.validate(session, event.id)
    assert kinds(conflicts) == [ConflictKind.AVAILABILITY_VIOLATION]
    assert conflicts[0].availability.window_start is None


def test_spanning_midnight_violates(session: Session, builder):
    event = builder.event(days=2)
    court = builder.court(event, "1")
    builder.default_hours(event, day=1, start=time(0), end=time(23, 59))
    builder.default_hours(event, day=2, start=time(0), end=time(23, 59))
    division = builder.division(event)
    builder.encounter(division, court=court, start=at(23, 40), end=at(0, 10, day=2))

    assert kinds(conflict_validator.validate(session, event.id)) == [ConflictKind.AVAILABILITY_VIOLATION]


def test_cancelled_and_unscheduled_encounters_are_ignored(session: Session, builder):
    event, (c1, _), division = setup_event(builder)
    a, b = builder.units(division, 2)
    builder.encounter(division, a, b, court=c1, start=at(8), end=at(8, 30))
    builder.encounter(
        division, a, b, court=c1, start=at(8), end=at(8, 30), number=2, status=EncounterStatus.cancelled.value
    )
    builder.encounter(division, a, b, number=3)

    assert conflict_validator.validate(session, event.id) == []


def test_output_order_is_by_start_then_court_then_kind(session: Session, builder):
    event, (c1, c2), division = setup_event(builder)
    a, b, c, d, e, f = builder.units(division, 6)
    # 09:00 double booking on court 2
    builder.encounter(division, c, d, court=c2, start=at(9), end=at(9, 30))
    builder.encounter(division, e, f, court=c2, start=at(9, 15), end=at(9, 45), number=2)
    # 08:00 short rest for unit a on court 1
    builder.encounter(division, a, b, court=c1, start=at(8), end=at(8, 30), number=3)
    builder.encounter(division, a, None, court=c1, start=at(8, 35), end=at(9), number=4)

    conflicts = conflict_validator.validate(session, event.id)
    assert kinds(conflicts) == [
        ConflictKind.PLAYER_OVERLAP,
        ConflictKind.INSUFFICIENT_REST,
        ConflictKind.COURT_DOUBLE_BOOKING,
    ]
    starts = [c.start_time for c in conflicts]
    assert starts == sorted(starts)


def test_validate_is_idempotent(session: Session, builder):
    event, (c1, _), division = setup_event(builder)
    a, b, c = builder.units(division, 3)
    builder.encounter(division, a, b, court=c1, start=at(8), end=at(8, 30))
    builder.encounter(division, a, c, court=c1, start=at(8, 10), end=at(8, 40), number=2)

    first = conflict_validator.validate(session, event.id)
    second = conflict_validator.validate(session, event.id)
    assert first == second
    assert len(first) > 0


def test_division_filter_keeps_conflicts_touching_division(session: Session, builder):
    event, (c1, c2), open_division = setup_event(builder)
    seniors = builder.division(event, name="Seniors")
    x = builder.unit(open_division, "X", members=[5])
    y = builder.unit(seniors, "Y", members=[5])
    z1, z2 = builder.units(seniors, 2)
    builder.encounter(open_division, x, None, court=c1, start=at(8), end=at(8, 30))
    builder.encounter(seniors, y, None, court=c2, start=at(8), end=at(8, 30))
    # Seniors-only double booking
    builder.encounter(seniors, z1, None, court=c2, start=at(10), end=at(10, 30), number=2)
    builder.encounter(seniors, z2, None, court=c2, start=at(10, 10), end=at(10, 40), number=3)

    open_conflicts = conflict_validator.validate(session, event.id, open_division.id)
    assert kinds(open_conflicts) == [ConflictKind.PLAYER_OVERLAP]

    senior_conflicts = conflict_validator.validate(session, event.id, seniors.id)
    assert kinds(senior_conflicts) == [ConflictKind.PLAYER_OVERLAP, ConflictKind.COURT_DOUBLE_BOOKING]


def test_validate_endpoint_summary(client: TestClient, builder):
    event, (c1, _), division = setup_event(builder)
    a, b, c, d = builder.units(division, 4)
    builder.encounter(division, a, b, court=c1, start=at(8), end=at(8, 30))
    builder.encounter(division, c, d, court=c1, start=at(8, 15), end=at(8, 45), number=2)
    builder.encounter(division, a, c, number=3)

    resp = client.get(f"/api/events/{event.id}/schedule/validate")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_encounters"] == 3
    assert data["scheduled_count"] == 2
    assert data["unscheduled_count"] == 1
    assert data["is_valid"] is False
    assert [c["kind"] for c in data["conflicts"]] == ["CourtDoubleBooking"]


def test_validate_unknown_event_is_404(client: TestClient):
    assert client.get("/api/events/999/schedule/validate").status_code == 404
