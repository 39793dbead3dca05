"""
Conflict Validator

Reads persisted encounter state and reports every violation. Never mutates.

Kinds are detected independently of each other:
- CourtDoubleBooking: two encounters on one court with overlapping [start, end)
- PlayerOverlap: shared unit or member and [start - rest, end + rest) of one
  overlaps [start, end) of the other (rest = larger of the two divisions')
- InsufficientRest: same unit, no raw overlap, gap shorter than the rest minimum
- RoundDependency: encounter starts before a scheduled source encounter ends
- AvailabilityViolation: [start, end) not inside the court's window for that day

A rest-short pair therefore shows up as both PlayerOverlap and InsufficientRest.
"""
import logging
from datetime import date
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlmodel import Session, select

from courtplan.models.division import Division
from courtplan.models.encounter import INACTIVE_STATUSES, Encounter
from courtplan.models.unit import Unit, UnitMember
from courtplan.services.availability_resolver import AvailabilityResolver, day_number_for
from courtplan.utils.guards import require_division, require_event
from courtplan.utils.rest_rules import buffered_overlap, gap_minutes, intervals_overlap, resolve_rest_minutes
from courtplan.utils.schedule_models import (
    CONFLICT_KIND_ORDER,
    AvailabilityViolation,
    Conflict,
    ConflictKind,
    ScheduleValidation,
)

logger = logging.getLogger(__name__)


def load_members_by_unit(session: Session, event_id: int) -> Dict[int, List[int]]:
    """unit_id -> member user ids, for every unit in the event."""
    rows = session.exec(
        select(UnitMember.unit_id, UnitMember.user_id)
        .join(Unit, Unit.id == UnitMember.unit_id)
        .where(Unit.event_id == event_id)
    ).all()
    members: Dict[int, List[int]] = {}
    for unit_id, user_id in rows:
        members.setdefault(unit_id, []).append(user_id)
    return members


def player_ids_for(encounter: Encounter, members_by_unit: Dict[int, List[int]]) -> Set[int]:
    players: Set[int] = set()
    for unit_id in encounter.unit_ids:
        players.update(members_by_unit.get(unit_id, []))
    return players


def _ordered_pair(a: Encounter, b: Encounter) -> Tuple[Encounter, Encounter]:
    if (a.estimated_start_time, a.id) <= (b.estimated_start_time, b.id):
        return a, b
    return b, a


def _sort_key(conflict: Conflict):
    return (
        conflict.start_time,
        conflict.court_id is None,
        conflict.court_id or 0,
        CONFLICT_KIND_ORDER[conflict.kind],
        conflict.encounter_id_1,
        conflict.encounter_id_2 or 0,
    )


def detect_conflicts(
    encounters: Iterable[Encounter],
    rest_by_division: Dict[int, int],
    members_by_unit: Dict[int, List[int]],
    availability: AvailabilityResolver,
    event_start: date,
) -> List[Conflict]:
    """
    Pure conflict detection over a set of encounters.

    Args:
        encounters: All encounters to consider (unscheduled and inactive ones are skipped)
        rest_by_division: division_id -> minimum rest minutes
        members_by_unit: unit_id -> member user ids
        availability: Preloaded availability windows for the event
        event_start: Event start date (day 1)

    Returns:
        Conflicts in deterministic order
    """
    scheduled = [
        e for e in encounters
        if e.is_scheduled and e.status not in INACTIVE_STATUSES
    ]
    scheduled.sort(key=lambda e: (e.estimated_start_time, e.id))
    by_id = {e.id: e for e in scheduled}
    conflicts: List[Conflict] = []

    # ------------------------------------------------------------------
    # CourtDoubleBooking
    # ------------------------------------------------------------------
    by_court: Dict[int, List[Encounter]] = {}
    for e in scheduled:
        by_court.setdefault(e.court_id, []).append(e)
    for court_id, court_encounters in by_court.items():
        for a, b in combinations(court_encounters, 2):
            if intervals_overlap(a.estimated_start_time, a.estimated_end_time, b.estimated_start_time, b.estimated_end_time):
                first, second = _ordered_pair(a, b)
                conflicts.append(Conflict(
                    kind=ConflictKind.COURT_DOUBLE_BOOKING,
                    encounter_id_1=first.id,
                    encounter_id_2=second.id,
                    court_id=court_id,
                    start_time=first.estimated_start_time,
                    description=f"Encounters {first.id} and {second.id} overlap on court {court_id}",
                ))

    # ------------------------------------------------------------------
    # PlayerOverlap / InsufficientRest
    # ------------------------------------------------------------------
    players = {e.id: player_ids_for(e, members_by_unit) for e in scheduled}
    candidate_pairs: Set[Tuple[int, int]] = set()
    by_participant: Dict[Tuple[str, int], List[int]] = {}
    for e in scheduled:
        for unit_id in e.unit_ids:
            by_participant.setdefault(("unit", unit_id), []).append(e.id)
        for player_id in players[e.id]:
            by_participant.setdefault(("player", player_id), []).append(e.id)
    for ids in by_participant.values():
        for a_id, b_id in combinations(ids, 2):
            if a_id != b_id:
                candidate_pairs.add((min(a_id, b_id), max(a_id, b_id)))

    for a_id, b_id in sorted(candidate_pairs):
        first, second = _ordered_pair(by_id[a_id], by_id[b_id])
        rest = max(
            rest_by_division.get(first.division_id, resolve_rest_minutes(None)),
            rest_by_division.get(second.division_id, resolve_rest_minutes(None)),
        )
        shared_units = sorted(set(first.unit_ids) & set(second.unit_ids))
        shared_players = sorted(players[first.id] & players[second.id])
        unit_id = shared_units[0] if shared_units else None
        player_id = None if shared_units else (shared_players[0] if shared_players else None)
        who = f"unit {unit_id}" if unit_id is not None else f"player {player_id}"

        if buffered_overlap(
            first.estimated_start_time, first.estimated_end_time,
            second.estimated_start_time, second.estimated_end_time,
            rest,
        ):
            conflicts.append(Conflict(
                kind=ConflictKind.PLAYER_OVERLAP,
                encounter_id_1=first.id,
                encounter_id_2=second.id,
                court_id=first.court_id,
                unit_id=unit_id,
                player_id=player_id,
                start_time=first.estimated_start_time,
                description=(
                    f"{who.capitalize()} is booked in encounters {first.id} and {second.id} "
                    f"within {rest} minutes of each other"
                ),
            ))

        if shared_units and not intervals_overlap(
            first.estimated_start_time, first.estimated_end_time,
            second.estimated_start_time, second.estimated_end_time,
        ):
            gap = gap_minutes(
                first.estimated_start_time, first.estimated_end_time,
                second.estimated_start_time, second.estimated_end_time,
            )
            if gap < rest:
                conflicts.append(Conflict(
                    kind=ConflictKind.INSUFFICIENT_REST,
                    encounter_id_1=first.id,
                    encounter_id_2=second.id,
                    court_id=first.court_id,
                    unit_id=unit_id,
                    start_time=first.estimated_start_time,
                    description=(
                        f"Unit {unit_id} rests {int(gap)} minutes between encounters "
                        f"{first.id} and {second.id} (minimum {rest})"
                    ),
                ))

    # ------------------------------------------------------------------
    # RoundDependency
    # ------------------------------------------------------------------
    for e in scheduled:
        for source_id in e.source_ids:
            source = by_id.get(source_id)
            if source is None:
                continue
            if e.estimated_start_time < source.estimated_end_time:
                conflicts.append(Conflict(
                    kind=ConflictKind.ROUND_DEPENDENCY,
                    encounter_id_1=e.id,
                    encounter_id_2=source.id,
                    court_id=e.court_id,
                    start_time=min(e.estimated_start_time, source.estimated_start_time),
                    description=(
                        f"Encounter {e.id} starts at {e.estimated_start_time:%Y-%m-%d %H:%M} "
                        f"before source encounter {source.id} ends at {source.estimated_end_time:%H:%M}"
                    ),
                ))

    # ------------------------------------------------------------------
    # AvailabilityViolation
    # ------------------------------------------------------------------
    for e in scheduled:
        day = day_number_for(event_start, e.estimated_start_time)
        window = availability.resolve(e.court_id, day)
        if window.contains(event_start, e.estimated_start_time, e.estimated_end_time):
            continue
        bounds = window.absolute(event_start)
        detail = AvailabilityViolation(
            encounter_id=e.id,
            court_id=e.court_id,
            day=day,
            window_start=bounds[0] if bounds else None,
            window_end=bounds[1] if bounds else None,
            actual_start=e.estimated_start_time,
            actual_end=e.estimated_end_time,
        )
        if bounds is None:
            description = f"Court {e.court_id} is not available on day {day}"
        else:
            description = (
                f"Encounter {e.id} ({e.estimated_start_time:%H:%M}-{e.estimated_end_time:%H:%M}) "
                f"falls outside court {e.court_id} hours {bounds[0]:%H:%M}-{bounds[1]:%H:%M} on day {day}"
            )
        conflicts.append(Conflict(
            kind=ConflictKind.AVAILABILITY_VIOLATION,
            encounter_id_1=e.id,
            court_id=e.court_id,
            start_time=e.estimated_start_time,
            description=description,
            availability=detail,
        ))

    conflicts.sort(key=_sort_key)
    return conflicts


def validate(session: Session, event_id: int, division_id: Optional[int] = None) -> List[Conflict]:
    """
    Validate the persisted schedule of an event.

    With division_id, the whole event is still loaded as context and a conflict
    is kept when at least one of its encounters belongs to that division.
    """
    event = require_event(session, event_id)
    if division_id is not None:
        require_division(session, division_id, event_id=event_id)

    encounters = session.exec(select(Encounter).where(Encounter.event_id == event_id)).all()
    divisions = session.exec(select(Division).where(Division.event_id == event_id)).all()
    rest_by_division = {d.id: resolve_rest_minutes(d) for d in divisions}

    conflicts = detect_conflicts(
        encounters,
        rest_by_division,
        load_members_by_unit(session, event_id),
        AvailabilityResolver.load(session, event_id),
        event.start_date,
    )

    if division_id is not None:
        division_of = {e.id: e.division_id for e in encounters}
        conflicts = [
            c for c in conflicts
            if division_of.get(c.encounter_id_1) == division_id
            or (c.encounter_id_2 is not None and division_of.get(c.encounter_id_2) == division_id)
        ]

    logger.debug(
        "Validated event %d (division=%s): %d conflict(s)", event_id, division_id, len(conflicts)
    )
    return conflicts


def summarize(session: Session, event_id: int, division_id: Optional[int] = None) -> ScheduleValidation:
    conflicts = validate(session, event_id, division_id)

    query = select(Encounter).where(Encounter.event_id == event_id)
    if division_id is not None:
        query = query.where(Encounter.division_id == division_id)
    encounters = [e for e in session.exec(query).all() if e.status not in INACTIVE_STATUSES]
    scheduled = sum(1 for e in encounters if e.is_scheduled)

    return ScheduleValidation(
        event_id=event_id,
        division_id=division_id,
        total_encounters=len(encounters),
        scheduled_count=scheduled,
        unscheduled_count=len(encounters) - scheduled,
        is_valid=not conflicts,
        conflicts=conflicts,
    )
