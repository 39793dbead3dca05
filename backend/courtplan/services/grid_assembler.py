"""
Schedule grid payload: everything a grid view needs in one read-only call.
"""
import logging
from typing import Dict, List

from sqlalchemy import func
from sqlmodel import Session, select

from courtplan.models.block_assignment import BlockAssignment
from courtplan.models.court import Court
from courtplan.models.court_group import CourtGroupCourt
from courtplan.models.division import Division
from courtplan.models.encounter import INACTIVE_STATUSES, Encounter
from courtplan.models.phase import Phase
from courtplan.models.unit import Unit
from courtplan.utils.courts import court_label_sort_key
from courtplan.utils.guards import require_event
from courtplan.utils.schedule_models import (
    GridBlock,
    GridCourt,
    GridDivision,
    GridEncounter,
    GridPhase,
    ScheduleGrid,
)

logger = logging.getLogger(__name__)


def build_schedule_grid(session: Session, event_id: int) -> ScheduleGrid:
    event = require_event(session, event_id)

    # ========================================================================
    # Courts
    # ========================================================================
    courts = session.exec(
        select(Court).where(Court.event_id == event_id, Court.is_active == True)  # noqa: E712
    ).all()
    courts = sorted(courts, key=lambda c: (c.sort_order, court_label_sort_key(c.label), c.id))
    court_rank = {c.id: i for i, c in enumerate(courts)}
    court_labels = {c.id: c.label for c in courts}

    groups_by_court: Dict[int, List[int]] = {}
    court_ids_by_group: Dict[int, List[int]] = {}
    if courts:
        links = session.exec(
            select(CourtGroupCourt).where(CourtGroupCourt.court_id.in_(list(court_rank)))
        ).all()
        for link in links:
            groups_by_court.setdefault(link.court_id, []).append(link.court_group_id)
            court_ids_by_group.setdefault(link.court_group_id, []).append(link.court_id)

    grid_courts = [
        GridCourt(
            court_id=c.id,
            label=c.label,
            sort_order=c.sort_order,
            court_group_ids=sorted(groups_by_court.get(c.id, [])),
        )
        for c in courts
    ]

    # ========================================================================
    # Encounters
    # ========================================================================
    encounters = [
        e for e in session.exec(select(Encounter).where(Encounter.event_id == event_id)).all()
        if e.status not in INACTIVE_STATUSES
    ]
    encounters.sort(key=lambda e: (
        not e.is_scheduled,
        e.estimated_start_time or event.created_at,
        court_rank.get(e.court_id, len(court_rank)),
        e.id,
    ))
    unit_names = {
        u.id: u.name for u in session.exec(select(Unit).where(Unit.event_id == event_id)).all()
    }

    grid_encounters = [
        GridEncounter(
            encounter_id=e.id,
            division_id=e.division_id,
            phase_id=e.phase_id,
            label=e.label,
            round_name=e.round_name,
            unit1_id=e.unit1_id,
            unit2_id=e.unit2_id,
            unit1_name=unit_names.get(e.unit1_id),
            unit2_name=unit_names.get(e.unit2_id),
            court_id=e.court_id,
            court_label=court_labels.get(e.court_id),
            start_time=e.estimated_start_time,
            end_time=e.estimated_end_time,
            duration_minutes=e.duration_minutes,
            status=e.status,
        )
        for e in encounters
    ]

    # ========================================================================
    # Divisions and phases
    # ========================================================================
    divisions = session.exec(
        select(Division).where(Division.event_id == event_id).order_by(Division.sort_order, Division.id)
    ).all()
    phase_counts: Dict[int, int] = {}
    for e in encounters:
        if e.phase_id is not None:
            phase_counts[e.phase_id] = phase_counts.get(e.phase_id, 0) + 1

    grid_divisions = []
    for division in divisions:
        phases = session.exec(
            select(Phase).where(Phase.division_id == division.id).order_by(Phase.phase_order)
        ).all()
        grid_divisions.append(GridDivision(
            division_id=division.id,
            name=division.name,
            phases=[
                GridPhase(
                    phase_id=p.id,
                    name=p.name,
                    phase_order=p.phase_order,
                    encounter_count=phase_counts.get(p.id, 0),
                )
                for p in phases
            ],
        ))

    # ========================================================================
    # Blocks
    # ========================================================================
    blocks = session.exec(
        select(BlockAssignment)
        .where(BlockAssignment.event_id == event_id, BlockAssignment.is_active == True)  # noqa: E712
        .order_by(BlockAssignment.division_id, BlockAssignment.priority, BlockAssignment.id)
    ).all()
    grid_blocks = [
        GridBlock(
            block_id=b.id,
            division_id=b.division_id,
            phase_id=b.phase_id,
            court_group_id=b.court_group_id,
            court_ids=sorted(court_ids_by_group.get(b.court_group_id, []), key=lambda cid: court_rank[cid]),
            valid_from=b.valid_from,
            valid_to=b.valid_to,
            label=b.label,
        )
        for b in blocks
    ]

    # ========================================================================
    # Counts and bounds
    # ========================================================================
    active = Encounter.status.not_in(list(INACTIVE_STATUSES))
    total = session.exec(
        select(func.count(Encounter.id)).where(Encounter.event_id == event_id, active)
    ).one()
    scheduled = session.exec(
        select(func.count(Encounter.id)).where(
            Encounter.event_id == event_id,
            active,
            Encounter.court_id.is_not(None),
            Encounter.estimated_start_time.is_not(None),
            Encounter.estimated_end_time.is_not(None),
        )
    ).one()

    starts = [e.estimated_start_time for e in encounters if e.is_scheduled]
    ends = [e.estimated_end_time for e in encounters if e.is_scheduled]

    logger.debug("Built grid for event %d: %d encounter(s), %d scheduled", event_id, total, scheduled)
    return ScheduleGrid(
        event_id=event_id,
        event_name=event.name,
        event_date=event.start_date,
        grid_start_time=min(starts) if starts else None,
        grid_end_time=max(ends) if ends else None,
        courts=grid_courts,
        divisions=grid_divisions,
        encounters=grid_encounters,
        blocks=grid_blocks,
        total_encounters=total,
        scheduled_count=scheduled,
        unscheduled_count=total - scheduled,
    )
