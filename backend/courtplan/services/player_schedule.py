"""
Player schedule: one user's encounters across an event, read-only.

A user plays through every unit they are a member of. Cancelled encounters are
left out; byes are listed but never count as the next encounter.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlmodel import Session, or_, select

from courtplan.models.court import Court
from courtplan.models.division import Division
from courtplan.models.encounter import Encounter, EncounterStatus
from courtplan.models.phase import Phase
from courtplan.models.unit import Unit, UnitMember
from courtplan.utils.guards import require_event
from courtplan.utils.schedule_models import PlayerSchedule, PlayerScheduleItem

logger = logging.getLogger(__name__)

BYE_LABEL = "BYE"
TBD_LABEL = "TBD"


def _sort_key(encounter: Encounter):
    start = encounter.estimated_start_time
    return (start is None, start or datetime.max, encounter.round_number, encounter.encounter_number, encounter.id)


def build_player_schedule(session: Session, event_id: int, user_id: int) -> PlayerSchedule:
    event = require_event(session, event_id)

    unit_ids = list(
        session.exec(
            select(UnitMember.unit_id)
            .join(Unit, Unit.id == UnitMember.unit_id)
            .where(Unit.event_id == event_id, UnitMember.user_id == user_id)
        ).all()
    )
    if not unit_ids:
        return PlayerSchedule(event_id=event_id, event_name=event.name, user_id=user_id)

    encounters = session.exec(
        select(Encounter).where(
            Encounter.event_id == event_id,
            Encounter.status != EncounterStatus.cancelled.value,
            or_(Encounter.unit1_id.in_(unit_ids), Encounter.unit2_id.in_(unit_ids)),
        )
    ).all()
    encounters = sorted(encounters, key=_sort_key)

    unit_names: Dict[int, str] = {
        u.id: u.name for u in session.exec(select(Unit).where(Unit.event_id == event_id)).all()
    }
    court_labels: Dict[int, str] = {
        c.id: c.label for c in session.exec(select(Court).where(Court.event_id == event_id)).all()
    }
    division_names: Dict[int, str] = {
        d.id: d.name for d in session.exec(select(Division).where(Division.event_id == event_id)).all()
    }
    phase_ids = {e.phase_id for e in encounters if e.phase_id is not None}
    phase_names: Dict[int, str] = {}
    if phase_ids:
        phase_names = {
            p.id: p.name for p in session.exec(select(Phase).where(Phase.id.in_(list(phase_ids)))).all()
        }

    items: List[PlayerScheduleItem] = []
    for e in encounters:
        mine_first = e.unit1_id in unit_ids
        my_unit = e.unit1_id if mine_first else e.unit2_id
        opponent = e.unit2_id if mine_first else e.unit1_id
        is_bye = e.status == EncounterStatus.bye.value
        if opponent is not None:
            opponent_name = unit_names.get(opponent, TBD_LABEL)
        else:
            opponent_name = BYE_LABEL if is_bye else TBD_LABEL

        items.append(PlayerScheduleItem(
            encounter_id=e.id,
            start_time=e.estimated_start_time,
            end_time=e.estimated_end_time,
            court_id=e.court_id,
            court_label=court_labels.get(e.court_id) if e.court_id is not None else None,
            division_id=e.division_id,
            division_name=division_names.get(e.division_id, ""),
            phase_id=e.phase_id,
            phase_name=phase_names.get(e.phase_id) if e.phase_id is not None else None,
            round_name=e.round_name,
            label=e.label,
            unit_id=my_unit,
            unit_name=unit_names.get(my_unit, ""),
            opponent_unit_id=opponent,
            opponent_name=opponent_name,
            status=e.status,
            is_bye=is_bye,
        ))

    completed = sum(1 for i in items if i.status == EncounterStatus.completed.value)
    next_item: Optional[PlayerScheduleItem] = next(
        (i for i in items if i.status != EncounterStatus.completed.value and not i.is_bye), None
    )

    logger.debug("Player %d schedule for event %d: %d encounter(s)", user_id, event_id, len(items))
    return PlayerSchedule(
        event_id=event_id,
        event_name=event.name,
        user_id=user_id,
        encounters=items,
        next_encounter=next_item,
        total_count=len(items),
        completed_count=completed,
        remaining_count=len(items) - completed,
    )
