"""
Schedule Mutator: manual moves and clearing

Manual edits bypass the scheduler's placement rules:

1. **Frozen encounters**: InProgress/Completed keep their court and time
2. **Unconditional write**: any other move is saved as requested
3. **Advisory conflicts**: the validator runs afterwards and the conflicts that
   involve the moved encounter are returned; nothing is rolled back

Clearing returns non-frozen encounters of a division (or one phase) to
unscheduled.
"""
import logging
from datetime import timedelta
from typing import Optional

from sqlmodel import Session, select

from courtplan.models.division import Division
from courtplan.models.encounter import INACTIVE_STATUSES, Encounter
from courtplan.models.phase import Phase
from courtplan.services import conflict_validator
from courtplan.services.availability_resolver import to_event_wall_clock
from courtplan.utils.event_locks import event_write_lock
from courtplan.utils.guards import (
    require_court,
    require_division,
    require_encounter,
    require_event,
    require_mutable_encounter,
    require_phase,
)
from courtplan.utils.rest_rules import resolve_duration_minutes
from courtplan.utils.schedule_models import MoveEncounterRequest, MoveEncounterResult

logger = logging.getLogger(__name__)


def move_encounter(session: Session, encounter_id: int, request: MoveEncounterRequest) -> MoveEncounterResult:
    """
    Put an encounter on a court at a start time, whatever the consequences.

    Raises:
        SchedulingInputError: Unknown encounter or court, or a court of another event
        InvalidTransitionError: Encounter is in progress, completed, cancelled or a bye
    """
    encounter = require_encounter(session, encounter_id)
    require_court(session, request.court_id, event_id=encounter.event_id)

    with event_write_lock(encounter.event_id):
        # Another writer may have started or moved it since it was loaded
        session.refresh(encounter)
        require_mutable_encounter(encounter)
        division = session.get(Division, encounter.division_id)
        phase = session.get(Phase, encounter.phase_id) if encounter.phase_id is not None else None
        duration = resolve_duration_minutes(encounter, division, phase)
        start = to_event_wall_clock(require_event(session, encounter.event_id), request.start_time)
        end = start + timedelta(minutes=duration)

        encounter.assign(request.court_id, start, end, duration)
        session.add(encounter)
        session.commit()
        session.refresh(encounter)

    conflicts = [
        c for c in conflict_validator.validate(session, encounter.event_id, encounter.division_id)
        if c.involves(encounter_id)
    ]
    if conflicts:
        logger.warning(
            "Encounter %d moved to court %d at %s with %d conflict(s)",
            encounter_id, request.court_id, start.isoformat(), len(conflicts),
        )
    else:
        logger.info("Encounter %d moved to court %d at %s", encounter_id, request.court_id, start.isoformat())

    return MoveEncounterResult(
        encounter_id=encounter_id,
        court_id=request.court_id,
        start_time=start,
        end_time=end,
        has_conflicts=bool(conflicts),
        conflicts=conflicts,
    )


def clear_schedule(session: Session, division_id: int, phase_id: Optional[int] = None) -> int:
    """
    Unschedule a division's (or phase's) encounters, skipping in-progress and completed ones.

    Returns:
        Number of encounters actually changed (0 on a repeat call)
    """
    division = require_division(session, division_id)
    if phase_id is not None:
        require_phase(session, phase_id, division_id=division_id)

    with event_write_lock(division.event_id):
        query = (
            select(Encounter)
            .where(Encounter.division_id == division_id)
            .execution_options(populate_existing=True)
        )
        if phase_id is not None:
            query = query.where(Encounter.phase_id == phase_id)

        cleared = 0
        for encounter in session.exec(query).all():
            if encounter.is_frozen or encounter.status in INACTIVE_STATUSES or not encounter.is_scheduled:
                continue
            encounter.clear_assignment()
            session.add(encounter)
            cleared += 1
        session.commit()

    logger.info("Cleared %d encounter(s) in division %d (phase=%s)", cleared, division_id, phase_id)
    return cleared
