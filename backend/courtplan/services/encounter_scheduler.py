"""
Encounter Scheduler

Batch (generate) and incremental (assign-single) placement of encounters onto
courts and start times. Both run under the event's write lock and use the
placement engine's earliest-fit search, then re-run the validator over the
written scope.

Batch runs commit once per division run, so an interrupted batch leaves the
divisions it finished fully placed.
"""
import logging
from typing import List, Optional

from sqlmodel import Session

from courtplan.models.encounter import INACTIVE_STATUSES, Encounter
from courtplan.services import conflict_validator
from courtplan.services.placement_engine import (
    REASON_DEPENDENCY_CYCLE,
    SchedulingContext,
    processing_order,
    unscheduled,
)
from courtplan.utils.event_locks import event_write_lock
from courtplan.utils.guards import (
    SchedulingInputError,
    require_division,
    require_encounter,
    require_event,
    require_mutable_encounter,
    require_phase,
)
from courtplan.utils.schedule_models import (
    ScheduledEncounterInfo,
    ScheduleRequest,
    ScheduleResult,
    UnscheduledEncounter,
)

logger = logging.getLogger(__name__)


def _in_request_scope(encounter: Encounter, request: ScheduleRequest) -> bool:
    if request.division_id is not None and encounter.division_id != request.division_id:
        return False
    if request.phase_id is not None and encounter.phase_id != request.phase_id:
        return False
    return True


def _build_result(
    assignments: List[ScheduledEncounterInfo],
    unscheduled_list: List[UnscheduledEncounter],
    conflicts,
    total: int,
) -> ScheduleResult:
    scheduled_count = len(assignments)
    if total == 0:
        message = "No encounters to schedule"
    elif not unscheduled_list:
        message = f"Scheduled {scheduled_count} encounter(s)"
    else:
        message = f"Scheduled {scheduled_count} of {total} encounter(s); {len(unscheduled_list)} could not be placed"

    return ScheduleResult(
        success=scheduled_count > 0 or not unscheduled_list,
        message=message,
        scheduled_count=scheduled_count,
        courts_used=len({a.court_id for a in assignments}),
        start_time=min((a.start_time for a in assignments), default=None),
        estimated_end_time=max((a.end_time for a in assignments), default=None),
        conflicts=conflicts,
        unscheduled=unscheduled_list,
        assignments=assignments,
    )


def generate(session: Session, request: ScheduleRequest) -> ScheduleResult:
    """
    Schedule every unscheduled encounter in the requested scope.

    Args:
        session: Database session
        request: Event (required), optional division/phase filter, clear_existing

    Returns:
        ScheduleResult with placements, unplaceable encounters and post-write conflicts

    Raises:
        SchedulingInputError: Unknown event, or division/phase outside it
    """
    if request.event_id is None:
        raise SchedulingInputError("event_id is required")
    event_id = request.event_id
    require_event(session, event_id)
    if request.division_id is not None:
        require_division(session, request.division_id, event_id=event_id)
    if request.phase_id is not None:
        phase = require_phase(session, request.phase_id, division_id=request.division_id)
        if request.division_id is None:
            require_division(session, phase.division_id, event_id=event_id)

    with event_write_lock(event_id):
        context = SchedulingContext(session, event_id)
        in_scope = [
            e for e in context.encounters.values()
            if _in_request_scope(e, request)
            and e.status not in INACTIVE_STATUSES
            and not e.is_frozen
        ]

        if request.clear_existing:
            cleared = 0
            for encounter in in_scope:
                if encounter.is_scheduled:
                    encounter.clear_assignment()
                    session.add(encounter)
                    cleared += 1
            session.commit()
            logger.info("Cleared %d encounter(s) before generating for event %d", cleared, event_id)

        candidates = [e for e in in_scope if not e.is_scheduled]
        context.seed()
        ordered, cyclic = processing_order(candidates, context)

        logger.info(
            "Generating schedule for event %d (division=%s, phase=%s): %d candidate(s)",
            event_id, request.division_id, request.phase_id, len(candidates),
        )

        assignments: List[ScheduledEncounterInfo] = []
        unscheduled_list: List[UnscheduledEncounter] = [
            unscheduled(e, REASON_DEPENDENCY_CYCLE, "Source encounters form a cycle") for e in cyclic
        ]
        current_division: Optional[int] = None
        for encounter in ordered:
            if current_division is not None and encounter.division_id != current_division:
                session.commit()
            current_division = encounter.division_id

            info, failure = context.try_place(encounter, context.block_windows(encounter))
            if info is not None:
                assignments.append(info)
            else:
                unscheduled_list.append(failure)
                logger.info(
                    "Encounter %d left unscheduled: %s", encounter.id, failure.reason
                )
        session.commit()

    conflicts = conflict_validator.validate(session, event_id, request.division_id)
    if request.phase_id is not None:
        touched = {e.id for e in in_scope}
        conflicts = [
            c for c in conflicts
            if c.encounter_id_1 in touched or (c.encounter_id_2 is not None and c.encounter_id_2 in touched)
        ]

    result = _build_result(assignments, unscheduled_list, conflicts, len(candidates))
    logger.info(
        "Schedule generated for event %d: %d placed, %d unscheduled, %d conflict(s)",
        event_id, result.scheduled_count, len(result.unscheduled), len(result.conflicts),
    )
    return result


def assign_single_encounter(session: Session, encounter_id: int) -> ScheduleResult:
    """
    Place one encounter at its earliest admissible court/time against everything else.

    Nothing is written when no slot fits; the result reports why.

    Raises:
        SchedulingInputError: Unknown encounter
        InvalidTransitionError: Encounter is in progress, completed, cancelled or a bye
    """
    encounter = require_encounter(session, encounter_id)

    with event_write_lock(encounter.event_id):
        context = SchedulingContext(session, encounter.event_id)
        encounter = context.encounters[encounter_id]
        require_mutable_encounter(encounter)
        context.seed(exclude_ids=[encounter_id])

        info, failure = context.try_place(encounter, context.block_windows(encounter))
        if info is None:
            logger.info("Encounter %d could not be assigned: %s", encounter_id, failure.reason)
            return ScheduleResult(
                success=False,
                message=f"No slot available for encounter {encounter_id}",
                unscheduled=[failure],
            )
        session.commit()

    conflicts = [
        c for c in conflict_validator.validate(session, encounter.event_id, encounter.division_id)
        if c.involves(encounter_id)
    ]
    logger.info("Encounter %d assigned to court %d at %s", encounter_id, info.court_id, info.start_time)
    return _build_result([info], [], conflicts, 1)
