from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from courtplan.database import get_session
from courtplan.services import (
    block_allocator,
    conflict_validator,
    encounter_scheduler,
    grid_assembler,
    player_schedule,
    schedule_mutator,
)
from courtplan.utils.guards import SchedulingError
from courtplan.utils.schedule_models import (
    AutoAllocateRequest,
    AutoAllocateResult,
    ClearScheduleResult,
    MoveEncounterRequest,
    MoveEncounterResult,
    PlayerSchedule,
    ScheduleGrid,
    ScheduleRequest,
    ScheduleResult,
    ScheduleValidation,
)

router = APIRouter()


@router.post("/events/{event_id}/schedule/generate", response_model=ScheduleResult)
def generate_schedule(
    event_id: int,
    request: Optional[ScheduleRequest] = None,
    session: Session = Depends(get_session),
):
    """
    Place every unscheduled encounter of the event (or one division/phase).

    Partial success is normal: encounters that do not fit are listed in
    `unscheduled` with a reason. Conflicts found after writing are advisory.
    """
    request = request or ScheduleRequest()
    request = request.model_copy(update={"event_id": event_id})
    try:
        return encounter_scheduler.generate(session, request)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/events/{event_id}/schedule/validate", response_model=ScheduleValidation)
def validate_schedule(
    event_id: int,
    division_id: Optional[int] = Query(None, description="Only report conflicts touching this division"),
    session: Session = Depends(get_session),
):
    """Read-only conflict check of the persisted schedule."""
    try:
        return conflict_validator.summarize(session, event_id, division_id)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/divisions/{division_id}/schedule/clear", response_model=ClearScheduleResult)
def clear_schedule(
    division_id: int,
    phase_id: Optional[int] = Query(None),
    session: Session = Depends(get_session),
):
    """Unschedule a division's encounters. In-progress and completed encounters are kept."""
    try:
        cleared = schedule_mutator.clear_schedule(session, division_id, phase_id)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return ClearScheduleResult(division_id=division_id, phase_id=phase_id, cleared_count=cleared)


@router.post("/encounters/{encounter_id}/schedule/assign", response_model=ScheduleResult)
def assign_encounter(encounter_id: int, session: Session = Depends(get_session)):
    try:
        return encounter_scheduler.assign_single_encounter(session, encounter_id)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("/encounters/{encounter_id}/schedule/move", response_model=MoveEncounterResult)
def move_encounter(
    encounter_id: int,
    payload: MoveEncounterRequest,
    session: Session = Depends(get_session),
):
    """
    Manual move. Always written (unless the encounter is frozen); any conflicts
    involving the moved encounter come back as warnings.
    """
    try:
        return schedule_mutator.move_encounter(session, encounter_id, payload)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/events/{event_id}/schedule/auto-allocate", response_model=AutoAllocateResult)
def auto_allocate(
    event_id: int,
    request: AutoAllocateRequest,
    session: Session = Depends(get_session),
):
    request = request.model_copy(update={"event_id": event_id})
    try:
        return block_allocator.auto_allocate(session, request)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/events/{event_id}/schedule/grid", response_model=ScheduleGrid)
def get_schedule_grid(event_id: int, session: Session = Depends(get_session)):
    """
    Composite payload for grid rendering: courts, divisions/phases, encounters
    and blocks in one call. Read-only.
    """
    try:
        return grid_assembler.build_schedule_grid(session, event_id)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/events/{event_id}/players/{user_id}/schedule", response_model=PlayerSchedule)
def get_player_schedule(event_id: int, user_id: int, session: Session = Depends(get_session)):
    """One player's encounters in time order, with the next one to play and progress counts."""
    try:
        return player_schedule.build_player_schedule(session, event_id, user_id)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
