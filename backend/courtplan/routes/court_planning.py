from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from courtplan.database import get_session
from courtplan.services import block_allocator
from courtplan.utils.courts import court_label_sort_key
from courtplan.utils.guards import SchedulingError
from courtplan.utils.schedule_models import (
    AvailableCourt,
    BlockAssignmentCreate,
    BlockAssignmentRead,
    BlockConflict,
    CourtGroupInfo,
    ResolvedBlock,
)

router = APIRouter()


@router.get("/events/{event_id}/blocks", response_model=List[BlockAssignmentRead])
def list_blocks(event_id: int, session: Session = Depends(get_session)):
    try:
        rows = block_allocator.list_blocks(session, event_id)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return [BlockAssignmentRead.model_validate(r) for r in rows]


@router.put("/events/{event_id}/blocks", response_model=List[BlockAssignmentRead])
def save_blocks(
    event_id: int,
    blocks: List[BlockAssignmentCreate],
    session: Session = Depends(get_session),
):
    """
    Replace all block assignments of the event.

    `depends_on_index` refers to another block's position in this list.
    """
    try:
        rows = block_allocator.save_blocks(session, event_id, blocks)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return [BlockAssignmentRead.model_validate(r) for r in rows]


@router.get("/events/{event_id}/blocks/resolved", response_model=List[ResolvedBlock])
def resolved_blocks(event_id: int, session: Session = Depends(get_session)):
    try:
        return block_allocator.allocate(session, event_id)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/events/{event_id}/blocks/conflicts", response_model=List[BlockConflict])
def block_conflicts(event_id: int, session: Session = Depends(get_session)):
    """Court overlaps between unrelated blocks and handoff windows that open too early."""
    try:
        return block_allocator.validate_blocks(session, event_id)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/events/{event_id}/court-groups/auto-create", response_model=List[CourtGroupInfo])
def auto_create_court_groups(
    event_id: int,
    group_size: int = Query(4, ge=1, description="Courts per group"),
    session: Session = Depends(get_session),
):
    """Group every ungrouped court into runs of `group_size`, in natural label order."""
    try:
        groups = block_allocator.auto_create_court_groups(session, event_id, group_size)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    response = []
    for group in groups:
        courts = sorted(group.courts, key=lambda c: court_label_sort_key(c.label))
        response.append(CourtGroupInfo(
            id=group.id,
            name=group.name,
            code=group.code,
            court_ids=[c.id for c in courts],
            court_labels=[c.label for c in courts],
        ))
    return response


@router.get("/divisions/{division_id}/available-courts", response_model=List[AvailableCourt])
def available_courts(
    division_id: int,
    phase_id: Optional[int] = Query(None),
    session: Session = Depends(get_session),
):
    try:
        return block_allocator.available_courts(session, division_id, phase_id)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
