from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from courtplan.database import get_session
from courtplan.models.court_availability import CourtAvailability
from courtplan.services import availability_resolver
from courtplan.utils.guards import SchedulingError, require_court
from courtplan.utils.schedule_models import AvailabilityWindowRead, AvailabilityWindowUpsert, ResolvedAvailability

router = APIRouter()


def _to_read(row: CourtAvailability) -> AvailabilityWindowRead:
    return AvailabilityWindowRead(
        id=row.id,
        event_id=row.event_id,
        court_id=row.court_id,
        day_number=row.day_number,
        available_from=row.available_from,
        available_to=row.available_to,
        notes=row.notes,
        is_active=row.is_active,
    )


@router.get("/events/{event_id}/availability", response_model=List[AvailabilityWindowRead])
def list_availability(event_id: int, session: Session = Depends(get_session)):
    """Event defaults (court_id null) and per-court overrides, by day."""
    try:
        rows = availability_resolver.list_windows(session, event_id)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return [_to_read(r) for r in rows]


@router.put("/events/{event_id}/availability/default", response_model=AvailabilityWindowRead)
def set_event_default(
    event_id: int,
    payload: AvailabilityWindowUpsert,
    session: Session = Depends(get_session),
):
    try:
        row = availability_resolver.set_event_default(session, event_id, payload)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return _to_read(row)


@router.put("/courts/{court_id}/availability", response_model=AvailabilityWindowRead)
def set_court_override(
    court_id: int,
    payload: AvailabilityWindowUpsert,
    session: Session = Depends(get_session),
):
    try:
        row = availability_resolver.set_court_override(session, court_id, payload)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return _to_read(row)


@router.delete("/courts/{court_id}/availability/{day_number}", status_code=204)
def remove_court_override(court_id: int, day_number: int, session: Session = Depends(get_session)):
    try:
        removed = availability_resolver.remove_court_override(session, court_id, day_number)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail="No override for that court and day")
    return None


@router.get("/events/{event_id}/availability/resolve", response_model=ResolvedAvailability)
def resolve_availability(
    event_id: int,
    court_id: int = Query(...),
    day_number: int = Query(..., ge=1),
    session: Session = Depends(get_session),
):
    try:
        require_court(session, court_id, event_id=event_id)
        window = availability_resolver.resolve(session, court_id, day_number)
    except SchedulingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return ResolvedAvailability(
        court_id=court_id,
        day_number=day_number,
        source=window.source,
        available=not window.is_empty,
        available_from=window.available_from,
        available_to=window.available_to,
    )
