"""
Scheduling Guards and Errors

Reusable lookups that enforce the engine's request-level rules:
- Referenced records must exist (and belong to the same event)
- Encounters that are in progress or completed are frozen

Routes translate these errors into HTTP responses; services never return
partial state after raising one.
"""

from typing import Optional

from sqlmodel import Session

from courtplan.models.court import Court
from courtplan.models.court_group import CourtGroup
from courtplan.models.division import Division
from courtplan.models.encounter import INACTIVE_STATUSES, Encounter
from courtplan.models.event import Event
from courtplan.models.phase import Phase


class SchedulingError(Exception):
    """Base exception for request-level scheduling errors"""

    status_code = 400


class SchedulingInputError(SchedulingError):
    """Missing or malformed input; nothing was changed"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class InvalidTransitionError(SchedulingError):
    """The encounter's status does not allow this change"""

    status_code = 409


def require_event(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if not event:
        raise SchedulingInputError(f"Event {event_id} not found", status_code=404)
    return event


def require_division(session: Session, division_id: int, event_id: Optional[int] = None) -> Division:
    division = session.get(Division, division_id)
    if not division:
        raise SchedulingInputError(f"Division {division_id} not found", status_code=404)
    if event_id is not None and division.event_id != event_id:
        raise SchedulingInputError(f"Division {division_id} does not belong to event {event_id}")
    return division


def require_phase(session: Session, phase_id: int, division_id: Optional[int] = None) -> Phase:
    phase = session.get(Phase, phase_id)
    if not phase:
        raise SchedulingInputError(f"Phase {phase_id} not found", status_code=404)
    if division_id is not None and phase.division_id != division_id:
        raise SchedulingInputError(f"Phase {phase_id} does not belong to division {division_id}")
    return phase


def require_court(session: Session, court_id: int, event_id: Optional[int] = None) -> Court:
    court = session.get(Court, court_id)
    if not court:
        raise SchedulingInputError(f"Court {court_id} not found", status_code=404)
    if event_id is not None and court.event_id != event_id:
        raise SchedulingInputError(f"Court {court_id} does not belong to event {event_id}")
    return court


def require_court_group(session: Session, court_group_id: int, event_id: Optional[int] = None) -> CourtGroup:
    group = session.get(CourtGroup, court_group_id)
    if not group:
        raise SchedulingInputError(f"Court group {court_group_id} not found", status_code=404)
    if event_id is not None and group.event_id != event_id:
        raise SchedulingInputError(f"Court group {court_group_id} does not belong to event {event_id}")
    return group


def require_encounter(session: Session, encounter_id: int) -> Encounter:
    encounter = session.get(Encounter, encounter_id)
    if not encounter:
        raise SchedulingInputError(f"Encounter {encounter_id} not found", status_code=404)
    return encounter


def require_mutable_encounter(encounter: Encounter) -> Encounter:
    """Reject court/time changes on frozen (in progress, completed) or cancelled/bye encounters."""
    if encounter.is_frozen:
        raise InvalidTransitionError(
            f"ENCOUNTER_FROZEN: Cannot change court or time of encounter {encounter.id} "
            f"with status '{encounter.status}'"
        )
    if encounter.status in INACTIVE_STATUSES:
        raise InvalidTransitionError(
            f"ENCOUNTER_INACTIVE: Encounter {encounter.id} is {encounter.status} and cannot be scheduled"
        )
    return encounter
