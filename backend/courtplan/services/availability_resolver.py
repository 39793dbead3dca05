"""
Court availability resolution.

Exactly one answer per (court, day):
- An active court-specific window for that day wins.
- Otherwise the event-wide active default for that day.
- Otherwise the court is closed that day (empty window, never "all day").

The resolver itself is pure. AvailabilityResolver.load() snapshots an event's
windows once so the scheduler and validator can ask per encounter without a
query each time.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlmodel import Session, select

from courtplan.models.court_availability import CourtAvailability
from courtplan.models.event import Event
from courtplan.utils.event_locks import event_write_lock
from courtplan.utils.guards import SchedulingInputError, require_court, require_event
from courtplan.utils.schedule_models import AvailabilityWindowUpsert

logger = logging.getLogger(__name__)

SOURCE_COURT = "court"
SOURCE_EVENT = "event"
SOURCE_NONE = "none"


@dataclass(frozen=True)
class TimeWindow:
    day_number: int
    available_from: Optional[time]
    available_to: Optional[time]
    source: str

    @property
    def is_empty(self) -> bool:
        return (
            self.available_from is None
            or self.available_to is None
            or self.available_from >= self.available_to
        )

    def absolute(self, event_start: date) -> Optional[Tuple[datetime, datetime]]:
        """Window as datetimes on the calendar date of this day, or None when closed."""
        if self.is_empty:
            return None
        day = date.fromordinal(event_start.toordinal() + self.day_number - 1)
        return datetime.combine(day, self.available_from), datetime.combine(day, self.available_to)

    def contains(self, event_start: date, start: datetime, end: datetime) -> bool:
        bounds = self.absolute(event_start)
        if bounds is None:
            return False
        return bounds[0] <= start and end <= bounds[1]


def day_number_for(event_start: date, moment: datetime) -> int:
    """1-based event day of a moment (day 1 = event start date)."""
    return (moment.date() - event_start).days + 1


def to_event_wall_clock(event: Event, moment: datetime) -> datetime:
    """
    Stored times are naive wall-clock times in the event's timezone.

    Naive input is taken as already local; aware input is converted first.
    """
    if moment.tzinfo is None:
        return moment
    try:
        zone = ZoneInfo(event.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise SchedulingInputError(f"Event {event.id} has an unknown timezone '{event.timezone}'")
    return moment.astimezone(zone).replace(tzinfo=None)


def _window_from_row(day_number: int, row: Optional[CourtAvailability], source: str) -> TimeWindow:
    if row is None:
        return TimeWindow(day_number=day_number, available_from=None, available_to=None, source=SOURCE_NONE)
    return TimeWindow(
        day_number=day_number,
        available_from=row.available_from,
        available_to=row.available_to,
        source=source,
    )


class AvailabilityResolver:
    """Preloaded view over one event's active availability rows."""

    def __init__(self, rows: List[CourtAvailability]):
        self._overrides: Dict[Tuple[int, int], CourtAvailability] = {}
        self._defaults: Dict[int, CourtAvailability] = {}
        for row in rows:
            if not row.is_active:
                continue
            if row.court_id is None:
                self._defaults[row.day_number] = row
            else:
                self._overrides[(row.court_id, row.day_number)] = row

    @classmethod
    def load(cls, session: Session, event_id: int) -> "AvailabilityResolver":
        rows = session.exec(
            select(CourtAvailability).where(
                CourtAvailability.event_id == event_id,
                CourtAvailability.is_active == True,  # noqa: E712
            )
        ).all()
        return cls(list(rows))

    def resolve(self, court_id: int, day_number: int) -> TimeWindow:
        row = self._overrides.get((court_id, day_number))
        if row is not None:
            return _window_from_row(day_number, row, SOURCE_COURT)
        row = self._defaults.get(day_number)
        if row is not None:
            return _window_from_row(day_number, row, SOURCE_EVENT)
        return _window_from_row(day_number, None, SOURCE_NONE)


def resolve(session: Session, court_id: int, day_number: int) -> TimeWindow:
    """Resolve a single court/day straight from the database."""
    court = require_court(session, court_id)
    return AvailabilityResolver.load(session, court.event_id).resolve(court_id, day_number)


# ============================================================================
# Window maintenance
# ============================================================================


def list_windows(session: Session, event_id: int) -> List[CourtAvailability]:
    require_event(session, event_id)
    return list(
        session.exec(
            select(CourtAvailability)
            .where(CourtAvailability.event_id == event_id)
            .order_by(CourtAvailability.day_number, CourtAvailability.court_id, CourtAvailability.id)
        ).all()
    )


def _upsert(
    session: Session, event_id: int, court_id: Optional[int], payload: AvailabilityWindowUpsert
) -> CourtAvailability:
    event = require_event(session, event_id)
    if payload.day_number > event.day_count:
        raise SchedulingInputError(
            f"Day {payload.day_number} is outside the event ({event.day_count} day(s))"
        )

    with event_write_lock(event_id):
        row = session.exec(
            select(CourtAvailability).where(
                CourtAvailability.event_id == event_id,
                CourtAvailability.court_id == court_id,
                CourtAvailability.day_number == payload.day_number,
            )
        ).first()
        if row is None:
            row = CourtAvailability(event_id=event_id, court_id=court_id, day_number=payload.day_number)
        row.available_from = payload.available_from
        row.available_to = payload.available_to
        row.notes = payload.notes
        row.is_active = True
        row.updated_at = datetime.utcnow()
        session.add(row)
        session.commit()
        session.refresh(row)

    logger.info(
        "Availability set: event=%d court=%s day=%d %s-%s",
        event_id,
        court_id if court_id is not None else "default",
        payload.day_number,
        payload.available_from,
        payload.available_to,
    )
    return row


def set_event_default(session: Session, event_id: int, payload: AvailabilityWindowUpsert) -> CourtAvailability:
    return _upsert(session, event_id, None, payload)


def set_court_override(session: Session, court_id: int, payload: AvailabilityWindowUpsert) -> CourtAvailability:
    court = require_court(session, court_id)
    return _upsert(session, court.event_id, court_id, payload)


def remove_court_override(session: Session, court_id: int, day_number: int) -> bool:
    """Delete a court's own window for a day; the event default applies again. False if none existed."""
    court = require_court(session, court_id)
    with event_write_lock(court.event_id):
        row = session.exec(
            select(CourtAvailability).where(
                CourtAvailability.court_id == court_id,
                CourtAvailability.day_number == day_number,
            )
        ).first()
        if row is None:
            return False
        session.delete(row)
        session.commit()
    logger.info("Availability override removed: court=%d day=%d", court_id, day_number)
    return True
