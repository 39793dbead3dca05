"""
Rest Rules - minimum rest and occupancy bookkeeping for encounter placement

Rules:
- Two encounters on one court may not overlap: [start, end) intervals are disjoint
- A unit (and every player in it) needs the division's minimum rest between encounters
- Across divisions the larger of the two rest requirements applies

Resolution order for durations: encounter -> phase -> division -> configured default.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from courtplan.config import DEFAULT_MATCH_MINUTES, DEFAULT_REST_MINUTES
from courtplan.models.division import Division
from courtplan.models.encounter import Encounter
from courtplan.models.phase import Phase


def resolve_duration_minutes(encounter: Encounter, division: Optional[Division], phase: Optional[Phase]) -> int:
    """Encounter's own estimate, else phase override, else division default, else config default."""
    if encounter.duration_minutes:
        return encounter.duration_minutes
    if phase is not None and phase.estimated_match_minutes:
        return phase.estimated_match_minutes
    if division is not None and division.estimated_match_minutes:
        return division.estimated_match_minutes
    return DEFAULT_MATCH_MINUTES


def resolve_rest_minutes(division: Optional[Division]) -> int:
    if division is not None and division.min_rest_minutes is not None:
        return division.min_rest_minutes
    return DEFAULT_REST_MINUTES


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Check if [a_start, a_end) overlaps [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


def buffered_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime, rest_minutes: int
) -> bool:
    """Check if [a_start - rest, a_end + rest) overlaps [b_start, b_end)."""
    rest = timedelta(minutes=rest_minutes)
    return intervals_overlap(a_start - rest, a_end + rest, b_start, b_end)


def gap_minutes(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> float:
    """Idle minutes between two non-overlapping intervals (negative when they overlap)."""
    if a_end <= b_start:
        return (b_start - a_end).total_seconds() / 60
    if b_end <= a_start:
        return (a_start - b_end).total_seconds() / 60
    return -1.0


# ============================================================================
# Occupancy tracking
# ============================================================================

# (start, end, rest_minutes, encounter_id)
Booking = Tuple[datetime, datetime, int, int]


class OccupancyTracker:
    """
    In-memory view of who is busy when, built from persisted encounters and
    extended as new placements are made.

    Maps court_id / unit_id / player_id -> list of bookings.
    """

    def __init__(self):
        self._courts: Dict[int, List[Booking]] = {}
        self._units: Dict[int, List[Booking]] = {}
        self._players: Dict[int, List[Booking]] = {}
        self.end_times: Dict[int, datetime] = {}

    def add(
        self,
        encounter_id: int,
        court_id: int,
        start: datetime,
        end: datetime,
        rest_minutes: int,
        unit_ids: Iterable[int],
        player_ids: Iterable[int],
    ) -> None:
        booking = (start, end, rest_minutes, encounter_id)
        self._courts.setdefault(court_id, []).append(booking)
        for unit_id in unit_ids:
            self._units.setdefault(unit_id, []).append(booking)
        for player_id in player_ids:
            self._players.setdefault(player_id, []).append(booking)
        self.end_times[encounter_id] = end

    def remove(self, encounter_id: int) -> None:
        for index in (self._courts, self._units, self._players):
            for key in list(index):
                index[key] = [b for b in index[key] if b[3] != encounter_id]
        self.end_times.pop(encounter_id, None)

    def court_bookings(self, court_id: int) -> List[Booking]:
        return list(self._courts.get(court_id, []))

    def latest_end(self, encounter_ids: Iterable[int]) -> Optional[datetime]:
        ends = [self.end_times[e] for e in encounter_ids if e in self.end_times]
        return max(ends) if ends else None

    def _blocked_ranges(
        self,
        court_id: int,
        unit_ids: Iterable[int],
        player_ids: Iterable[int],
        duration: timedelta,
        rest_minutes: int,
    ) -> List[Tuple[datetime, datetime]]:
        """
        Open ranges (lo, hi) of start times that would collide with an existing booking.

        Court: (s - d, e). Unit/player: (s - d - rest, e + rest) with rest = max of both sides.
        """
        ranges: List[Tuple[datetime, datetime]] = []
        for start, end, _, _ in self._courts.get(court_id, []):
            ranges.append((start - duration, end))

        people = [(self._units, u) for u in unit_ids] + [(self._players, p) for p in player_ids]
        for index, key in people:
            for start, end, other_rest, _ in index.get(key, []):
                rest = timedelta(minutes=max(rest_minutes, other_rest))
                ranges.append((start - duration - rest, end + rest))
        ranges.sort()
        return ranges

    def earliest_start(
        self,
        court_id: int,
        unit_ids: Iterable[int],
        player_ids: Iterable[int],
        duration_minutes: int,
        rest_minutes: int,
        not_before: datetime,
        window_end: datetime,
    ) -> Optional[datetime]:
        """
        Earliest start >= not_before on this court such that the encounter ends by
        window_end and collides with nobody. None if it cannot fit.
        """
        duration = timedelta(minutes=duration_minutes)
        if not_before + duration > window_end:
            return None

        blocked = self._blocked_ranges(court_id, list(unit_ids), list(player_ids), duration, rest_minutes)
        candidate = not_before
        moved = True
        while moved:
            moved = False
            for lo, hi in blocked:
                if lo < candidate < hi:
                    candidate = hi
                    moved = True
            if candidate + duration > window_end:
                return None
        return candidate
