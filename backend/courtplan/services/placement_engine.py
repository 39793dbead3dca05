"""
Placement Engine: earliest-fit court/time search shared by every writer.

Generate, assign-single and auto-allocate all place encounters the same way:
- Candidate windows come from the effective block segments (or all active
  courts when a division has no blocks), intersected with each court's
  availability window per event day
- A start time is admissible when it introduces no court double booking,
  no unit/player overlap or short rest, and no start before a source
  encounter's end or a predecessor block's handoff
- Among admissible starts the earliest wins; ties go to court rank
  (sort order, natural label, id)

The context is built once per request from persisted state and extended in
memory as placements are made, so later encounters see earlier ones.
"""
import heapq
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, NamedTuple, Optional, Set, Tuple

from sqlmodel import Session, select

from courtplan.models.block_assignment import BlockAssignment
from courtplan.models.court import Court
from courtplan.models.court_group import CourtGroup, CourtGroupCourt
from courtplan.models.division import Division
from courtplan.models.encounter import INACTIVE_STATUSES, Encounter
from courtplan.models.phase import Phase
from courtplan.services.availability_resolver import AvailabilityResolver
from courtplan.services.conflict_validator import load_members_by_unit, player_ids_for
from courtplan.utils.block_windows import admissible_segments, block_depths, effective_blocks, scope_rank
from courtplan.utils.courts import court_label_sort_key
from courtplan.utils.guards import require_event
from courtplan.utils.rest_rules import OccupancyTracker, resolve_duration_minutes, resolve_rest_minutes
from courtplan.utils.schedule_models import ScheduledEncounterInfo, UnscheduledEncounter

logger = logging.getLogger(__name__)

# Unscheduled reason codes
REASON_NO_AVAILABLE_SLOT = "NO_AVAILABLE_SLOT"
REASON_NO_ELIGIBLE_COURT = "NO_ELIGIBLE_COURT"
REASON_DEPENDENCY_UNSCHEDULED = "DEPENDENCY_UNSCHEDULED"
REASON_DEPENDENCY_CYCLE = "DEPENDENCY_CYCLE"


class CandidateWindow(NamedTuple):
    court_id: int
    start: datetime
    end: datetime
    block: Optional[BlockAssignment]


@dataclass
class Slot:
    court_id: int
    start: datetime
    end: datetime
    duration_minutes: int
    rest_minutes: int


class SchedulingContext:
    """Snapshot of one event's scheduling inputs plus in-memory occupancy."""

    def __init__(self, session: Session, event_id: int):
        self.session = session
        self.event = require_event(session, event_id)
        self.event_id = event_id

        self.divisions: Dict[int, Division] = {
            d.id: d for d in session.exec(select(Division).where(Division.event_id == event_id)).all()
        }
        self.phases: Dict[int, Phase] = {}
        if self.divisions:
            self.phases = {
                p.id: p
                for p in session.exec(select(Phase).where(Phase.division_id.in_(list(self.divisions)))).all()
            }

        courts = session.exec(
            select(Court).where(Court.event_id == event_id, Court.is_active == True)  # noqa: E712
        ).all()
        courts = sorted(courts, key=lambda c: (c.sort_order, court_label_sort_key(c.label), c.id))
        self.courts: List[Court] = courts
        self.court_rank: Dict[int, int] = {c.id: i for i, c in enumerate(courts)}
        self.court_labels: Dict[int, str] = {c.id: c.label for c in courts}

        self.group_courts: Dict[int, List[int]] = {}
        active_groups = session.exec(
            select(CourtGroup.id).where(CourtGroup.event_id == event_id, CourtGroup.is_active == True)  # noqa: E712
        ).all()
        for group_id in active_groups:
            self.group_courts[group_id] = []
        links = session.exec(
            select(CourtGroupCourt).join(CourtGroup, CourtGroup.id == CourtGroupCourt.court_group_id)
            .where(CourtGroup.event_id == event_id)
        ).all()
        for link in links:
            if link.court_group_id in self.group_courts and link.court_id in self.court_rank:
                self.group_courts[link.court_group_id].append(link.court_id)
        for court_ids in self.group_courts.values():
            court_ids.sort(key=lambda cid: self.court_rank[cid])

        self.blocks: List[BlockAssignment] = list(
            session.exec(
                select(BlockAssignment).where(
                    BlockAssignment.event_id == event_id,
                    BlockAssignment.is_active == True,  # noqa: E712
                )
            ).all()
        )
        self.block_depth = block_depths(self.blocks)

        self.members_by_unit = load_members_by_unit(session, event_id)
        self.availability = AvailabilityResolver.load(session, event_id)
        self.encounters: Dict[int, Encounter] = {
            e.id: e
            for e in session.exec(
                select(Encounter)
                .where(Encounter.event_id == event_id)
                .execution_options(populate_existing=True)
            ).all()
        }
        self.tracker = OccupancyTracker()

    # ------------------------------------------------------------------
    # Per-encounter rules
    # ------------------------------------------------------------------

    def division_of(self, encounter: Encounter) -> Optional[Division]:
        return self.divisions.get(encounter.division_id)

    def phase_of(self, encounter: Encounter) -> Optional[Phase]:
        return self.phases.get(encounter.phase_id) if encounter.phase_id is not None else None

    def duration_for(self, encounter: Encounter) -> int:
        return resolve_duration_minutes(encounter, self.division_of(encounter), self.phase_of(encounter))

    def rest_for(self, encounter: Encounter) -> int:
        return resolve_rest_minutes(self.division_of(encounter))

    def players_for(self, encounter: Encounter) -> Set[int]:
        return player_ids_for(encounter, self.members_by_unit)

    def blocks_for(self, encounter: Encounter) -> List[BlockAssignment]:
        return effective_blocks(self.blocks, encounter.division_id, encounter.phase_id)

    def depth_for(self, encounter: Encounter) -> int:
        blocks = self.blocks_for(encounter)
        return max((self.block_depth.get(b.id, 0) for b in blocks), default=0)

    def order_key(self, encounter: Encounter) -> Tuple:
        division = self.division_of(encounter)
        phase = self.phase_of(encounter)
        return (
            self.depth_for(encounter),
            division.sort_order if division else 0,
            encounter.division_id,
            phase.phase_order if phase else 0,
            encounter.round_number,
            encounter.encounter_number,
            encounter.id,
        )

    # ------------------------------------------------------------------
    # Occupancy
    # ------------------------------------------------------------------

    def book(self, encounter: Encounter, rest_minutes: Optional[int] = None) -> None:
        self.tracker.add(
            encounter.id,
            encounter.court_id,
            encounter.estimated_start_time,
            encounter.estimated_end_time,
            self.rest_for(encounter) if rest_minutes is None else rest_minutes,
            encounter.unit_ids,
            self.players_for(encounter),
        )

    def seed(self, exclude_ids: Iterable[int] = ()) -> None:
        """Book every persisted, active, scheduled encounter not in exclude_ids."""
        excluded = set(exclude_ids)
        for encounter in self.encounters.values():
            if encounter.id in excluded or encounter.status in INACTIVE_STATUSES:
                continue
            if encounter.is_scheduled:
                self.book(encounter)

    def unscheduled_sources(self, encounter: Encounter) -> List[int]:
        """Active source encounters that have no place yet."""
        missing = []
        for source_id in encounter.source_ids:
            source = self.encounters.get(source_id)
            if source is None or source.status in INACTIVE_STATUSES:
                continue
            if source_id not in self.tracker.end_times:
                missing.append(source_id)
        return missing

    def handoff_bound(self, block: Optional[BlockAssignment]) -> Optional[datetime]:
        """
        Latest end in the predecessor block's scope plus its buffer, if any is booked.

        Encounters the dependent block governs at least as specifically as the
        predecessor are its own, not the predecessor's, and never delay it.
        """
        if block is None or block.depends_on_block_id is None:
            return None
        predecessor = next((b for b in self.blocks if b.id == block.depends_on_block_id), None)
        if predecessor is None:
            return None
        in_scope = []
        for e in self.encounters.values():
            predecessor_rank = scope_rank(predecessor, e.division_id, e.phase_id)
            if predecessor_rank is None:
                continue
            own_rank = scope_rank(block, e.division_id, e.phase_id)
            if own_rank is not None and own_rank >= predecessor_rank:
                continue
            in_scope.append(e.id)
        latest = self.tracker.latest_end(in_scope)
        if latest is None:
            return None
        return latest + timedelta(minutes=block.dependency_buffer_minutes)

    # ------------------------------------------------------------------
    # Candidate windows
    # ------------------------------------------------------------------

    def _day_windows(self, court_id: int) -> List[Tuple[datetime, datetime]]:
        windows = []
        for day_number in range(1, self.event.day_count + 1):
            bounds = self.availability.resolve(court_id, day_number).absolute(self.event.start_date)
            if bounds is not None:
                windows.append(bounds)
        return windows

    def block_windows(self, encounter: Encounter) -> List[CandidateWindow]:
        """Block segments intersected with availability, for every day and court."""
        ordered = self.blocks_for(encounter)
        if ordered:
            segments = [
                (lo, hi, block, self.group_courts.get(block.court_group_id, []))
                for lo, hi, block in admissible_segments(ordered)
            ]
        else:
            segments = [(0, 24 * 60, None, [c.id for c in self.courts])]

        windows: List[CandidateWindow] = []
        for lo, hi, block, court_ids in segments:
            for court_id in court_ids:
                for open_start, open_end in self._day_windows(court_id):
                    midnight = datetime.combine(open_start.date(), datetime.min.time())
                    start = max(open_start, midnight + timedelta(minutes=lo))
                    end = min(open_end, midnight + timedelta(minutes=hi))
                    if start < end:
                        windows.append(CandidateWindow(court_id, start, end, block))
        return windows

    def explicit_windows(self, court_ids: Iterable[int], start: datetime, end: datetime) -> List[CandidateWindow]:
        """Absolute [start, end) on explicit courts, intersected with availability."""
        windows: List[CandidateWindow] = []
        for court_id in court_ids:
            for open_start, open_end in self._day_windows(court_id):
                lo = max(open_start, start)
                hi = min(open_end, end)
                if lo < hi:
                    windows.append(CandidateWindow(court_id, lo, hi, None))
        return windows

    # ------------------------------------------------------------------
    # Search and placement
    # ------------------------------------------------------------------

    def find_slot(
        self,
        encounter: Encounter,
        windows: List[CandidateWindow],
        duration_minutes: Optional[int] = None,
        rest_minutes: Optional[int] = None,
    ) -> Optional[Slot]:
        duration = duration_minutes or self.duration_for(encounter)
        rest = self.rest_for(encounter) if rest_minutes is None else rest_minutes
        units = encounter.unit_ids
        players = self.players_for(encounter)
        sources_end = self.tracker.latest_end(encounter.source_ids)

        best: Optional[Slot] = None
        best_key = None
        for window in windows:
            not_before = window.start
            if sources_end is not None and sources_end > not_before:
                not_before = sources_end
            handoff = self.handoff_bound(window.block)
            if handoff is not None and handoff > not_before:
                not_before = handoff

            start = self.tracker.earliest_start(
                window.court_id, units, players, duration, rest, not_before, window.end
            )
            if start is None:
                continue
            key = (start, self.court_rank.get(window.court_id, len(self.court_rank)))
            if best_key is None or key < best_key:
                best_key = key
                best = Slot(
                    court_id=window.court_id,
                    start=start,
                    end=start + timedelta(minutes=duration),
                    duration_minutes=duration,
                    rest_minutes=rest,
                )
        return best

    def place(self, encounter: Encounter, slot: Slot) -> ScheduledEncounterInfo:
        """Write the slot onto the encounter (session only, no commit) and book it."""
        self.tracker.remove(encounter.id)
        encounter.assign(slot.court_id, slot.start, slot.end, slot.duration_minutes)
        self.session.add(encounter)
        self.book(encounter, rest_minutes=slot.rest_minutes)
        logger.debug(
            "Placed encounter %d on court %d at %s", encounter.id, slot.court_id, slot.start.isoformat()
        )
        return ScheduledEncounterInfo(
            encounter_id=encounter.id,
            court_id=slot.court_id,
            court_label=self.court_labels.get(slot.court_id, str(slot.court_id)),
            start_time=slot.start,
            end_time=slot.end,
        )

    def try_place(
        self,
        encounter: Encounter,
        windows: List[CandidateWindow],
        duration_minutes: Optional[int] = None,
        rest_minutes: Optional[int] = None,
    ) -> Tuple[Optional[ScheduledEncounterInfo], Optional[UnscheduledEncounter]]:
        """Place one encounter or explain why it cannot be placed."""
        missing = self.unscheduled_sources(encounter)
        if missing:
            return None, unscheduled(
                encounter,
                REASON_DEPENDENCY_UNSCHEDULED,
                "Source encounter(s) not scheduled: " + ", ".join(str(m) for m in missing),
            )
        if not windows:
            return None, unscheduled(
                encounter, REASON_NO_ELIGIBLE_COURT, "No court is open inside this encounter's blocks"
            )
        slot = self.find_slot(encounter, windows, duration_minutes, rest_minutes)
        if slot is None:
            return None, unscheduled(
                encounter, REASON_NO_AVAILABLE_SLOT, "No start time satisfies court, rest and availability rules"
            )
        return self.place(encounter, slot), None


def unscheduled(encounter: Encounter, reason: str, notes: Optional[str] = None) -> UnscheduledEncounter:
    return UnscheduledEncounter(
        encounter_id=encounter.id,
        division_id=encounter.division_id,
        phase_id=encounter.phase_id,
        reason=reason,
        notes=notes,
    )


def processing_order(
    encounters: List[Encounter], context: SchedulingContext
) -> Tuple[List[Encounter], List[Encounter]]:
    """
    Topological order over source edges among the given encounters, ties by order_key.

    Returns (ordered, cyclic) where cyclic holds encounters stuck in a source cycle.
    """
    by_id = {e.id: e for e in encounters}
    pending: Dict[int, int] = {}
    dependents: Dict[int, List[int]] = {}
    for e in encounters:
        sources = [s for s in set(e.source_ids) if s in by_id and s != e.id]
        pending[e.id] = len(sources)
        for s in sources:
            dependents.setdefault(s, []).append(e.id)

    heap = [(context.order_key(e), e.id) for e in encounters if pending[e.id] == 0]
    heapq.heapify(heap)
    ordered: List[Encounter] = []
    while heap:
        _, encounter_id = heapq.heappop(heap)
        ordered.append(by_id[encounter_id])
        for dependent_id in dependents.get(encounter_id, []):
            pending[dependent_id] -= 1
            if pending[dependent_id] == 0:
                heapq.heappush(heap, (context.order_key(by_id[dependent_id]), dependent_id))

    placed = {e.id for e in ordered}
    cyclic = sorted((e for e in encounters if e.id not in placed), key=lambda e: e.id)
    return ordered, cyclic
