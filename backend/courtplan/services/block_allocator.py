"""
Block Allocator

Organizer-authored blocks bind a division (or one of its phases) to a court
group for a time-of-day window. This module:
- Replaces an event's blocks after validating references and handoff chains
- Resolves the stored blocks into the shape the scheduler uses, with warnings
- Lists the courts a division/phase may use
- Auto-creates court groups from ungrouped courts
- Auto-allocates encounters into explicit court/time blocks
"""
import logging
from itertools import combinations
from typing import Dict, Iterable, List, Optional

from sqlmodel import Session, select

from courtplan.models.block_assignment import BlockAssignment
from courtplan.models.court import Court
from courtplan.models.court_group import CourtGroup, CourtGroupCourt
from courtplan.models.division import Division
from courtplan.models.encounter import INACTIVE_STATUSES, Encounter
from courtplan.models.phase import Phase
from courtplan.services.availability_resolver import to_event_wall_clock
from courtplan.services.placement_engine import (
    REASON_DEPENDENCY_CYCLE,
    SchedulingContext,
    processing_order,
    unscheduled,
)
from courtplan.utils.block_windows import (
    admissible_segments,
    effective_blocks,
    find_dependency_cycle,
    minute_of_day,
    windows_overlap,
)
from courtplan.utils.courts import court_group_code, court_group_name, court_label_sort_key
from courtplan.utils.event_locks import event_write_lock
from courtplan.utils.guards import (
    SchedulingInputError,
    require_court,
    require_court_group,
    require_division,
    require_event,
    require_phase,
)
from courtplan.utils.schedule_models import (
    AutoAllocateRequest,
    AutoAllocateResult,
    AvailableCourt,
    BlockAllocationResult,
    BlockAssignmentCreate,
    BlockConflict,
    BlockConflictKind,
    ResolvedBlock,
    UnscheduledEncounter,
)

logger = logging.getLogger(__name__)


def list_blocks(session: Session, event_id: int) -> List[BlockAssignment]:
    require_event(session, event_id)
    return list(
        session.exec(
            select(BlockAssignment)
            .where(BlockAssignment.event_id == event_id)
            .order_by(BlockAssignment.division_id, BlockAssignment.priority, BlockAssignment.id)
        ).all()
    )


def _group_court_ids(session: Session, event_id: int) -> Dict[int, List[int]]:
    """court_group_id -> active court ids, in court order."""
    rows = session.exec(
        select(CourtGroupCourt.court_group_id, Court)
        .join(Court, Court.id == CourtGroupCourt.court_id)
        .where(Court.event_id == event_id, Court.is_active == True)  # noqa: E712
    ).all()
    grouped: Dict[int, List[Court]] = {}
    for group_id, court in rows:
        grouped.setdefault(group_id, []).append(court)
    return {
        group_id: [c.id for c in sorted(courts, key=lambda c: (c.sort_order, court_label_sort_key(c.label), c.id))]
        for group_id, courts in grouped.items()
    }


# ============================================================================
# Save
# ============================================================================


def save_blocks(session: Session, event_id: int, blocks: List[BlockAssignmentCreate]) -> List[BlockAssignment]:
    """
    Replace every block of the event with the given list.

    Raises:
        SchedulingInputError: unknown division/phase/group, cross-event reference,
            bad depends_on_index or a handoff cycle. Nothing is written.
    """
    require_event(session, event_id)

    edges: Dict[int, Optional[int]] = {}
    for index, block in enumerate(blocks):
        require_division(session, block.division_id, event_id=event_id)
        if block.phase_id is not None:
            require_phase(session, block.phase_id, division_id=block.division_id)
        require_court_group(session, block.court_group_id, event_id=event_id)
        if block.depends_on_index is not None:
            if not 0 <= block.depends_on_index < len(blocks):
                raise SchedulingInputError(
                    f"Block {index}: depends_on_index {block.depends_on_index} is out of range"
                )
            if block.depends_on_index == index:
                raise SchedulingInputError(f"Block {index} cannot depend on itself")
        edges[index] = block.depends_on_index

    cycle = find_dependency_cycle(edges)
    if cycle:
        raise SchedulingInputError(
            "Block dependencies form a cycle: " + " -> ".join(str(i) for i in cycle)
        )

    with event_write_lock(event_id):
        existing = session.exec(select(BlockAssignment).where(BlockAssignment.event_id == event_id)).all()
        for old in existing:
            old.depends_on_block_id = None
            session.add(old)
        session.flush()
        for old in existing:
            session.delete(old)
        session.flush()

        created: List[BlockAssignment] = []
        for block in blocks:
            row = BlockAssignment(
                event_id=event_id,
                division_id=block.division_id,
                phase_id=block.phase_id,
                court_group_id=block.court_group_id,
                priority=block.priority,
                valid_from=block.valid_from,
                valid_to=block.valid_to,
                dependency_buffer_minutes=block.dependency_buffer_minutes,
                label=block.label,
            )
            session.add(row)
            created.append(row)
        session.flush()

        for block, row in zip(blocks, created):
            if block.depends_on_index is not None:
                row.depends_on_block_id = created[block.depends_on_index].id
                session.add(row)
        session.commit()
        for row in created:
            session.refresh(row)

    logger.info("Saved %d block(s) for event %d (replaced %d)", len(created), event_id, len(existing))
    return created


# ============================================================================
# Block conflicts
# ============================================================================


def _disjoint_scopes(a: BlockAssignment, b: BlockAssignment) -> bool:
    """Different divisions, or two different phases of one division."""
    if a.division_id != b.division_id:
        return True
    return a.phase_id is not None and b.phase_id is not None and a.phase_id != b.phase_id


def detect_block_conflicts(
    blocks: Iterable[BlockAssignment],
    group_courts: Dict[int, List[int]],
    court_labels: Dict[int, str],
) -> List[BlockConflict]:
    """
    Static checks over active blocks:
    - CourtOverlap: blocks for disjoint scopes share a court during overlapping windows
    - DependencyViolation: a windowed block opens before its windowed predecessor
      closes plus the handoff buffer

    A phase block overriding its own division's block is not an overlap, and
    handoffs between blocks without windows are enforced at placement time.
    """
    ordered = sorted(blocks, key=lambda b: b.id)
    conflicts: List[BlockConflict] = []

    for a, b in combinations(ordered, 2):
        if not _disjoint_scopes(a, b) or not windows_overlap(a, b):
            continue
        b_courts = set(group_courts.get(b.court_group_id, []))
        shared = [c for c in group_courts.get(a.court_group_id, []) if c in b_courts]
        if not shared:
            continue
        labels = ", ".join(court_labels.get(c, str(c)) for c in shared)
        conflicts.append(BlockConflict(
            kind=BlockConflictKind.COURT_OVERLAP,
            block_id_1=a.id,
            block_id_2=b.id,
            court_ids=shared,
            message=f"Blocks {a.id} and {b.id} both use {labels} at overlapping times",
        ))

    by_id = {b.id: b for b in ordered}
    for block in ordered:
        predecessor = by_id.get(block.depends_on_block_id)
        if predecessor is None or block.valid_from is None or predecessor.valid_to is None:
            continue
        expected = minute_of_day(predecessor.valid_to) + block.dependency_buffer_minutes
        if minute_of_day(block.valid_from) < expected:
            conflicts.append(BlockConflict(
                kind=BlockConflictKind.DEPENDENCY_VIOLATION,
                block_id_1=predecessor.id,
                block_id_2=block.id,
                message=(
                    f"Block {block.id} starts at {block.valid_from:%H:%M} but depends on block "
                    f"{predecessor.id}, which ends at {predecessor.valid_to:%H:%M} "
                    f"(+{block.dependency_buffer_minutes} min buffer)"
                ),
            ))
    return conflicts


def _active_group_courts(session: Session, event_id: int) -> Dict[int, List[int]]:
    active = set(
        session.exec(
            select(CourtGroup.id).where(CourtGroup.event_id == event_id, CourtGroup.is_active == True)  # noqa: E712
        ).all()
    )
    return {g: ids for g, ids in _group_court_ids(session, event_id).items() if g in active}


def _court_labels(session: Session, event_id: int) -> Dict[int, str]:
    return {c.id: c.label for c in session.exec(select(Court).where(Court.event_id == event_id)).all()}


def validate_blocks(session: Session, event_id: int) -> List[BlockConflict]:
    require_event(session, event_id)
    blocks = [b for b in list_blocks(session, event_id) if b.is_active]
    return detect_block_conflicts(
        blocks, _active_group_courts(session, event_id), _court_labels(session, event_id)
    )


# ============================================================================
# Resolve
# ============================================================================


def allocate(session: Session, event_id: int) -> List[ResolvedBlock]:
    """
    Resolve the event's active blocks into the form the scheduler consumes.

    Each block carries its group's active courts and warnings for anything
    that keeps it from ever receiving encounters.
    """
    require_event(session, event_id)
    blocks = [b for b in list_blocks(session, event_id) if b.is_active]
    divisions = {d.id: d for d in session.exec(select(Division).where(Division.event_id == event_id)).all()}
    phases: Dict[int, Phase] = {}
    if divisions:
        phases = {
            p.id: p for p in session.exec(select(Phase).where(Phase.division_id.in_(list(divisions)))).all()
        }
    groups = {g.id: g for g in session.exec(select(CourtGroup).where(CourtGroup.event_id == event_id)).all()}
    group_courts = _group_court_ids(session, event_id)
    active_ids = {b.id for b in blocks}

    conflict_warnings: Dict[int, List[str]] = {}
    block_conflicts = detect_block_conflicts(
        blocks, _active_group_courts(session, event_id), _court_labels(session, event_id)
    )
    for conflict in block_conflicts:
        involved = [conflict.block_id_2]
        if conflict.kind == BlockConflictKind.COURT_OVERLAP:
            involved.insert(0, conflict.block_id_1)
        for block_id in involved:
            conflict_warnings.setdefault(block_id, []).append(conflict.message)

    # Blocks that win at least one minute of the day for some phase they govern
    winning = set()
    for division_id in divisions:
        phase_ids: List[Optional[int]] = [None] + [p.id for p in phases.values() if p.division_id == division_id]
        for phase_id in phase_ids:
            for _, _, block in admissible_segments(effective_blocks(blocks, division_id, phase_id)):
                winning.add(block.id)

    resolved: List[ResolvedBlock] = []
    for block in blocks:
        group = groups.get(block.court_group_id)
        division = divisions.get(block.division_id)
        phase = phases.get(block.phase_id) if block.phase_id is not None else None
        court_ids = group_courts.get(block.court_group_id, [])

        warnings: List[str] = []
        if group is None:
            warnings.append(f"Court group {block.court_group_id} no longer exists")
        elif not group.is_active:
            warnings.append(f"Court group '{group.name}' is inactive")
        if not court_ids:
            warnings.append("Court group has no active courts")
        if block.id not in winning:
            warnings.append("Block is shadowed by higher-priority blocks at every time of day")
        if block.depends_on_block_id is not None and block.depends_on_block_id not in active_ids:
            warnings.append(f"Predecessor block {block.depends_on_block_id} is missing or inactive")
        warnings.extend(conflict_warnings.get(block.id, []))

        resolved.append(ResolvedBlock(
            block_id=block.id,
            division_id=block.division_id,
            division_name=division.name if division else "",
            phase_id=block.phase_id,
            phase_name=phase.name if phase else None,
            court_group_id=block.court_group_id,
            court_group_name=group.name if group else "",
            court_ids=court_ids if group is not None and group.is_active else [],
            priority=block.priority,
            valid_from=block.valid_from,
            valid_to=block.valid_to,
            depends_on_block_id=block.depends_on_block_id,
            dependency_buffer_minutes=block.dependency_buffer_minutes,
            label=block.label,
            warnings=warnings,
        ))

    for item in resolved:
        for warning in item.warnings:
            logger.warning("Block %d (event %d): %s", item.block_id, event_id, warning)

    resolved.sort(key=lambda r: (
        divisions[r.division_id].sort_order if r.division_id in divisions else 0,
        r.division_id,
        phases[r.phase_id].phase_order if r.phase_id in phases else 0,
        r.priority,
        r.block_id,
    ))
    return resolved


def available_courts(session: Session, division_id: int, phase_id: Optional[int] = None) -> List[AvailableCourt]:
    """Courts a division/phase can use through its blocks; all active courts when it has none."""
    division = require_division(session, division_id)
    if phase_id is not None:
        require_phase(session, phase_id, division_id=division_id)

    blocks = session.exec(
        select(BlockAssignment).where(BlockAssignment.division_id == division_id)
    ).all()
    ordered = effective_blocks(blocks, division_id, phase_id)

    courts = session.exec(
        select(Court).where(Court.event_id == division.event_id, Court.is_active == True)  # noqa: E712
    ).all()
    group_courts = _group_court_ids(session, division.event_id)
    groups_by_court: Dict[int, List[int]] = {}
    for group_id, court_ids in group_courts.items():
        for court_id in court_ids:
            groups_by_court.setdefault(court_id, []).append(group_id)

    if ordered:
        allowed = set()
        for block in ordered:
            allowed.update(group_courts.get(block.court_group_id, []))
        courts = [c for c in courts if c.id in allowed]

    courts = sorted(courts, key=lambda c: (c.sort_order, court_label_sort_key(c.label), c.id))
    return [
        AvailableCourt(
            court_id=c.id,
            label=c.label,
            sort_order=c.sort_order,
            court_group_ids=sorted(groups_by_court.get(c.id, [])),
        )
        for c in courts
    ]


# ============================================================================
# Court groups
# ============================================================================


def auto_create_court_groups(session: Session, event_id: int, group_size: int = 4) -> List[CourtGroup]:
    """
    Partition ungrouped active courts (natural label order) into consecutive groups.

    Names are 'Courts 1-4' / 'Court 9'; codes continue A, B, C... after existing groups.
    """
    if group_size < 1:
        raise SchedulingInputError("group_size must be at least 1")
    require_event(session, event_id)

    with event_write_lock(event_id):
        existing_groups = session.exec(select(CourtGroup).where(CourtGroup.event_id == event_id)).all()
        grouped_ids = {
            court_id
            for court_ids in _group_court_ids(session, event_id).values()
            for court_id in court_ids
        }
        courts = session.exec(
            select(Court).where(Court.event_id == event_id, Court.is_active == True)  # noqa: E712
        ).all()
        ungrouped = sorted(
            (c for c in courts if c.id not in grouped_ids),
            key=lambda c: (court_label_sort_key(c.label), c.id),
        )

        created: List[CourtGroup] = []
        offset = len(existing_groups)
        for index in range(0, len(ungrouped), group_size):
            chunk = ungrouped[index:index + group_size]
            position = offset + len(created)
            group = CourtGroup(
                event_id=event_id,
                name=court_group_name([c.label for c in chunk]),
                code=court_group_code(position),
                priority=position,
                sort_order=position,
            )
            group.courts = list(chunk)
            session.add(group)
            created.append(group)
        session.commit()
        for group in created:
            session.refresh(group)

    logger.info("Auto-created %d court group(s) for event %d from %d court(s)", len(created), event_id, len(ungrouped))
    return created


# ============================================================================
# Auto-allocate
# ============================================================================


def auto_allocate(session: Session, request: AutoAllocateRequest) -> AutoAllocateResult:
    """
    Place encounters into explicit court blocks with absolute start/end times.

    Blocks are processed in request order; an encounter is placed by the first
    block whose scope covers it. Placement rules are the scheduler's.
    """
    event_id = request.event_id
    event = require_event(session, event_id)

    block_courts: List[List[int]] = []
    for block in request.blocks:
        require_division(session, block.division_id, event_id=event_id)
        if block.phase_id is not None:
            require_phase(session, block.phase_id, division_id=block.division_id)
        court_ids = list(block.court_ids)
        if block.court_group_id is not None:
            require_court_group(session, block.court_group_id, event_id=event_id)
            court_ids.extend(_group_court_ids(session, event_id).get(block.court_group_id, []))
        for court_id in court_ids:
            require_court(session, court_id, event_id=event_id)
        block_courts.append(list(dict.fromkeys(court_ids)))

    with event_write_lock(event_id):
        context = SchedulingContext(session, event_id)

        def in_scope(encounter: Encounter, division_id: int, phase_id: Optional[int]) -> bool:
            return encounter.division_id == division_id and (phase_id is None or encounter.phase_id == phase_id)

        if request.clear_existing:
            for encounter in context.encounters.values():
                if encounter.is_frozen or encounter.status in INACTIVE_STATUSES or not encounter.is_scheduled:
                    continue
                if any(in_scope(encounter, b.division_id, b.phase_id) for b in request.blocks):
                    encounter.clear_assignment()
                    session.add(encounter)
        context.seed()

        handled = set()
        block_results: List[BlockAllocationResult] = []
        unscheduled_list: List[UnscheduledEncounter] = []
        assigned_total = 0

        for block, court_ids in zip(request.blocks, block_courts):
            candidates = [
                e for e in context.encounters.values()
                if e.id not in handled
                and in_scope(e, block.division_id, block.phase_id)
                and not e.is_scheduled
                and not e.is_frozen
                and e.status not in INACTIVE_STATUSES
            ]
            handled.update(e.id for e in candidates)
            ordered, cyclic = processing_order(candidates, context)
            windows = context.explicit_windows(
                court_ids,
                to_event_wall_clock(event, block.start_time),
                to_event_wall_clock(event, block.end_time),
            )

            placed = []
            skipped: List[UnscheduledEncounter] = [
                unscheduled(e, REASON_DEPENDENCY_CYCLE, "Source encounters form a cycle") for e in cyclic
            ]
            for encounter in ordered:
                info, failure = context.try_place(
                    encounter, windows, block.match_duration_minutes, block.rest_minutes
                )
                if info is not None:
                    placed.append(info)
                else:
                    skipped.append(failure)
            session.commit()

            assigned_total += len(placed)
            unscheduled_list.extend(skipped)
            block_results.append(BlockAllocationResult(
                division_id=block.division_id,
                phase_id=block.phase_id,
                court_ids=court_ids,
                assigned_count=len(placed),
                skipped_count=len(skipped),
                first_start=min((p.start_time for p in placed), default=None),
                last_end=max((p.end_time for p in placed), default=None),
            ))
            logger.info(
                "Auto-allocate block division=%d phase=%s: %d placed, %d skipped",
                block.division_id, block.phase_id, len(placed), len(skipped),
            )

    skipped_total = len(unscheduled_list)
    success = assigned_total > 0 or skipped_total == 0
    if assigned_total == 0 and skipped_total == 0:
        message = "No unscheduled encounters in the requested blocks"
    else:
        message = f"Allocated {assigned_total} encounter(s), skipped {skipped_total}"
    return AutoAllocateResult(
        success=success,
        message=message,
        assigned_count=assigned_total,
        skipped_count=skipped_total,
        block_results=block_results,
        unscheduled=unscheduled_list,
    )
