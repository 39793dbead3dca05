"""
Block window resolution.

For one (division, phase) the effective blocks are a single list sorted by
(priority, phase-specific before division-wide, id). At any time of day the
first block whose window contains that time wins. Everything here is pure and
works in minutes-of-day (0..1440).
"""
from datetime import time
from typing import Dict, Iterable, List, Optional, Tuple

from courtplan.models.block_assignment import BlockAssignment

MINUTES_PER_DAY = 24 * 60

# (start_minute, end_minute, winning block)
Segment = Tuple[int, int, BlockAssignment]


def minute_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def time_of_minute(minute: int) -> time:
    minute = min(max(minute, 0), MINUTES_PER_DAY - 1)
    return time(minute // 60, minute % 60)


def block_sort_key(block: BlockAssignment) -> Tuple[int, bool, int]:
    return (block.priority, block.phase_id is None, block.id or 0)


def effective_blocks(
    blocks: Iterable[BlockAssignment], division_id: int, phase_id: Optional[int]
) -> List[BlockAssignment]:
    """
    Active blocks that govern encounters of this division/phase, in resolution order.

    Encounters without a phase only see division-wide blocks.
    """
    matching = [
        b for b in blocks
        if b.is_active
        and b.division_id == division_id
        and (b.phase_id is None or (phase_id is not None and b.phase_id == phase_id))
    ]
    return sorted(matching, key=block_sort_key)


def effective_block_at(ordered: List[BlockAssignment], moment: time) -> Optional[BlockAssignment]:
    for block in ordered:
        if block.covers(moment):
            return block
    return None


def scope_rank(block: BlockAssignment, division_id: int, phase_id: Optional[int]) -> Optional[int]:
    """None when the block does not govern this division/phase, else 1 for phase-specific, 0 for division-wide."""
    if block.division_id != division_id:
        return None
    if block.phase_id is None:
        return 0
    return 1 if block.phase_id == phase_id else None


def window_minutes(block: BlockAssignment) -> Tuple[int, int]:
    """[lo, hi) minutes of day; the whole day when the block has no window."""
    if block.valid_from is None or block.valid_to is None:
        return 0, MINUTES_PER_DAY
    return minute_of_day(block.valid_from), minute_of_day(block.valid_to)


def windows_overlap(a: BlockAssignment, b: BlockAssignment) -> bool:
    a_lo, a_hi = window_minutes(a)
    b_lo, b_hi = window_minutes(b)
    return a_lo < b_hi and b_lo < a_hi


def admissible_segments(ordered: List[BlockAssignment]) -> List[Segment]:
    """
    Split the day at every block boundary and keep the pieces some block wins.

    Adjacent pieces won by the same block are merged.
    """
    bounds = {0, MINUTES_PER_DAY}
    for block in ordered:
        if block.valid_from is not None and block.valid_to is not None:
            bounds.add(minute_of_day(block.valid_from))
            bounds.add(minute_of_day(block.valid_to))
    points = sorted(bounds)

    segments: List[Segment] = []
    for lo, hi in zip(points, points[1:]):
        winner = effective_block_at(ordered, time_of_minute(lo))
        if winner is None:
            continue
        if segments and segments[-1][1] == lo and segments[-1][2] is winner:
            segments[-1] = (segments[-1][0], hi, winner)
        else:
            segments.append((lo, hi, winner))
    return segments


def block_depths(blocks: Iterable[BlockAssignment]) -> Dict[int, int]:
    """block_id -> length of its depends_on chain (0 = no predecessor). Cycles stop the walk."""
    by_id = {b.id: b for b in blocks}
    depths: Dict[int, int] = {}
    for block_id in by_id:
        depth = 0
        seen = {block_id}
        current = by_id[block_id]
        while current.depends_on_block_id is not None and current.depends_on_block_id in by_id:
            if current.depends_on_block_id in seen:
                break
            seen.add(current.depends_on_block_id)
            current = by_id[current.depends_on_block_id]
            depth += 1
        depths[block_id] = depth
    return depths


def find_dependency_cycle(edges: Dict[int, Optional[int]]) -> Optional[List[int]]:
    """
    edges: node -> predecessor node (or None). Returns one cycle as a node list, or None.
    """
    for start in edges:
        path: List[int] = []
        node: Optional[int] = start
        while node is not None and node in edges:
            if node in path:
                return path[path.index(node):]
            path.append(node)
            node = edges[node]
    return None
