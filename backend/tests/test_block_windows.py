"""
Pure helpers: court label ordering, group naming, block window resolution
"""

from datetime import time

from courtplan.models import BlockAssignment
from courtplan.utils.block_windows import (
    admissible_segments,
    block_depths,
    effective_block_at,
    effective_blocks,
    find_dependency_cycle,
    scope_rank,
    windows_overlap,
)
from courtplan.utils.courts import court_group_code, court_group_name, court_label_sort_key


def make_block(block_id, priority=0, phase_id=None, valid_from=None, valid_to=None, depends_on=None, division_id=1):
    return BlockAssignment(
        id=block_id,
        event_id=1,
        division_id=division_id,
        phase_id=phase_id,
        court_group_id=block_id * 10,
        priority=priority,
        valid_from=valid_from,
        valid_to=valid_to,
        depends_on_block_id=depends_on,
    )


# ============================================================================
# Court labels
# ============================================================================


def test_court_labels_sort_naturally():
    labels = ["Court 10", "Court 2", "court 1", "Stadium", "Court 11"]
    assert sorted(labels, key=court_label_sort_key) == ["court 1", "Court 2", "Court 10", "Court 11", "Stadium"]


def test_numeric_labels_sort_numerically():
    assert sorted(["10", "9", "1", "2"], key=court_label_sort_key) == ["1", "2", "9", "10"]


def test_court_group_names():
    assert court_group_name(["1", "2", "3", "4"]) == "Courts 1-4"
    assert court_group_name(["9"]) == "Court 9"


def test_court_group_codes():
    assert [court_group_code(i) for i in range(3)] == ["A", "B", "C"]
    assert court_group_code(25) == "Z"
    assert court_group_code(26) == "AA"


# ============================================================================
# Effective blocks
# ============================================================================


def test_effective_blocks_order_priority_then_phase_specific():
    wide = make_block(1, priority=0)
    specific = make_block(2, priority=0, phase_id=7)
    low = make_block(3, priority=-1)

    ordered = effective_blocks([wide, specific, low], division_id=1, phase_id=7)
    assert [b.id for b in ordered] == [3, 2, 1]


def test_encounters_without_phase_only_see_division_wide_blocks():
    wide = make_block(1)
    specific = make_block(2, phase_id=7)

    assert [b.id for b in effective_blocks([wide, specific], division_id=1, phase_id=None)] == [1]


def test_inactive_and_foreign_blocks_are_ignored():
    inactive = make_block(1)
    inactive.is_active = False
    other_division = make_block(2, division_id=2)
    other_phase = make_block(3, phase_id=8)

    assert effective_blocks([inactive, other_division, other_phase], division_id=1, phase_id=7) == []


def test_first_covering_block_wins():
    morning = make_block(1, priority=0, valid_from=time(8), valid_to=time(12))
    all_day = make_block(2, priority=1)
    ordered = effective_blocks([all_day, morning], division_id=1, phase_id=None)

    assert effective_block_at(ordered, time(9)).id == 1
    assert effective_block_at(ordered, time(12)).id == 2
    assert effective_block_at(ordered, time(7, 59)).id == 2


def test_admissible_segments_split_at_boundaries_and_merge():
    morning = make_block(1, priority=0, valid_from=time(8), valid_to=time(12))
    all_day = make_block(2, priority=1)
    ordered = effective_blocks([morning, all_day], division_id=1, phase_id=None)

    segments = [(lo, hi, block.id) for lo, hi, block in admissible_segments(ordered)]
    assert segments == [(0, 480, 2), (480, 720, 1), (720, 1440, 2)]


def test_admissible_segments_leave_gaps_uncovered():
    morning = make_block(1, valid_from=time(8), valid_to=time(10))
    evening = make_block(2, valid_from=time(10), valid_to=time(12))
    ordered = effective_blocks([morning, evening], division_id=1, phase_id=None)

    segments = [(lo, hi, block.id) for lo, hi, block in admissible_segments(ordered)]
    assert segments == [(480, 600, 1), (600, 720, 2)]


# ============================================================================
# Handoff chains
# ============================================================================


def test_block_depths_follow_dependency_chain():
    first = make_block(1)
    second = make_block(2, depends_on=1)
    third = make_block(3, depends_on=2)

    assert block_depths([third, first, second]) == {1: 0, 2: 1, 3: 2}


def test_find_dependency_cycle():
    assert find_dependency_cycle({0: None, 1: 0, 2: 1}) is None
    cycle = find_dependency_cycle({0: 1, 1: 0, 2: None})
    assert sorted(cycle) == [0, 1]


def test_scope_rank_orders_phase_blocks_above_division_blocks():
    division_wide = make_block(1)
    bracket = make_block(2, phase_id=7)

    assert scope_rank(division_wide, 1, None) == 0
    assert scope_rank(division_wide, 1, 7) == 0
    assert scope_rank(bracket, 1, 7) == 1
    assert scope_rank(bracket, 1, 8) is None
    assert scope_rank(bracket, 1, None) is None
    assert scope_rank(division_wide, 2, None) is None


def test_windows_overlap_treats_missing_window_as_all_day():
    morning = make_block(1, valid_from=time(8), valid_to=time(12))
    afternoon = make_block(2, valid_from=time(12), valid_to=time(18))
    all_day = make_block(3)

    assert not windows_overlap(morning, afternoon)
    assert windows_overlap(morning, all_day)
    assert windows_overlap(all_day, afternoon)
