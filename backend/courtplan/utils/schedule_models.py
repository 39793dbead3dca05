"""
Schedule Response Models

Pydantic shapes shared across:
- Scheduling services (scheduler, validator, mutator, block allocator)
- Route handlers (scheduling.py, court_planning.py, availability.py)

Conflicts are derived from persisted encounter state and never stored.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ConflictKind(str, Enum):
    PLAYER_OVERLAP = "PlayerOverlap"
    COURT_DOUBLE_BOOKING = "CourtDoubleBooking"
    INSUFFICIENT_REST = "InsufficientRest"
    ROUND_DEPENDENCY = "RoundDependency"
    AVAILABILITY_VIOLATION = "AvailabilityViolation"


# Tie-break order when two conflicts start at the same moment on the same court
CONFLICT_KIND_ORDER = {
    ConflictKind.COURT_DOUBLE_BOOKING: 0,
    ConflictKind.PLAYER_OVERLAP: 1,
    ConflictKind.INSUFFICIENT_REST: 2,
    ConflictKind.ROUND_DEPENDENCY: 3,
    ConflictKind.AVAILABILITY_VIOLATION: 4,
}


# ============================================================================
# Conflicts
# ============================================================================


class AvailabilityViolation(BaseModel):
    """Encounter placed outside its court's open hours for the day"""

    encounter_id: int
    court_id: int
    day: int
    window_start: Optional[datetime] = None  # None = court closed that day
    window_end: Optional[datetime] = None
    actual_start: datetime
    actual_end: datetime


class Conflict(BaseModel):
    kind: ConflictKind
    encounter_id_1: int
    encounter_id_2: Optional[int] = None
    court_id: Optional[int] = None
    unit_id: Optional[int] = None
    player_id: Optional[int] = None
    start_time: Optional[datetime] = None
    description: str
    availability: Optional[AvailabilityViolation] = None

    def involves(self, encounter_id: int) -> bool:
        return encounter_id in (self.encounter_id_1, self.encounter_id_2)


class ScheduleValidation(BaseModel):
    """Top-level summary of an event's (or division's) schedule state"""

    event_id: int
    division_id: Optional[int] = None
    total_encounters: int
    scheduled_count: int
    unscheduled_count: int
    is_valid: bool
    conflicts: List[Conflict]


# ============================================================================
# Batch scheduling
# ============================================================================


class ScheduleRequest(BaseModel):
    event_id: Optional[int] = None  # filled from the path when omitted
    division_id: Optional[int] = None
    phase_id: Optional[int] = None
    clear_existing: bool = False


class UnscheduledEncounter(BaseModel):
    """Why an encounter could not be placed"""

    encounter_id: int
    division_id: int
    phase_id: Optional[int] = None
    reason: str
    notes: Optional[str] = None


class ScheduledEncounterInfo(BaseModel):
    encounter_id: int
    court_id: int
    court_label: str
    start_time: datetime
    end_time: datetime


class ScheduleResult(BaseModel):
    success: bool
    message: str
    scheduled_count: int = 0
    courts_used: int = 0
    start_time: Optional[datetime] = None
    estimated_end_time: Optional[datetime] = None
    conflicts: List[Conflict] = []
    unscheduled: List[UnscheduledEncounter] = []
    assignments: List[ScheduledEncounterInfo] = []


# ============================================================================
# Manual edits
# ============================================================================


class MoveEncounterRequest(BaseModel):
    court_id: int
    start_time: datetime


class MoveEncounterResult(BaseModel):
    encounter_id: int
    court_id: int
    start_time: datetime
    end_time: datetime
    has_conflicts: bool
    conflicts: List[Conflict]


class ClearScheduleResult(BaseModel):
    division_id: int
    phase_id: Optional[int] = None
    cleared_count: int


# ============================================================================
# Blocks
# ============================================================================


class BlockAssignmentCreate(BaseModel):
    """One organizer-supplied block in a save_blocks request"""

    division_id: int
    phase_id: Optional[int] = None
    court_group_id: int
    priority: int = 0
    valid_from: Optional[time] = None
    valid_to: Optional[time] = None
    depends_on_index: Optional[int] = None  # position of the predecessor in the same request
    dependency_buffer_minutes: int = Field(default=0, ge=0)
    label: Optional[str] = None

    @model_validator(mode="after")
    def validate_window(self):
        if (self.valid_from is None) != (self.valid_to is None):
            raise ValueError("valid_from and valid_to must both be set or both be omitted")
        if self.valid_from is not None and self.valid_from >= self.valid_to:
            raise ValueError("valid_from must be before valid_to")
        return self


class BlockAssignmentRead(BaseModel):
    id: int
    event_id: int
    division_id: int
    phase_id: Optional[int]
    court_group_id: int
    priority: int
    valid_from: Optional[time]
    valid_to: Optional[time]
    depends_on_block_id: Optional[int]
    dependency_buffer_minutes: int
    label: Optional[str]
    is_active: bool

    class Config:
        from_attributes = True


class ResolvedBlock(BaseModel):
    block_id: int
    division_id: int
    division_name: str
    phase_id: Optional[int] = None
    phase_name: Optional[str] = None
    court_group_id: int
    court_group_name: str
    court_ids: List[int]
    priority: int
    valid_from: Optional[time] = None
    valid_to: Optional[time] = None
    depends_on_block_id: Optional[int] = None
    dependency_buffer_minutes: int = 0
    label: Optional[str] = None
    warnings: List[str] = []


class BlockConflictKind(str, Enum):
    COURT_OVERLAP = "CourtOverlap"
    DEPENDENCY_VIOLATION = "DependencyViolation"


class BlockConflict(BaseModel):
    """A problem between two saved blocks, found without looking at encounters."""

    kind: BlockConflictKind
    block_id_1: int
    block_id_2: int
    court_ids: List[int] = []
    message: str


class CourtGroupInfo(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    court_ids: List[int]
    court_labels: List[str]


class AvailableCourt(BaseModel):
    court_id: int
    label: str
    sort_order: int
    court_group_ids: List[int]


# ============================================================================
# Auto-allocate (explicit court blocks with absolute windows)
# ============================================================================


class BlockAllocation(BaseModel):
    division_id: int
    phase_id: Optional[int] = None
    court_ids: List[int] = []
    court_group_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    match_duration_minutes: Optional[int] = Field(default=None, gt=0)
    rest_minutes: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_block(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        if not self.court_ids and self.court_group_id is None:
            raise ValueError("Either court_ids or court_group_id is required")
        return self


class AutoAllocateRequest(BaseModel):
    event_id: Optional[int] = None
    blocks: List[BlockAllocation]
    clear_existing: bool = False

    @field_validator("blocks")
    @classmethod
    def validate_blocks(cls, v):
        if not v:
            raise ValueError("At least one block is required")
        return v


class BlockAllocationResult(BaseModel):
    division_id: int
    phase_id: Optional[int] = None
    court_ids: List[int]
    assigned_count: int
    skipped_count: int
    first_start: Optional[datetime] = None
    last_end: Optional[datetime] = None


class AutoAllocateResult(BaseModel):
    success: bool
    message: str
    assigned_count: int = 0
    skipped_count: int = 0
    block_results: List[BlockAllocationResult] = []
    unscheduled: List[UnscheduledEncounter] = []


# ============================================================================
# Availability
# ============================================================================


class AvailabilityWindowUpsert(BaseModel):
    day_number: int = Field(ge=1)
    available_from: time
    available_to: time
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_window(self):
        if self.available_from >= self.available_to:
            raise ValueError("available_from must be before available_to")
        return self


class AvailabilityWindowRead(BaseModel):
    id: int
    event_id: int
    court_id: Optional[int] = None
    day_number: int
    available_from: time
    available_to: time
    notes: Optional[str] = None
    is_active: bool


class ResolvedAvailability(BaseModel):
    court_id: int
    day_number: int
    source: str  # "court" | "event" | "none"
    available: bool
    available_from: Optional[time] = None
    available_to: Optional[time] = None


# ============================================================================
# Grid
# ============================================================================


class GridCourt(BaseModel):
    court_id: int
    label: str
    sort_order: int
    court_group_ids: List[int]


class GridPhase(BaseModel):
    phase_id: int
    name: str
    phase_order: int
    encounter_count: int


class GridDivision(BaseModel):
    division_id: int
    name: str
    phases: List[GridPhase]


class GridEncounter(BaseModel):
    encounter_id: int
    division_id: int
    phase_id: Optional[int] = None
    label: Optional[str] = None
    round_name: Optional[str] = None
    unit1_id: Optional[int] = None
    unit2_id: Optional[int] = None
    unit1_name: Optional[str] = None
    unit2_name: Optional[str] = None
    court_id: Optional[int] = None
    court_label: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    status: str


class GridBlock(BaseModel):
    block_id: int
    division_id: int
    phase_id: Optional[int] = None
    court_group_id: int
    court_ids: List[int]
    valid_from: Optional[time] = None
    valid_to: Optional[time] = None
    label: Optional[str] = None


class ScheduleGrid(BaseModel):
    event_id: int
    event_name: str
    event_date: date
    grid_start_time: Optional[datetime] = None
    grid_end_time: Optional[datetime] = None
    courts: List[GridCourt]
    divisions: List[GridDivision]
    encounters: List[GridEncounter]
    blocks: List[GridBlock]
    total_encounters: int
    scheduled_count: int
    unscheduled_count: int


# ============================================================================
# Player schedule
# ============================================================================


class PlayerScheduleItem(BaseModel):
    encounter_id: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    court_id: Optional[int] = None
    court_label: Optional[str] = None
    division_id: int
    division_name: str
    phase_id: Optional[int] = None
    phase_name: Optional[str] = None
    round_name: Optional[str] = None
    label: Optional[str] = None
    unit_id: int
    unit_name: str
    opponent_unit_id: Optional[int] = None
    opponent_name: str
    status: str
    is_bye: bool = False


class PlayerSchedule(BaseModel):
    event_id: int
    event_name: str
    user_id: int
    encounters: List[PlayerScheduleItem] = []
    next_encounter: Optional[PlayerScheduleItem] = None
    total_count: int = 0
    completed_count: int = 0
    remaining_count: int = 0
