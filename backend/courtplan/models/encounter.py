from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.event import Event


class EncounterStatus(str, Enum):
    pending = "Pending"
    scheduled = "Scheduled"
    in_progress = "InProgress"
    completed = "Completed"
    cancelled = "Cancelled"
    bye = "Bye"


# Court and time are frozen once play has started
FROZEN_STATUSES = {EncounterStatus.in_progress.value, EncounterStatus.completed.value}
# Never scheduled, never validated
INACTIVE_STATUSES = {EncounterStatus.cancelled.value, EncounterStatus.bye.value}


class Encounter(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    division_id: int = Field(foreign_key="division.id", index=True)
    phase_id: Optional[int] = Field(default=None, foreign_key="phase.id", index=True)

    # Units (nullable until the bracket resolves who plays)
    unit1_id: Optional[int] = Field(default=None, foreign_key="unit.id")
    unit2_id: Optional[int] = Field(default=None, foreign_key="unit.id")

    round_type: str = Field(default="Pool")  # "Pool" | "Bracket" | "Final" ...
    round_number: int = Field(default=1)
    round_name: Optional[str] = Field(default=None)
    encounter_number: int = Field(default=1)
    label: Optional[str] = Field(default=None)

    # Explicit feeder edges: the encounters whose outcome decides who plays here
    source_encounter_1_id: Optional[int] = Field(default=None, foreign_key="encounter.id")
    source_encounter_2_id: Optional[int] = Field(default=None, foreign_key="encounter.id")

    # Schedule assignment: all three set, or none
    court_id: Optional[int] = Field(default=None, foreign_key="court.id", index=True)
    estimated_start_time: Optional[datetime] = Field(default=None)
    estimated_end_time: Optional[datetime] = Field(default=None)
    duration_minutes: Optional[int] = Field(default=None)

    status: str = Field(default=EncounterStatus.pending.value)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    event: "Event" = Relationship(back_populates="encounters")

    @property
    def is_scheduled(self) -> bool:
        return (
            self.court_id is not None
            and self.estimated_start_time is not None
            and self.estimated_end_time is not None
        )

    @property
    def is_frozen(self) -> bool:
        return self.status in FROZEN_STATUSES

    @property
    def unit_ids(self) -> List[int]:
        return [u for u in (self.unit1_id, self.unit2_id) if u is not None]

    @property
    def source_ids(self) -> List[int]:
        return [s for s in (self.source_encounter_1_id, self.source_encounter_2_id) if s is not None]

    def clear_assignment(self) -> None:
        """Back to unscheduled. duration_minutes is kept as the encounter's own estimate."""
        self.court_id = None
        self.estimated_start_time = None
        self.estimated_end_time = None
        self.status = EncounterStatus.pending.value
        self.updated_at = datetime.utcnow()

    def assign(self, court_id: int, start: datetime, end: datetime, duration_minutes: int) -> None:
        self.court_id = court_id
        self.estimated_start_time = start
        self.estimated_end_time = end
        self.duration_minutes = duration_minutes
        self.status = EncounterStatus.scheduled.value
        self.updated_at = datetime.utcnow()
