from datetime import datetime, time
from typing import Optional

from sqlmodel import Field, SQLModel


class BlockAssignment(SQLModel, table=True):
    """Binds a division (optionally one phase) to a court group for a time-of-day window."""

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    division_id: int = Field(foreign_key="division.id", index=True)
    phase_id: Optional[int] = Field(default=None, foreign_key="phase.id")  # null = whole division
    court_group_id: int = Field(foreign_key="courtgroup.id")
    priority: int = Field(default=0)  # lower wins

    # Optional time-of-day window; both set or neither
    valid_from: Optional[time] = Field(default=None)
    valid_to: Optional[time] = Field(default=None)

    # Handoff: this block's encounters start only after the predecessor block's last one ends
    depends_on_block_id: Optional[int] = Field(default=None, foreign_key="blockassignment.id")
    dependency_buffer_minutes: int = Field(default=0)

    label: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def covers(self, moment: time) -> bool:
        """True if the window contains this time of day (no window = all day)."""
        if self.valid_from is None or self.valid_to is None:
            return True
        return self.valid_from <= moment < self.valid_to
