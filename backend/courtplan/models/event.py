from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.court import Court
    from courtplan.models.court_group import CourtGroup
    from courtplan.models.division import Division
    from courtplan.models.encounter import Encounter


class Event(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    location: Optional[str] = None
    timezone: str = Field(default="UTC")
    start_date: date
    end_date: date
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    courts: List["Court"] = Relationship(back_populates="event")
    court_groups: List["CourtGroup"] = Relationship(back_populates="event")
    divisions: List["Division"] = Relationship(back_populates="event")
    encounters: List["Encounter"] = Relationship(back_populates="event")

    @property
    def day_count(self) -> int:
        """Number of event days (day 1 = start_date)."""
        return max((self.end_date - self.start_date).days + 1, 1)
