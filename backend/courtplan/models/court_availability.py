from datetime import datetime, time
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class CourtAvailability(SQLModel, table=True):
    """
    Open hours for one event day.

    court_id NULL = event-wide default for every court without its own override.
    """

    __table_args__ = (SAUniqueConstraint("event_id", "court_id", "day_number", name="uq_court_availability_day"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    court_id: Optional[int] = Field(default=None, foreign_key="court.id")
    day_number: int = Field(default=1)  # 1 = event start date
    available_from: time = Field(default=time(8, 0))
    available_to: time = Field(default=time(18, 0))
    notes: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
