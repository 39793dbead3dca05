from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from courtplan.models.court_group import CourtGroupCourt

if TYPE_CHECKING:
    from courtplan.models.court_group import CourtGroup
    from courtplan.models.event import Event


class Court(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("event_id", "label", name="uq_event_court_label"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    label: str
    is_active: bool = Field(default=True)
    sort_order: int = Field(default=0)
    location_description: Optional[str] = None

    # Relationships
    event: "Event" = Relationship(back_populates="courts")
    groups: List["CourtGroup"] = Relationship(back_populates="courts", link_model=CourtGroupCourt)
