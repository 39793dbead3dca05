from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.court import Court
    from courtplan.models.event import Event


class CourtGroupCourt(SQLModel, table=True):
    court_group_id: Optional[int] = Field(default=None, foreign_key="courtgroup.id", primary_key=True)
    court_id: Optional[int] = Field(default=None, foreign_key="court.id", primary_key=True)


class CourtGroup(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    name: str
    code: Optional[str] = None  # "A", "B", "CHAMP"
    priority: int = Field(default=0)  # lower = preferred
    sort_order: int = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    event: "Event" = Relationship(back_populates="court_groups")
    courts: List["Court"] = Relationship(back_populates="groups", link_model=CourtGroupCourt)
