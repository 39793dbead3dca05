from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.event import Event
    from courtplan.models.phase import Phase
    from courtplan.models.unit import Unit


class Division(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    name: str
    estimated_match_minutes: Optional[int] = Field(default=None)
    min_rest_minutes: Optional[int] = Field(default=None)
    sort_order: int = Field(default=0)
    is_active: bool = Field(default=True)

    # Relationships
    event: "Event" = Relationship(back_populates="divisions")
    phases: List["Phase"] = Relationship(back_populates="division")
    units: List["Unit"] = Relationship(back_populates="division")
