from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.division import Division


class Phase(SQLModel, table=True):
    # Phase order is strictly increasing within a division
    __table_args__ = (SAUniqueConstraint("division_id", "phase_order", name="uq_division_phase_order"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    division_id: int = Field(foreign_key="division.id", index=True)
    name: str
    phase_type: str = Field(default="Pool")  # "Pool" | "Bracket" | "Final" ...
    phase_order: int = Field(default=1)
    estimated_match_minutes: Optional[int] = Field(default=None)  # overrides division default
    start_time: Optional[datetime] = Field(default=None)

    # Relationships
    division: "Division" = Relationship(back_populates="phases")
