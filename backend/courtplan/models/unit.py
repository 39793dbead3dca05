from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from courtplan.models.division import Division


class UnitMember(SQLModel, table=True):
    unit_id: Optional[int] = Field(default=None, foreign_key="unit.id", primary_key=True)
    user_id: int = Field(primary_key=True)  # external identity

    unit: "Unit" = Relationship(back_populates="members")


class Unit(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    division_id: int = Field(foreign_key="division.id", index=True)
    name: str

    # Relationships
    division: "Division" = Relationship(back_populates="units")
    members: List[UnitMember] = Relationship(back_populates="unit")
