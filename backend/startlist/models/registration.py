from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from startlist.models.competition import Competition


class Registration(SQLModel, table=True):
    """One shooter's entry in one weapon class (multi-class entries are stored one row per class)."""

    __table_args__ = (
        SAUniqueConstraint("competition_id", "member_id", "weapon_class", name="uq_competition_member_class"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    competition_id: int = Field(foreign_key="competition.id", index=True)
    member_id: int = Field(index=True)
    member_name: Optional[str] = Field(default=None)
    club_name: Optional[str] = Field(default=None)
    weapon_class: str  # e.g. "A", "B3", "C Vet"
    registered_at: datetime = Field(default_factory=datetime.utcnow)
    is_active: bool = Field(default=True)

    # Relationships
    competition: "Competition" = Relationship(back_populates="registrations")
