from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from startlist.models.registration import Registration
    from startlist.models.start_list import StartList


class Competition(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    competition_date: Optional[date] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    registrations: List["Registration"] = Relationship(back_populates="competition")
    start_lists: List["StartList"] = Relationship(back_populates="competition")
