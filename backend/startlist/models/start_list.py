from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from startlist.models.competition import Competition


class StartList(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    competition_id: int = Field(foreign_key="competition.id", index=True)
    team_format: str = Field(default="")
    configuration_data: Optional[str] = Field(default=None)  # versioned JSON document
    is_official: bool = Field(default=False)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    generated_by: Optional[str] = None
    notes: Optional[str] = None
    updated_at: Optional[datetime] = Field(default=None)

    # Relationships
    competition: "Competition" = Relationship(back_populates="start_lists")

    @property
    def status(self) -> str:
        """Coarse lifecycle state: "official" or "draft"."""
        return "official" if self.is_official else "draft"
