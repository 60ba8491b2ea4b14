from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class ResultEntry(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    competition_id: int = Field(foreign_key="competition.id", index=True)
    member_id: int = Field(index=True)
    series_number: int = Field(default=1)
    total: int = Field(default=0)
    recorded_at: datetime = Field(default_factory=datetime.utcnow)
