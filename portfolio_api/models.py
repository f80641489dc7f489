# portfolio_api/models.py
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VisitLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)

    url: str = Field(default="", max_length=2048)
    user_agent: str = Field(default="", max_length=1024)
    is_bot: bool = Field(default=False, index=True)
    reported_is_bot: Optional[bool] = None  # what the page claimed, if anything
    timestamp: str = Field(default="", max_length=64)  # client ISO-8601, as sent
    occurred_at: Optional[datetime] = Field(default=None, index=True)
