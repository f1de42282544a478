from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID


def utcnow():
    return datetime.now(timezone.utc)


class Visitor(SQLModel, table=True):
    __tablename__ = "visitors"

    visitor_id: UUID = Field(primary_key=True)
    fp_hash: Optional[str] = None
    ip: str = "unknown"
    city: str = "unknown"
    country: str = "unknown"
    lat: float = 0
    lon: float = 0
    user_agent: str = "unknown"
    first_seen: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    last_seen: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Conversation(SQLModel, table=True):
    __tablename__ = "conversations"

    id: Optional[int] = Field(default=None, primary_key=True)
    visitor_id: UUID = Field(foreign_key="visitors.visitor_id", index=True)
    ts: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    prompt: str
    answer: str
