"""Visitor and conversation persistence.

Two interchangeable stores are provided. ``SQLStore`` writes to the
``visitors`` and ``conversations`` tables through SQLModel; ``NullStore`` is
used when no ``DATABASE_URL`` is configured and turns every operation into a
no-op that reports success, so the HTTP handlers never branch on whether a
database exists.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, col, select

from osint_lab.database import create_db_and_tables, create_db_engine
from osint_lab.models import Conversation, Visitor, utcnow

logger = logging.getLogger(__name__)

# columns a repeated session report is allowed to overwrite
MUTABLE_VISITOR_FIELDS = ("fp_hash", "ip", "city", "country", "lat", "lon", "user_agent")

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class VisitorReport:
    visitor_id: UUID
    fp_hash: Optional[str] = None
    ip: str = "unknown"
    city: str = "unknown"
    country: str = "unknown"
    lat: float = 0
    lon: float = 0
    user_agent: str = "unknown"

    def mutable_fields(self):
        return {name: getattr(self, name) for name in MUTABLE_VISITOR_FIELDS}


class NullStore:
    persistent = False

    def init(self):
        logger.warning("DATABASE_URL not configured, visitor and conversation storage disabled")

    def close(self):
        pass

    def upsert_visitor(self, report: VisitorReport) -> None:
        return None

    def get_visitor(self, visitor_id: UUID) -> Optional[Visitor]:
        return None

    def recent_conversations(self, visitor_id: UUID, limit: int = 5) -> List[Conversation]:
        return []

    def add_conversation(self, visitor_id: UUID, prompt: str, answer: str) -> Optional[Conversation]:
        return None


class SQLStore:
    persistent = True

    def __init__(self, engine, clock=utcnow):
        self.engine = engine
        self.clock = clock

    def init(self):
        create_db_and_tables(self.engine)

    def close(self):
        self.engine.dispose()

    def upsert_visitor(self, report: VisitorReport) -> None:
        """Insert the visitor or refresh its mutable fields and ``last_seen``.

        ``first_seen`` is only ever written by the insert branch.
        """
        now = self.clock()
        insert = _UPSERT_DIALECTS.get(self.engine.dialect.name)
        with Session(self.engine) as session:
            if insert is None:
                self._merge_visitor(session, report, now)
            else:
                stmt = insert(Visitor).values(
                    visitor_id=report.visitor_id,
                    first_seen=now,
                    last_seen=now,
                    **report.mutable_fields(),
                )
                updates = {name: stmt.excluded[name] for name in MUTABLE_VISITOR_FIELDS}
                updates["last_seen"] = now
                stmt = stmt.on_conflict_do_update(index_elements=["visitor_id"], set_=updates)
                session.execute(stmt)
            session.commit()

    @staticmethod
    def _merge_visitor(session, report, now):
        visitor = session.get(Visitor, report.visitor_id)
        if visitor is None:
            visitor = Visitor(visitor_id=report.visitor_id, first_seen=now, last_seen=now)
        for name, value in report.mutable_fields().items():
            setattr(visitor, name, value)
        visitor.last_seen = now
        session.add(visitor)

    def get_visitor(self, visitor_id: UUID) -> Optional[Visitor]:
        with Session(self.engine) as session:
            return session.get(Visitor, visitor_id)

    def recent_conversations(self, visitor_id: UUID, limit: int = 5) -> List[Conversation]:
        with Session(self.engine) as session:
            return session.exec(
                select(Conversation)
                .where(Conversation.visitor_id == visitor_id)
                .order_by(col(Conversation.ts).desc(), col(Conversation.id).desc())
                .limit(limit)
            ).all()

    def add_conversation(self, visitor_id: UUID, prompt: str, answer: str) -> Optional[Conversation]:
        with Session(self.engine) as session:
            convo = Conversation(visitor_id=visitor_id, ts=self.clock(), prompt=prompt, answer=answer)
            session.add(convo)
            session.commit()
            session.refresh(convo)
            return convo


def build_store(settings):
    if not settings.has_database:
        return NullStore()
    return SQLStore(create_db_engine(settings))
