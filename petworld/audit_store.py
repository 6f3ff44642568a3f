# petworld/audit_store.py
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker

from petworld.entities import AgentLogRecord, AgentRole, ChatSessionRecord, LoopOutcome
from petworld.errors import PersistenceError
from petworld.models import AgentLog, ChatSession


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(session: ChatSession) -> ChatSessionRecord:
    record = ChatSessionRecord(
        id=session.id,
        created_at=session.created_at,
        question=session.question,
        final_answer=session.final_answer,
        iterations=session.iterations,
        outcome=session.outcome.value if session.outcome else None,
    )
    record.logs = [
        AgentLogRecord(
            position=position,
            round_number=entry.round_number,
            agent_role=entry.role.value,
            content=entry.content,
            timestamp=entry.timestamp,
        )
        for position, entry in enumerate(session.logs)
    ]
    return record


def _from_record(record: ChatSessionRecord) -> ChatSession:
    return ChatSession(
        id=record.id,
        created_at=_as_utc(record.created_at),
        question=record.question,
        final_answer=record.final_answer,
        iterations=record.iterations,
        outcome=LoopOutcome(record.outcome) if record.outcome else None,
        logs=[
            AgentLog(
                role=AgentRole(log.agent_role),
                content=log.content,
                round_number=log.round_number,
                timestamp=_as_utc(log.timestamp),
            )
            for log in record.logs
        ],
    )


class SessionRecorder:
    """
    Append-only audit trail of finished sessions.
    """

    def __init__(self, session_factory: sessionmaker):
        self.SessionFactory = session_factory

    def append_session(self, chat_session: ChatSession) -> None:
        db = self.SessionFactory()
        try:
            db.add(_to_record(chat_session))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Could not persist session {chat_session.id}: {e}") from e
        finally:
            db.close()

    def list_sessions(self, limit: Optional[int] = None) -> List[ChatSession]:
        """Newest first, each with its full log in chronological order."""
        db = self.SessionFactory()
        try:
            query = (
                db.query(ChatSessionRecord)
                .options(selectinload(ChatSessionRecord.logs))
                .order_by(ChatSessionRecord.created_at.desc())
            )
            if limit is not None:
                query = query.limit(limit)
            return [_from_record(r) for r in query.all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not read session history: {e}") from e
        finally:
            db.close()
