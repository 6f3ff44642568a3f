# petworld/entities.py
import enum
from datetime import datetime, timezone
from decimal import Decimal
from typing import TypeAlias

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

UUID: TypeAlias = str
Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentRole(str, enum.Enum):
    WRITER = "Writer"
    CRITIC = "Critic"
    SYSTEM = "System"


class LoopOutcome(str, enum.Enum):
    APPROVED = "approved"
    EXHAUSTED = "exhausted"
    GENERATOR_FAILED = "generator_failed"
    VERIFIER_UNPARSABLE = "verifier_unparsable"
    # only produced by DemoAgentService
    NOT_CONFIGURED = "not_configured"


class Product(Base):
    __tablename__ = "product"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(120), nullable=False)

    __table_args__ = (
        Index("ix_product_category_name", "category", "name"),
    )


class ChatSessionRecord(Base):
    __tablename__ = "chat_session"

    id: Mapped[UUID] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    final_answer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    iterations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    outcome: Mapped[str | None] = mapped_column(String(32))

    logs: Mapped[list["AgentLogRecord"]] = relationship(
        "AgentLogRecord",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="AgentLogRecord.position",
    )

    __table_args__ = (
        Index("ix_chat_session_created_at", "created_at"),
    )


class AgentLogRecord(Base):
    __tablename__ = "agent_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_session_id: Mapped[UUID] = mapped_column(
        String(36),
        ForeignKey("chat_session.id", ondelete="CASCADE"),
        nullable=False,
    )
    # insertion order inside the session; timestamps can collide
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    agent_role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    session: Mapped[ChatSessionRecord] = relationship("ChatSessionRecord", back_populates="logs")

    __table_args__ = (
        Index("ix_agent_log_chat_session_id", "chat_session_id"),
    )
