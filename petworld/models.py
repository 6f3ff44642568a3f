# petworld/models.py
"""
Domain objects handed between the loop, the HTTP layer and the stores.

The SQLAlchemy rows in entities.py never leave the storage seam; callers only
ever see these pydantic models.
"""
import json
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from petworld.entities import AgentRole, LoopOutcome, utcnow

TWO_PLACES = Decimal("0.01")


class CatalogItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    price: Decimal
    category: str

    @field_validator("price")
    @classmethod
    def _quantize_price(cls, value: Decimal) -> Decimal:
        return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class AgentLog(BaseModel):
    role: AgentRole
    content: str
    round_number: int
    timestamp: datetime = Field(default_factory=utcnow)


class ChatSession(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=utcnow)
    question: str
    final_answer: str = ""
    iterations: int = 0
    outcome: LoopOutcome | None = None
    logs: list[AgentLog] = Field(default_factory=list)

    @property
    def is_finished(self) -> bool:
        return self.outcome is not None

    def __setattr__(self, name, value):
        if name == "question":
            raise RuntimeError(f"Session {self.id}: question is immutable")
        if self.is_finished:
            raise RuntimeError(f"Session {self.id} is finished; {name} cannot change")
        super().__setattr__(name, value)

    def add_log(self, role: AgentRole, content: str, round_number: int) -> AgentLog:
        if self.is_finished:
            raise RuntimeError(f"Session {self.id} is finished; its log is closed")
        entry = AgentLog(role=role, content=content, round_number=round_number)
        self.logs.append(entry)
        return entry

    def finish(self, outcome: LoopOutcome, final_answer: str, iterations: int) -> None:
        """Set the terminal state. Allowed exactly once per session."""
        if self.is_finished:
            raise RuntimeError(f"Session {self.id} already finished as {self.outcome.value}")
        self.final_answer = final_answer
        self.iterations = iterations
        self.outcome = outcome


class Verdict(BaseModel):
    approved: bool
    feedback: str

    @model_validator(mode="before")
    @classmethod
    def _casefold_keys(cls, data):
        # model output casing is not guaranteed ("Approved", "FEEDBACK", ...)
        if isinstance(data, dict):
            return {str(k).lower(): v for k, v in data.items()}
        return data

    def to_log_text(self) -> str:
        return json.dumps({"approved": self.approved, "feedback": self.feedback}, ensure_ascii=False)
