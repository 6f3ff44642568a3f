"""
Shared fixtures and fakes for the PetWorld assistant tests.
"""

import re
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from petworld.audit_store import SessionRecorder
from petworld.catalog import CatalogRepository
from petworld.db_helpers import create_session_factory
from petworld.errors import BackendError, CatalogUnavailableError, PersistenceError
from petworld.models import CatalogItem


ROYAL_CANIN = CatalogItem(name="Royal Canin Maxi Adult 15kg", price=Decimal("249.99"), category="Dog Food")

PET_CATALOG = [
    ROYAL_CANIN,
    CatalogItem(name="Whiskas Tuna 12x85g", price=Decimal("32.50"), category="Cat Food"),
    CatalogItem(name="Kong Classic L", price=Decimal("59.00"), category="Dog Toys"),
    CatalogItem(name="Tetra Min Flakes 250ml", price=Decimal("27.90"), category="Fish Food"),
]


# =============================================================================
# Fakes
# =============================================================================


class ScriptedChatLlm:
    """
    Completion backend replaying canned replies in call order.
    An Exception instance in the script is raised instead of returned.
    """

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []
        self.retries_seen = []

    def invoke(self, messages, *, retries=1):
        self.calls.append(messages)
        self.retries_seen.append(retries)
        if not self.replies:
            raise AssertionError("ScriptedChatLlm ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def is_critic_call(messages) -> bool:
    return "Auditor" in messages[0].content


_PRICE = re.compile(r"\d+\.\d{2}")


class GroundedChatLlm:
    """
    Tiny rule-based stand-in for a real model.

    Writer: answers with the catalog price when the product is listed. For
    anything else it invents a product on the first try and admits it is not
    available once it gets critic feedback.
    Critic: approves only when every price in the answer appears in the catalog.
    """

    def __init__(self):
        self.calls = []

    def invoke(self, messages, *, retries=1):
        self.calls.append(messages)
        if is_critic_call(messages):
            return self._critic(messages[1].content)
        return self._writer(messages[0].content, messages[1].content)

    def _writer(self, system: str, user: str) -> str:
        for line in system.splitlines():
            if not line.startswith("- "):
                continue
            name, price, _category = [part.strip() for part in line[2:].split("|")]
            if name in user:
                return f"{name} costs {price}."
        if "CRITIC FEEDBACK" in user:
            return "Sorry, we do not carry parrot food at the moment."
        return "Yes! We have Parrot Deluxe Seed Mix 1kg for 14.49 PLN."

    def _critic(self, user: str) -> str:
        catalog_part, _, answer = user.partition("ASSISTANT ANSWER TO VERIFY:")
        invented = [p for p in _PRICE.findall(answer) if p not in catalog_part]
        if invented:
            return '```json\n{"Approved": false, "Feedback": "Price %s is not in the catalog."}\n```' % invented[0]
        return 'Sure! {"approved": true, "feedback": "Grounded in the catalog."}'


class InMemoryCatalog:

    def __init__(self, items=None, fail=False):
        self.items = list(items or [])
        self.fail = fail
        self.reads = 0

    def list_catalog_items(self):
        self.reads += 1
        if self.fail:
            raise CatalogUnavailableError("database is down")
        return list(self.items)


class InMemoryRecorder:

    def __init__(self, fail=False):
        self.sessions = []
        self.fail = fail

    def append_session(self, chat_session):
        if self.fail:
            raise PersistenceError("disk full")
        self.sessions.append(chat_session)

    def list_sessions(self, limit=None):
        ordered = sorted(self.sessions, key=lambda s: s.created_at, reverse=True)
        return ordered[:limit] if limit is not None else ordered


def backend_down() -> BackendError:
    return BackendError("APIConnectionError: Connection error.")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def catalog_repo(session_factory):
    repo = CatalogRepository(session_factory)
    repo.replace_catalog(PET_CATALOG)
    return repo


@pytest.fixture
def recorder(session_factory):
    return SessionRecorder(session_factory)
