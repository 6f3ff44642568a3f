# petworld/agent_service.py
"""
Writer/Critic self-correction loop.

A Writer drafts an answer from the catalog fact sheet, a Critic checks it
against the same fact sheet and returns {"approved", "feedback"}. Rejected
drafts go back to the Writer with the feedback, at most three rounds.

Terminal states (LoopOutcome):
    approved             critic approved round i, final answer = round i draft
    exhausted            critic rejected every round, final answer = last draft
    generator_failed     writer backend failed (or catalog unreadable),
                         final answer = diagnostic text, no critic call
    verifier_unparsable  critic reply unusable, round i draft accepted as is
"""
from dataclasses import dataclass
from typing import List, Optional, Protocol

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from sqlalchemy.orm import sessionmaker

from petworld.agent_prompts import (
    CATALOG_ERROR_ANSWER,
    CRITIC_SYSTEM_PROMPT,
    CRITIC_USER_PROMPT,
    GENERATION_ERROR_ANSWER,
    NOT_CONFIGURED_ANSWER,
    NOT_CONFIGURED_LOG,
    WRITER_RETRY_PROMPT,
    WRITER_SYSTEM_PROMPT,
)
from petworld.audit_store import SessionRecorder
from petworld.base_utils import BaseUtils
from petworld.catalog import CatalogRepository, build_catalog_context
from petworld.db_helpers import create_session_factory, get_db_engine
from petworld.entities import AgentRole, LoopOutcome
from petworld.errors import VerdictMalformedError
from petworld.llm_client import ChatLlmClient, CompletionBackend
from petworld.models import ChatSession, Verdict
from petworld.response_parser import extract_json_object, parse_verdict
from petworld.settings import ITERATION_CAP, Settings, load_settings, logger


class AgentService(Protocol):

    def process_request(self, question: str) -> ChatSession:
        ...

    def get_history(self) -> List[ChatSession]:
        ...


@dataclass(frozen=True)
class RetryContext:
    """What the Writer needs to correct a rejected draft."""
    previous_answer: str
    feedback: str


@dataclass(frozen=True)
class CriticResult:
    verdict: Optional[Verdict]
    # why the verdict is missing, for logs
    error: Optional[str] = None


class WriterCriticAgent(BaseUtils):

    def __init__(
        self,
        chat_llm: CompletionBackend,
        catalog: CatalogRepository,
        recorder: SessionRecorder,
        *,
        max_iterations: int = ITERATION_CAP,
        llm_retries: int = 1,
        currency: str = "",
        store_name: str = "PetWorld",
    ):
        self.chat_llm = chat_llm
        self.catalog = catalog
        self.recorder = recorder
        self.max_iterations = max(1, min(max_iterations, ITERATION_CAP))
        self.llm_retries = llm_retries
        self.currency = currency
        self.store_name = store_name

    # -----------------------
    # Prompt assembly
    # -----------------------

    def _build_writer_messages(
        self,
        question: str,
        catalog_context: str,
        retry: Optional[RetryContext],
    ) -> List[BaseMessage]:
        system = self.unsafe_string_format(
            WRITER_SYSTEM_PROMPT,
            store_name=self.store_name,
            catalog_context=catalog_context,
        ).strip()

        if retry is None:
            user = question
        else:
            user = self.unsafe_string_format(
                WRITER_RETRY_PROMPT,
                question=question,
                previous_answer=retry.previous_answer,
                feedback=retry.feedback,
            ).strip()

        return [SystemMessage(content=system), HumanMessage(content=user)]

    def _build_critic_messages(self, question: str, catalog_context: str, answer: str) -> List[BaseMessage]:
        user = self.unsafe_string_format(
            CRITIC_USER_PROMPT,
            catalog_context=catalog_context,
            question=question,
            answer=answer,
        ).strip()
        return [SystemMessage(content=CRITIC_SYSTEM_PROMPT.strip()), HumanMessage(content=user)]

    # -----------------------
    # Steps
    # -----------------------

    def _write(
        self,
        chat_session: ChatSession,
        round_number: int,
        catalog_context: str,
        retry: Optional[RetryContext],
    ) -> str:
        messages = self._build_writer_messages(chat_session.question, catalog_context, retry)
        draft = self.chat_llm.invoke(messages, retries=self.llm_retries) or ""
        chat_session.add_log(AgentRole.WRITER, draft, round_number)
        return draft

    def _critique(
        self,
        chat_session: ChatSession,
        round_number: int,
        catalog_context: str,
        draft: str,
    ) -> CriticResult:
        messages = self._build_critic_messages(chat_session.question, catalog_context, draft)
        try:
            raw = self.chat_llm.invoke(messages, retries=self.llm_retries)
        except Exception as e:
            chat_session.add_log(AgentRole.SYSTEM, f"Critic call failed: {e}", round_number)
            return CriticResult(verdict=None, error=str(e))

        extracted = extract_json_object(raw)
        try:
            verdict = parse_verdict(extracted)
        except VerdictMalformedError as e:
            chat_session.add_log(AgentRole.CRITIC, extracted, round_number)
            return CriticResult(verdict=None, error=str(e))

        chat_session.add_log(AgentRole.CRITIC, verdict.to_log_text(), round_number)
        return CriticResult(verdict=verdict)

    def _load_catalog_context(self) -> str:
        return build_catalog_context(self.catalog.list_catalog_items(), currency=self.currency)

    def _fail(self, chat_session: ChatSession, round_number: int, answer: str) -> None:
        chat_session.add_log(AgentRole.SYSTEM, answer, round_number)
        chat_session.finish(LoopOutcome.GENERATOR_FAILED, answer, round_number)

    # -----------------------
    # Loop controller
    # -----------------------

    def _run_round(
        self,
        chat_session: ChatSession,
        round_number: int,
        catalog_context: str,
        retry: Optional[RetryContext],
    ) -> Optional[RetryContext]:
        """
        Round(i). Either finishes the session or returns the context for
        Round(i+1).
        """
        try:
            draft = self._write(chat_session, round_number, catalog_context, retry)
        except Exception as e:
            logger.error(f"[Agent] Writer failed on iteration {round_number}: {e}")
            self._fail(chat_session, round_number, self.unsafe_string_format(GENERATION_ERROR_ANSWER, error=e))
            return None

        result = self._critique(chat_session, round_number, catalog_context, draft)

        if result.verdict is None:
            logger.warning(
                f"[Agent] Critic unusable on iteration {round_number}: {result.error}. Accepting Writer's answer."
            )
            chat_session.finish(LoopOutcome.VERIFIER_UNPARSABLE, draft, round_number)
            return None

        if result.verdict.approved:
            self.color_print(f"[Agent] Critic approved on iteration {round_number}", color="green")
            chat_session.finish(LoopOutcome.APPROVED, draft, round_number)
            return None

        self.color_print(
            f"[Agent] Critic rejected iteration {round_number}: {result.verdict.feedback}", color="yellow"
        )
        if round_number >= self.max_iterations:
            chat_session.finish(LoopOutcome.EXHAUSTED, draft, round_number)
            return None

        return RetryContext(previous_answer=draft, feedback=result.verdict.feedback)

    def _run_loop(self, chat_session: ChatSession) -> None:
        try:
            catalog_context = self._load_catalog_context()
        except Exception as e:
            logger.error(f"[Agent] Catalog unavailable: {e}")
            self._fail(chat_session, 1, self.unsafe_string_format(CATALOG_ERROR_ANSWER, error=e))
            return

        retry: Optional[RetryContext] = None
        for round_number in range(1, self.max_iterations + 1):
            retry = self._run_round(chat_session, round_number, catalog_context, retry)
            if chat_session.is_finished:
                return

        # _run_round always finishes the session on the last round
        raise RuntimeError(f"Loop ended without a terminal state for session {chat_session.id}")

    def process_request(self, question: str) -> ChatSession:
        """
        Run the Writer/Critic loop for one question. Never raises: every failure
        ends up as a finished session with an explainable final answer.
        """
        chat_session = ChatSession(question=question)

        try:
            self._run_loop(chat_session)
        except Exception as e:
            logger.exception(f"[Agent] Unexpected loop failure for session {chat_session.id}")
            if not chat_session.is_finished:
                round_number = max(1, max((log.round_number for log in chat_session.logs), default=1))
                self._fail(chat_session, round_number, self.unsafe_string_format(GENERATION_ERROR_ANSWER, error=e))

        logger.info(
            f"[Agent] Session {chat_session.id} finished: outcome={chat_session.outcome.value} "
            f"iterations={chat_session.iterations}"
        )

        try:
            self.recorder.append_session(chat_session)
        except Exception:
            logger.exception(f"[Agent] Could not persist session {chat_session.id}; returning it anyway")

        return chat_session

    def get_history(self) -> List[ChatSession]:
        return self.recorder.list_sessions()


class DemoAgentService:
    """
    Stand-in used when no model backend is configured, so the app still runs.
    """

    def process_request(self, question: str) -> ChatSession:
        chat_session = ChatSession(question=question)
        chat_session.add_log(AgentRole.SYSTEM, NOT_CONFIGURED_LOG, round_number=0)
        chat_session.finish(LoopOutcome.NOT_CONFIGURED, NOT_CONFIGURED_ANSWER, iterations=0)
        return chat_session

    def get_history(self) -> List[ChatSession]:
        return []


def build_agent_service(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
) -> AgentService:
    """
    Pick the implementation from configuration: the real loop when a model
    backend is configured, the demo service otherwise.
    """
    settings = settings or load_settings()

    if not settings.ai_enabled:
        logger.info("[Startup] AI disabled - using DemoAgentService")
        return DemoAgentService()

    logger.info(f"[Startup] AI enabled with {settings.llm_model}")
    session_factory = session_factory or create_session_factory(get_db_engine(settings))
    chat_llm = ChatLlmClient(
        settings.llm_model,
        api_key=settings.openai_api_key,
        vertex_project=settings.project_id,
        vertex_region=settings.region,
        timeout=settings.llm_timeout,
    )
    return WriterCriticAgent(
        chat_llm,
        CatalogRepository(session_factory),
        SessionRecorder(session_factory),
        max_iterations=settings.iteration_budget,
        llm_retries=settings.llm_retries,
        currency=settings.currency,
        store_name=settings.store_name,
    )
