# petworld/llm_client.py
import asyncio
import random
import time
from typing import Any, Callable, Dict, List, Protocol, TypeVar

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_vertexai import ChatVertexAI
from openai import OpenAI

from petworld.errors import BackendError
from petworld.model_props import is_openai_model, parse_model_name
from petworld.settings import logger

T = TypeVar("T")

# Backoff between attempts of one call; nothing is shared between calls
BACKOFF_BASE_SECONDS = 2.0
BACKOFF_MAX_SECONDS = 30.0


def _is_timeout_error(e: Exception) -> bool:
    if isinstance(e, (asyncio.TimeoutError, TimeoutError)):
        return True
    msg = repr(e)
    return "TimeoutError" in msg or "timed out" in msg.lower()


def _is_resource_exhausted_error(e: Exception) -> bool:
    msg = str(e)
    return (
        "429" in msg
        and (
            "RESOURCE_EXHAUSTED" in msg
            or "Resource has been exhausted" in msg
            or "Too Many Requests" in msg
            or "rate limit" in msg.lower()
        )
    )


def _backoff_delay(attempt: int) -> float:
    base = min(BACKOFF_BASE_SECONDS * (2 ** attempt), BACKOFF_MAX_SECONDS)
    return random.uniform(base * 0.95, base * 1.35)


def call_with_retries_sync(
    fn: Callable[[], T],
    *,
    retries: int = 1,
    label: str = "LLM",
) -> T:
    """
    Run a sync LLM call, retrying up to `retries` total attempts.

    The first attempt never waits. A 429/timeout backs off before the next
    attempt of this same call only; with the default of 1 the first failure
    is final and nothing sleeps.
    """
    attempts = max(1, retries)
    last_exception: Exception | None = None

    for attempt in range(attempts):
        start_time = time.time()
        try:
            return fn()
        except Exception as e:
            elapsed = time.time() - start_time
            last_exception = e
            is_last = attempt + 1 >= attempts

            if not is_last and (_is_resource_exhausted_error(e) or _is_timeout_error(e)):
                delay = _backoff_delay(attempt)
                logger.warning(
                    f"[{label}-RETRY] Attempt {attempt+1}/{attempts} got 429/timeout, "
                    f"backing off ~{delay:.1f}s (elapsed={elapsed:.2f}s): {e}"
                )
                time.sleep(delay)
            else:
                logger.warning(f"[{label}-RETRY] Attempt {attempt+1}/{attempts} failed (elapsed={elapsed:.2f}s): {e}")

    raise BackendError(f"{type(last_exception).__name__}: {last_exception}") from last_exception


class CompletionBackend(Protocol):
    """Anything that turns a chat message list into text."""

    def invoke(self, messages: List[BaseMessage], *, retries: int = 1) -> str:
        ...


class ChatLlmClient:
    """
    Minimal wrapper for chat-style use:

        text = chat_llm.invoke([SystemMessage(...), HumanMessage(...)])

    Under the hood:
    - OpenAI: Responses API with input=[{role, content}, ...]
    - Vertex: ChatVertexAI.invoke(messages)

    Every failure surfaces as BackendError.
    """

    def __init__(
        self,
        model_name: str,
        *,
        api_key: str | None = None,
        vertex_project: str | None = None,
        vertex_region: str | None = None,
        timeout: float | None = None,
    ):
        self.provider = "openai" if is_openai_model(model_name) else "vertex"
        self.model_name = model_name
        self._timeout = timeout
        self._openai_params: Dict[str, Any] = {}

        if self.provider == "vertex":
            self._vertex = ChatVertexAI(
                project=vertex_project,
                location=vertex_region,
                model_name=model_name,
                timeout=timeout,
            )
            self._client = None
        else:
            self._vertex = None
            self.model_name, self._openai_params = parse_model_name(self.model_name)
            client_kwargs: Dict[str, Any] = {"max_retries": 0}
            if api_key:
                client_kwargs["api_key"] = api_key
            if timeout is not None:
                client_kwargs["timeout"] = timeout
            self._client = OpenAI(**client_kwargs)

    @staticmethod
    def _openai_usage(resp: Any) -> Dict[str, int]:
        usage = getattr(resp, "usage", None)
        if usage is None:
            return {}
        return {
            "prompt_token_count": getattr(usage, "input_tokens", 0) or 0,
            "candidates_token_count": getattr(usage, "output_tokens", 0) or 0,
            "total_token_count": getattr(usage, "total_tokens", 0) or 0,
        }

    @staticmethod
    def _vertex_usage(resp: Any) -> Dict[str, int]:
        usage_md = getattr(resp, "usage_metadata", None)
        if not usage_md:
            return {}

        def get(k: str) -> int:
            if isinstance(usage_md, dict):
                return int(usage_md.get(k, 0) or 0)
            return int(getattr(usage_md, k, 0) or 0)

        return {
            "prompt_token_count": get("input_tokens"),
            "candidates_token_count": get("output_tokens"),
            "total_token_count": get("total_tokens"),
        }

    def _to_openai_messages(self, messages: List[BaseMessage]) -> List[Dict[str, str]]:
        out: List[Dict[str, str]] = []
        for m in messages:
            if isinstance(m, SystemMessage):
                role = "developer"
            elif isinstance(m, AIMessage):
                role = "assistant"
            elif isinstance(m, HumanMessage):
                role = "user"
            else:
                role = "user"
            out.append({"role": role, "content": str(m.content)})
        return out

    def _invoke_once(self, messages: List[BaseMessage]) -> str:
        """
        Single HTTP call without retries/backoff. Token usage is logged per
        call, never accumulated on the shared client.
        """
        if self.provider == "vertex":
            resp = self._vertex.invoke(messages)
            logger.info(f"[CHAT-LLM] {self.model_name} usage={self._vertex_usage(resp)}")
            if isinstance(resp, str):
                return resp
            return str(getattr(resp, "content", resp))

        resp = self._client.responses.create(
            model=self.model_name,
            input=self._to_openai_messages(messages),
            **self._openai_params,
        )
        logger.info(f"[CHAT-LLM] {self.model_name} usage={self._openai_usage(resp)}")

        text = getattr(resp, "output_text", "") or ""
        return text.strip()

    def invoke(self, messages: List[BaseMessage], *, retries: int = 1) -> str:
        """
        Synchronous chat call; see call_with_retries_sync for the retry policy.
        """
        return call_with_retries_sync(
            lambda: self._invoke_once(messages),
            retries=retries,
            label="CHAT-LLM",
        )
