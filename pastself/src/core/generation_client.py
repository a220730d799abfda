"""
PastSelf - Generation Client
=============================
Wraps the generative model behind a single ``generate(prompt)`` call with
overload-aware retry.

Failure classes
---------------
``overloaded``
    Upstream signals a transient overload (HTTP 503, "overloaded",
    "unavailable").  Retried with exponential backoff: up to
    ``max_attempts`` attempts, waiting ``initial_delay`` then doubling
    (1s, 2s with defaults).  Exhaustion raises ``GenerationOverloadedError``.
``quota``
    HTTP 429 / RESOURCE_EXHAUSTED / "quota" / "limit".  Raised at once as
    ``GenerationQuotaError``.
``other``
    Auth, malformed input, timeouts, anything else.  Raised at once as
    ``GenerationError``.

Retry is driven by ``tenacity`` (``AsyncRetrying``) with the injected
async ``sleep``.  On overload a single ``generate`` call can take ~3s
longer than normal before it yields.

Usage:
    client = GenerationClient.from_settings()
    text = await client.generate(prompt)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from google.genai import errors as genai_errors
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception, stop_after_attempt, wait_exponential

from pastself.config.settings import settings
from pastself.src.core.errors import GenerationError, GenerationOverloadedError, GenerationQuotaError
from pastself.src.utils.logger import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[object]]

_OVERLOAD_MARKERS = ("503", "overloaded", "unavailable")
_QUOTA_MARKERS = ("429", "quota", "limit", "resource_exhausted", "resource exhausted")


@runtime_checkable
class ChatModel(Protocol):
    """Anything with LangChain's async chat interface."""

    async def ainvoke(self, input: object) -> object: ...


# ══════════════════════════════════════════════════════════════════════
#  FAILURE CLASSIFICATION
# ══════════════════════════════════════════════════════════════════════


def _status_code(exc: BaseException) -> int | None:
    for attr in ("code", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def classify_failure(exc: BaseException) -> str:
    """
    Return ``"overloaded"``, ``"quota"`` or ``"other"`` for an upstream error.

    Walks the ``__cause__`` / ``__context__`` chain because LangChain
    wraps the SDK exception in its own error type.
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    messages: list[str] = []

    while current is not None and id(current) not in seen:
        seen.add(id(current))
        code = _status_code(current)
        status = ""
        if isinstance(current, genai_errors.APIError):
            status = str(current.status or "").upper()
        if code == 503 or status == "UNAVAILABLE":
            return "overloaded"
        if code == 429 or status == "RESOURCE_EXHAUSTED":
            return "quota"
        messages.append(str(current).lower())
        current = current.__cause__ or current.__context__

    text = " ".join(messages)
    if any(marker in text for marker in _OVERLOAD_MARKERS):
        return "overloaded"
    if any(marker in text for marker in _QUOTA_MARKERS):
        return "quota"
    return "other"


def _is_overloaded(exc: BaseException) -> bool:
    return classify_failure(exc) == "overloaded"


def response_text(response: object) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content)


# ══════════════════════════════════════════════════════════════════════
#  CLIENT
# ══════════════════════════════════════════════════════════════════════


class GenerationClient:
    """
    Parameters
    ----------
    llm
        A ``ChatModel`` (``ChatGoogleGenerativeAI`` in production).
    max_attempts
        Total attempts for overload failures.
    initial_delay
        Seconds to wait after the first overloaded attempt; doubles after
        each further one.
    timeout
        Per-attempt deadline in seconds; ``0`` disables it.  A timeout is
        reported as a generic failure and is not retried.
    sleep
        Async sleep used between attempts (injected by tests).
    """

    __slots__ = ("_llm", "_max_attempts", "_initial_delay", "_timeout", "_sleep")

    def __init__(self, llm: ChatModel, max_attempts: int | None = None, initial_delay: float | None = None, timeout: float | None = None, sleep: Sleep = asyncio.sleep) -> None:
        self._llm = llm
        self._max_attempts = max_attempts or settings.GENERATION_MAX_ATTEMPTS
        self._initial_delay = settings.GENERATION_INITIAL_DELAY_SECONDS if initial_delay is None else initial_delay
        self._timeout = settings.REQUEST_TIMEOUT_SECONDS if timeout is None else timeout
        self._sleep = sleep


    @classmethod
    def from_settings(cls) -> GenerationClient:
        """Build the production client around Gemini chat."""
        from langchain_google_genai import ChatGoogleGenerativeAI

        # Retries happen in generate(), not inside LangChain
        llm = ChatGoogleGenerativeAI(model=settings.LLM_MODEL, temperature=settings.LLM_TEMPERATURE, google_api_key=settings.GOOGLE_API_KEY.get_secret_value(), max_retries=0)
        logger.info("LLM initialised: %s (temperature=%.1f)", settings.LLM_MODEL, settings.LLM_TEMPERATURE)
        return cls(llm)


    async def generate(self, prompt: str) -> str:
        """Send *prompt* to the model and return its text."""
        from langchain_core.messages import HumanMessage

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._initial_delay),
            retry=retry_if_exception(_is_overloaded),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )

        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts += 1
                    call = self._llm.ainvoke([HumanMessage(content=prompt)])
                    response = await (asyncio.wait_for(call, self._timeout) if self._timeout else call)
        except asyncio.TimeoutError as exc:
            logger.error("[GEN] Attempt %d timed out after %.1fs.", attempts, self._timeout)
            raise GenerationError(f"Generation timed out after {self._timeout:.1f}s", attempts=attempts) from exc
        except Exception as exc:
            kind = classify_failure(exc)
            if kind == "overloaded":
                logger.error("[GEN] Model still overloaded after %d attempts.", attempts)
                raise GenerationOverloadedError(str(exc), attempts=attempts) from exc
            if kind == "quota":
                logger.error("[GEN] Quota exceeded: %s", exc)
                raise GenerationQuotaError(str(exc), attempts=attempts) from exc
            logger.exception("[GEN] Generation failed.")
            raise GenerationError(str(exc), attempts=attempts) from exc

        text = response_text(response)
        logger.info("[GEN] Response received on attempt %d (%d chars).", attempts, len(text))
        return text
