"""
PastSelf - Embedding Client
============================
Turns text into a fixed-length vector through an injected LangChain
embedding model (``GoogleGenerativeAIEmbeddings`` in production).

Failure is an *expected* outcome here: network errors, quota errors,
timeouts and malformed vectors all come back as ``None`` and callers
store / treat the entry as having no embedding.  Nothing is retried.

Usage:
    client = EmbeddingClient.from_settings()
    vector = await client.embed("Went for a run before work")
"""

from __future__ import annotations

import asyncio
import numbers
from typing import Protocol, runtime_checkable

from pastself.config.settings import settings
from pastself.src.utils.logger import get_logger

logger = get_logger(__name__)

Vector = list[float]


@runtime_checkable
class Embedder(Protocol):
    """Structural type for any LangChain-compatible embedding model."""

    async def aembed_query(self, text: str) -> list[float]: ...


class EmbeddingClient:
    """
    Parameters
    ----------
    embedder
        Any object satisfying the ``Embedder`` protocol.
    dimension
        Expected vector length.  Defaults to ``settings.EMBEDDING_DIM``.
    timeout
        Per-call deadline in seconds.  Defaults to
        ``settings.REQUEST_TIMEOUT_SECONDS``; ``0`` disables it.
    """

    __slots__ = ("_embedder", "_dimension", "_timeout")

    def __init__(self, embedder: Embedder, dimension: int | None = None, timeout: float | None = None) -> None:
        self._embedder = embedder
        self._dimension = dimension or settings.EMBEDDING_DIM
        self._timeout = settings.REQUEST_TIMEOUT_SECONDS if timeout is None else timeout


    @classmethod
    def from_settings(cls) -> EmbeddingClient:
        """Build the production client around Gemini embeddings."""
        from langchain_google_genai import GoogleGenerativeAIEmbeddings

        embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
        logger.info("Embedding model initialised: %s (%d-d)", settings.EMBEDDING_MODEL, settings.EMBEDDING_DIM)
        return cls(embedder)


    @property
    def dimension(self) -> int:
        return self._dimension


    async def embed(self, text: str) -> Vector | None:
        """Return the embedding of *text*, or ``None`` if it could not be computed."""
        if not text or not text.strip():
            return None

        try:
            call = self._embedder.aembed_query(text)
            raw = await (asyncio.wait_for(call, self._timeout) if self._timeout else call)
        except asyncio.TimeoutError:
            logger.warning("[EMBED] Timed out after %.1fs.", self._timeout)
            return None
        except Exception as exc:
            logger.warning("[EMBED] Embedding request failed: %s", exc)
            return None

        return self._validate(raw)


    def _validate(self, raw: object) -> Vector | None:
        if not isinstance(raw, (list, tuple)) or not raw:
            logger.warning("[EMBED] Malformed embedding response (%s).", type(raw).__name__)
            return None
        if not all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in raw):
            logger.warning("[EMBED] Embedding contains non-numeric values.")
            return None
        if len(raw) != self._dimension:
            logger.warning("[EMBED] Expected %d dimensions, got %d.", self._dimension, len(raw))
            return None
        return [float(v) for v in raw]
