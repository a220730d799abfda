"""
PastSelf - Relevance Retriever
===============================
Selects the bounded subset of journal entries handed to the model as
context for a question.

Algorithm
---------
1. Embed the question.  Failure → the ``fallback_count`` most recent
   entries, no ranking.
2. Keep entries whose embedding is non-empty and as long as the
   question vector.  None left → the ``fallback_count`` most recent.
3. Score each by cosine similarity; stable sort, highest first.
4. Take the top ``top_k``.
5. Independently take the ``recent_count`` most recent entries, so
   "what did I do yesterday" always sees yesterday even when its wording
   is not similar to the question.
6. Concatenate top-K then recent and dedupe by id (first copy wins).

Every failure degrades to recent entries; retrieval never raises.
The output holds at most ``top_k + recent_count`` entries.

Usage:
    retriever = RelevanceRetriever(EmbeddingClient.from_settings())
    context = await retriever.select("How was my week?", entries)
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import datetime, timezone

from pastself.config.settings import settings
from pastself.src.core.embedding_client import EmbeddingClient, Vector
from pastself.src.core.similarity import cosine_similarity
from pastself.src.database.document_store import JournalRepository
from pastself.src.database.models import JournalEntry
from pastself.src.utils.logger import get_logger

logger = get_logger(__name__)

_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


def most_recent(entries: Sequence[JournalEntry], count: int) -> list[JournalEntry]:
    """The *count* newest entries, oldest first.  Undated entries count as oldest."""
    if count <= 0:
        return []
    ordered = sorted(entries, key=lambda e: e.created_at or _UNDATED)
    return ordered[-count:]


def dedupe_by_id(entries: Sequence[JournalEntry]) -> list[JournalEntry]:
    unique: dict[str, JournalEntry] = {}
    for entry in entries:
        unique.setdefault(entry.id, entry)
    return list(unique.values())


class RelevanceRetriever:
    """
    Parameters
    ----------
    embedding_client
        Used to embed the question.
    top_k
        Similarity budget.  Defaults to ``settings.RAG_TOP_K`` (15).
    recent_count
        Newest entries always included.  Defaults to ``settings.RAG_RECENT_COUNT`` (5).
    fallback_count
        Newest entries returned when ranking is impossible.  Defaults to
        ``settings.RAG_FALLBACK_COUNT`` (20).
    """

    __slots__ = ("_embedder", "_top_k", "_recent_count", "_fallback_count")

    def __init__(self, embedding_client: EmbeddingClient, top_k: int | None = None, recent_count: int | None = None, fallback_count: int | None = None) -> None:
        self._embedder = embedding_client
        self._top_k = settings.RAG_TOP_K if top_k is None else top_k
        self._recent_count = settings.RAG_RECENT_COUNT if recent_count is None else recent_count
        self._fallback_count = settings.RAG_FALLBACK_COUNT if fallback_count is None else fallback_count


    @property
    def top_k(self) -> int:
        return self._top_k


    async def select(self, question: str, entries: Sequence[JournalEntry], top_k: int | None = None) -> list[JournalEntry]:
        """Pick the context entries for *question* out of the full corpus."""
        logger.info("[RAG] Finding %d most relevant of %d entries.", top_k or self._top_k, len(entries))
        question_vector = await self._embedder.embed(question)
        return self.rank(question_vector, entries, top_k)


    async def select_for_user(self, user_id: str, question: str, repository: JournalRepository, top_k: int | None = None) -> list[JournalEntry]:
        """
        Fetch the corpus and embed the question concurrently, then rank.

        A failed corpus fetch leaves nothing to fall back to and yields an
        empty selection.
        """
        question_vector, corpus = await asyncio.gather(self._embedder.embed(question), repository.list_entries(user_id), return_exceptions=True)

        if isinstance(corpus, BaseException):
            logger.error("[RAG] Corpus fetch failed for user '%s': %s", user_id, corpus)
            return []
        if isinstance(question_vector, BaseException):
            logger.warning("[RAG] Question embedding raised: %s", question_vector)
            question_vector = None

        return self.rank(question_vector, corpus, top_k)


    def rank(self, question_vector: Vector | None, entries: Sequence[JournalEntry], top_k: int | None = None) -> list[JournalEntry]:
        """Steps 2-6 of the algorithm; pure."""
        k = self._top_k if top_k is None else top_k

        if not question_vector:
            logger.warning("[RAG] No question embedding; returning %d most recent entries.", self._fallback_count)
            return most_recent(entries, self._fallback_count)

        try:
            dimension = len(question_vector)
            candidates = [e for e in entries if e.embedding and len(e.embedding) == dimension]
            logger.info("[RAG] %d/%d entries have comparable embeddings.", len(candidates), len(entries))

            if not candidates:
                logger.warning("[RAG] No embedded entries; returning %d most recent entries.", self._fallback_count)
                return most_recent(entries, self._fallback_count)

            scored = [(cosine_similarity(question_vector, e.embedding), e) for e in candidates]
            scored.sort(key=lambda pair: pair[0], reverse=True)
            top = [entry for _, entry in scored[:k]]

            selected = dedupe_by_id(top + most_recent(entries, self._recent_count))
        except Exception:
            logger.exception("[RAG] Ranking failed; returning recent entries.")
            return most_recent(entries, self._fallback_count)

        best = scored[0][0] if scored else 0.0
        logger.info("[RAG] Returning %d entries (top similarity: %.3f).", len(selected), best)
        return selected
