"""
PastSelf - Embedding Backfill
==============================
Computes embeddings for historical entries that were saved without one.

The loop is serial on purpose: one embedding request at a time with a
fixed pause between requests to stay under the provider's rate limit.
Entries that already have an embedding are skipped, so the job can be
re-run safely after a partial failure.  Two backfills for the same user
must not run at once; callers are expected to prevent that.

Usage:
    coordinator = BackfillCoordinator(EmbeddingClient.from_settings(), store)
    report = await coordinator.run("user-123", on_progress=print)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from pastself.config.settings import settings
from pastself.src.core.embedding_client import EmbeddingClient
from pastself.src.database.document_store import JournalRepository
from pastself.src.utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], object]
Sleep = Callable[[float], Awaitable[object]]


@dataclass(frozen=True)
class BackfillReport:
    processed: int
    failed: int
    total: int


class BackfillCoordinator:
    """
    Parameters
    ----------
    embedding_client
        Source of embeddings; returns ``None`` on failure.
    repository
        Per-user document store.
    delay
        Seconds between consecutive embedding requests.  Defaults to
        ``settings.BACKFILL_DELAY_SECONDS`` (0.1).
    sleep
        Async sleep used for the pause (injected by tests).
    """

    __slots__ = ("_embedder", "_repo", "_delay", "_sleep")

    def __init__(self, embedding_client: EmbeddingClient, repository: JournalRepository, delay: float | None = None, sleep: Sleep = asyncio.sleep) -> None:
        self._embedder = embedding_client
        self._repo = repository
        self._delay = settings.BACKFILL_DELAY_SECONDS if delay is None else delay
        self._sleep = sleep


    async def run(self, user_id: str, on_progress: ProgressCallback | None = None) -> BackfillReport:
        """
        Embed every entry of *user_id* that lacks an embedding.

        ``on_progress(current, total)`` is called after each attempted
        entry.  ``total`` is the number of entries that needed work.
        """
        t_start = time.perf_counter()
        entries = await self._repo.list_entries(user_id)
        pending = [e for e in entries if not e.has_embedding]
        total = len(pending)
        logger.info("[BACKFILL] %d of %d entries lack embeddings for user '%s'.", total, len(entries), user_id)

        if not pending:
            return BackfillReport(processed=0, failed=0, total=0)

        processed = 0
        failed = 0
        for index, entry in enumerate(pending):
            if index and self._delay:
                await self._sleep(self._delay)

            try:
                vector = await self._embedder.embed(entry.text)
                if vector is None:
                    failed += 1
                    logger.warning("[BACKFILL] No embedding for entry %s.", entry.id)
                else:
                    await self._repo.update_entry(user_id, entry.id, {"embedding": vector})
                    processed += 1
                    logger.debug("[BACKFILL] Backfilled %d/%d.", processed, total)
            except Exception:
                failed += 1
                logger.exception("[BACKFILL] Error processing entry %s.", entry.id)

            if on_progress is not None:
                on_progress(index + 1, total)

        elapsed = time.perf_counter() - t_start
        logger.info("[BACKFILL] Complete in %.2fs: processed=%d, failed=%d, total=%d.", elapsed, processed, failed, total)
        return BackfillReport(processed=processed, failed=failed, total=total)
