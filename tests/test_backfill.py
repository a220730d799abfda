"""Tests for the embedding backfill job."""

import pytest

from conftest import FakeEmbedder, make_entry
from pastself.src.core.backfill import BackfillCoordinator, BackfillReport
from pastself.src.core.embedding_client import EmbeddingClient

USER = "user-1"


def make_coordinator(repo, sleep, embedder: FakeEmbedder) -> BackfillCoordinator:
    return BackfillCoordinator(EmbeddingClient(embedder, dimension=2, timeout=0), repo, delay=0.1, sleep=sleep)


class TestBackfillCoordinator:
    """Tests for BackfillCoordinator.run."""

    @pytest.mark.asyncio
    async def test_embeds_only_missing_entries(self, repo, sleep):
        repo.entries[USER] = [
            make_entry("a", "first", days_ago=3),
            make_entry("done", "already", days_ago=2, embedding=[0.5, 0.5]),
            make_entry("b", "second", days_ago=1),
            make_entry("c", "third", days_ago=0),
        ]
        embedder = FakeEmbedder(default=[1.0, 0.0])

        report = await make_coordinator(repo, sleep, embedder).run(USER)

        assert report == BackfillReport(processed=3, failed=0, total=3)
        assert embedder.calls == ["first", "second", "third"]
        assert all(e.has_embedding for e in repo.entries[USER])
        assert repo.entries[USER][1].embedding == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_pause_between_requests_only(self, repo, sleep):
        repo.entries[USER] = [make_entry(x, days_ago=i) for i, x in enumerate("abc")]
        await make_coordinator(repo, sleep, FakeEmbedder(default=[1.0, 0.0])).run(USER)
        assert sleep.delays == [0.1, 0.1]

    @pytest.mark.asyncio
    async def test_failures_counted_and_progress_reported(self, repo, sleep):
        repo.entries[USER] = [make_entry("a", "ok one", days_ago=2), make_entry("b", "broken", days_ago=1), make_entry("c", "ok two", days_ago=0)]
        embedder = FakeEmbedder(vectors={"broken": RuntimeError("429 quota")}, default=[1.0, 0.0])
        progress = []

        report = await make_coordinator(repo, sleep, embedder).run(USER, on_progress=lambda current, total: progress.append((current, total)))

        assert report == BackfillReport(processed=2, failed=1, total=3)
        assert progress == [(1, 3), (2, 3), (3, 3)]
        assert not repo.entries[USER][1].has_embedding

    @pytest.mark.asyncio
    async def test_persistence_failure_counted(self, repo, sleep):
        repo.entries[USER] = [make_entry("a", "one", days_ago=1), make_entry("b", "two", days_ago=0)]
        repo.failing_entry_ids = {"a"}

        report = await make_coordinator(repo, sleep, FakeEmbedder(default=[1.0, 0.0])).run(USER)

        assert report == BackfillReport(processed=1, failed=1, total=2)

    @pytest.mark.asyncio
    async def test_rerun_is_noop(self, repo, sleep):
        repo.entries[USER] = [make_entry("a", "one")]
        coordinator = make_coordinator(repo, sleep, FakeEmbedder(default=[1.0, 0.0]))

        await coordinator.run(USER)
        report = await coordinator.run(USER)

        assert report == BackfillReport(processed=0, failed=0, total=0)

    @pytest.mark.asyncio
    async def test_empty_corpus(self, repo, sleep):
        report = await make_coordinator(repo, sleep, FakeEmbedder()).run(USER)
        assert report == BackfillReport(processed=0, failed=0, total=0)
        assert sleep.delays == []
