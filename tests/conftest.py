"""Shared fixtures and in-memory fakes for the PastSelf test suite."""

import os

# Settings are a module-level singleton; seed the required secrets first
os.environ.setdefault("GOOGLE_API_KEY", "test-google-key-0000")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ["USER_TIMEZONE"] = "UTC"
os.environ["ENV"] = "dev"

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from langchain_core.messages import AIMessage  # noqa: E402

from pastself.config.prompt_templates import CHAT_GREETING  # noqa: E402
from pastself.src.core.embedding_client import EmbeddingClient  # noqa: E402
from pastself.src.database.models import ChatMessage, ChatSession, Goal, Habit, JournalEntry  # noqa: E402

NOW = datetime(2024, 5, 15, 18, 30, tzinfo=timezone.utc)  # a Wednesday


def make_entry(entry_id: str, text: str = "", days_ago: float | None = 0, embedding: list[float] | None = None) -> JournalEntry:
    """Entry created ``days_ago`` days before ``NOW`` (``None`` means undated)."""
    created = None if days_ago is None else NOW - timedelta(days=days_ago)
    return JournalEntry(id=entry_id, text=text or f"entry {entry_id}", created_at=created, embedding=embedding or [])


# ══════════════════════════════════════════════════════════════════════
#  FAKE UPSTREAM MODELS
# ══════════════════════════════════════════════════════════════════════


class FakeEmbedder:
    """``aembed_query`` backed by a lookup table."""

    def __init__(self, vectors: dict[str, Any] | None = None, default: Any = None, error: Exception | None = None):
        self.vectors = vectors or {}
        self.default = default
        self.error = error
        self.calls: list[str] = []

    async def aembed_query(self, text: str) -> Any:
        self.calls.append(text)
        if text in self.vectors:
            value = self.vectors[text]
            if isinstance(value, Exception):
                raise value
            return value
        if self.error is not None:
            raise self.error
        return self.default


class FakeLLM:
    """``ainvoke`` that replays scripted outcomes: strings are answers, exceptions are raised."""

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.prompts: list[str] = []

    async def ainvoke(self, messages: Any) -> AIMessage:
        self.prompts.append(messages[-1].content)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return AIMessage(content=outcome)


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


# ══════════════════════════════════════════════════════════════════════
#  IN-MEMORY REPOSITORY
# ══════════════════════════════════════════════════════════════════════


class InMemoryRepository:
    """Dict-backed ``JournalRepository`` with failure injection."""

    def __init__(self):
        self.entries: dict[str, list[JournalEntry]] = {}
        self.goals: dict[str, list[Goal]] = {}
        self.habits: dict[str, list[Habit]] = {}
        self.sessions: dict[str, dict[str, ChatSession]] = {}
        self.failing_goal_ids: set[str] = set()
        self.failing_entry_ids: set[str] = set()
        self.fail_list_entries = False
        self.fail_list_goals = False
        self._next_id = 0

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    @staticmethod
    def _replace(items: list[Any], item_id: str, fields: dict[str, Any]) -> None:
        for index, item in enumerate(items):
            if item.id == item_id:
                items[index] = item.model_copy(update=fields)
                return

    # ── Entries ────────────────────────────────────────────────────────

    async def list_entries(self, user_id: str) -> list[JournalEntry]:
        if self.fail_list_entries:
            raise ConnectionError("store unavailable")
        return list(self.entries.get(user_id, []))

    async def get_entry(self, user_id: str, entry_id: str) -> JournalEntry | None:
        return next((e for e in self.entries.get(user_id, []) if e.id == entry_id), None)

    async def add_entry(self, user_id: str, text: str, embedding: list[float], emotion: dict[str, str] | None) -> JournalEntry:
        entry = JournalEntry(id=self._new_id("entry"), text=text, created_at=NOW, embedding=embedding, emotion=emotion)
        self.entries.setdefault(user_id, []).append(entry)
        return entry

    async def update_entry(self, user_id: str, entry_id: str, fields: dict[str, Any]) -> None:
        if entry_id in self.failing_entry_ids:
            raise ConnectionError(f"cannot write entry {entry_id}")
        self._replace(self.entries.get(user_id, []), entry_id, fields)

    # ── Goals & habits ─────────────────────────────────────────────────

    async def list_goals(self, user_id: str) -> list[Goal]:
        if self.fail_list_goals:
            raise ConnectionError("store unavailable")
        return list(self.goals.get(user_id, []))

    async def update_goal(self, user_id: str, goal_id: str, fields: dict[str, Any]) -> None:
        if goal_id in self.failing_goal_ids:
            raise ConnectionError(f"cannot write goal {goal_id}")
        self._replace(self.goals.get(user_id, []), goal_id, fields)

    async def list_habits(self, user_id: str) -> list[Habit]:
        return list(self.habits.get(user_id, []))

    async def get_habit(self, user_id: str, habit_id: str) -> Habit | None:
        return next((h for h in self.habits.get(user_id, []) if h.id == habit_id), None)

    async def update_habit(self, user_id: str, habit_id: str, fields: dict[str, Any]) -> None:
        self._replace(self.habits.get(user_id, []), habit_id, fields)

    # ── Chat sessions ──────────────────────────────────────────────────

    async def create_session(self, user_id: str) -> ChatSession:
        session = ChatSession(id=self._new_id("session"), messages=[ChatMessage(sender="ai", text=CHAT_GREETING)], created_at=NOW, updated_at=NOW)
        self.sessions.setdefault(user_id, {})[session.id] = session
        return session.model_copy(deep=True)

    async def get_session(self, user_id: str, session_id: str) -> ChatSession | None:
        session = self.sessions.get(user_id, {}).get(session_id)
        return session.model_copy(deep=True) if session else None

    async def save_session(self, user_id: str, session: ChatSession) -> None:
        self.sessions.setdefault(user_id, {})[session.id] = session.model_copy(deep=True)

    async def delete_session(self, user_id: str, session_id: str) -> bool:
        return self.sessions.get(user_id, {}).pop(session_id, None) is not None

    async def list_sessions(self, user_id: str) -> list[ChatSession]:
        return list(self.sessions.get(user_id, {}).values())


# ══════════════════════════════════════════════════════════════════════
#  FIXTURES
# ══════════════════════════════════════════════════════════════════════


@pytest.fixture
def repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def embedding_client(embedder: FakeEmbedder) -> EmbeddingClient:
    """Two-dimensional client so test vectors stay readable."""
    return EmbeddingClient(embedder, dimension=2, timeout=0)
