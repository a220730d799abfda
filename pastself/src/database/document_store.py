"""
PastSelf - Document Store
==========================
Async per-user document store backed by MongoDB via ``motor``.

Every document carries a ``user_id`` and every query filters by it, so
one user can never read or write another user's entries, goals, habits
or chat sessions.

Collections::

    journal_entries  {user_id, text, created_at, embedding: [float], emotion}
    goals            {user_id, title, description, category, frequency,
                      keywords, target_date, mentions: [id], progress, created_at}
    habits           {user_id, title, frequency, completions: [iso],
                      streak, last_completed, created_at}
    chat_sessions    {user_id, messages: [{sender, text}], title,
                      created_at, updated_at}

The core only needs fetch-all, fetch-by-id and field-level ``$set``
updates; it never relies on change streams.  Documents are converted to
models (and their timestamps normalised) here, before any core logic
runs.

Usage:
    store = MongoJournalStore.from_settings()
    entries = await store.list_entries("user-123")
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol, TypeVar

import motor.motor_asyncio
from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel, ValidationError

from pastself.config.prompt_templates import CHAT_GREETING, NEW_CHAT_TITLE
from pastself.config.settings import settings
from pastself.src.database.models import ChatSession, Document, Goal, Habit, JournalEntry
from pastself.src.utils.logger import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ENTRIES = "journal_entries"
GOALS = "goals"
HABITS = "habits"
SESSIONS = "chat_sessions"


# ══════════════════════════════════════════════════════════════════════
#  REPOSITORY PROTOCOL
# ══════════════════════════════════════════════════════════════════════


class JournalRepository(Protocol):
    """What the core needs from persistence.  Implemented by ``MongoJournalStore``."""

    async def list_entries(self, user_id: str) -> list[JournalEntry]: ...

    async def get_entry(self, user_id: str, entry_id: str) -> JournalEntry | None: ...

    async def add_entry(self, user_id: str, text: str, embedding: list[float], emotion: dict[str, str] | None) -> JournalEntry: ...

    async def update_entry(self, user_id: str, entry_id: str, fields: Document) -> None: ...

    async def list_goals(self, user_id: str) -> list[Goal]: ...

    async def update_goal(self, user_id: str, goal_id: str, fields: Document) -> None: ...

    async def list_habits(self, user_id: str) -> list[Habit]: ...

    async def get_habit(self, user_id: str, habit_id: str) -> Habit | None: ...

    async def update_habit(self, user_id: str, habit_id: str, fields: Document) -> None: ...

    async def create_session(self, user_id: str) -> ChatSession: ...

    async def get_session(self, user_id: str, session_id: str) -> ChatSession | None: ...

    async def save_session(self, user_id: str, session: ChatSession) -> None: ...

    async def delete_session(self, user_id: str, session_id: str) -> bool: ...

    async def list_sessions(self, user_id: str) -> list[ChatSession]: ...


# ══════════════════════════════════════════════════════════════════════
#  MONGODB SINGLETON CLIENT
# ══════════════════════════════════════════════════════════════════════

_mongo_client: motor.motor_asyncio.AsyncIOMotorClient | None = None


def _get_mongo_client() -> motor.motor_asyncio.AsyncIOMotorClient:
    """Return (or create) the module-level async MongoDB client."""
    global _mongo_client
    if _mongo_client is None:
        options: dict[str, int] = {}
        if settings.REQUEST_TIMEOUT_SECONDS:
            timeout_ms = int(settings.REQUEST_TIMEOUT_SECONDS * 1000)
            options = {"serverSelectionTimeoutMS": timeout_ms, "socketTimeoutMS": timeout_ms}
        _mongo_client = motor.motor_asyncio.AsyncIOMotorClient(settings.MONGO_URI.get_secret_value(), **options)
        logger.info("[STORE] MongoDB async client created (singleton).")
    return _mongo_client


def _id_filter(user_id: str, doc_id: str) -> Document:
    try:
        key: Any = ObjectId(doc_id)
    except (InvalidId, TypeError):
        key = doc_id
    return {"_id": key, "user_id": user_id}


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ══════════════════════════════════════════════════════════════════════
#  MONGO STORE
# ══════════════════════════════════════════════════════════════════════


class MongoJournalStore:
    """
    ``JournalRepository`` implementation over a ``motor`` database.

    Parameters
    ----------
    database
        An ``AsyncIOMotorDatabase`` (or anything indexable by collection
        name that returns motor-like collections).
    """

    __slots__ = ("_db",)

    def __init__(self, database: Any) -> None:
        self._db = database


    @classmethod
    def from_settings(cls) -> MongoJournalStore:
        return cls(_get_mongo_client()[settings.MONGO_DB_NAME])


    async def _find_all(self, collection: str, user_id: str, model: type[ModelT]) -> list[ModelT]:
        cursor = self._db[collection].find({"user_id": user_id}).sort("created_at", 1)
        docs = await cursor.to_list(length=None)
        items: list[ModelT] = []
        for doc in docs:
            try:
                items.append(model.from_document(doc))  # type: ignore[attr-defined]
            except ValidationError as exc:
                logger.warning("[STORE] Skipping malformed %s document %s: %s", collection, doc.get("_id"), exc.error_count())
        return items


    async def _find_one(self, collection: str, user_id: str, doc_id: str, model: type[ModelT]) -> ModelT | None:
        doc = await self._db[collection].find_one(_id_filter(user_id, doc_id))
        if doc is None:
            return None
        return model.from_document(doc)  # type: ignore[attr-defined]


    async def _set_fields(self, collection: str, user_id: str, doc_id: str, fields: Document) -> None:
        result = await self._db[collection].update_one(_id_filter(user_id, doc_id), {"$set": fields})
        if result.matched_count == 0:
            logger.warning("[STORE] No %s document '%s' for user '%s'; update ignored.", collection, doc_id, user_id)

    # ── Journal entries ────────────────────────────────────────────────

    async def list_entries(self, user_id: str) -> list[JournalEntry]:
        return await self._find_all(ENTRIES, user_id, JournalEntry)


    async def get_entry(self, user_id: str, entry_id: str) -> JournalEntry | None:
        return await self._find_one(ENTRIES, user_id, entry_id, JournalEntry)


    async def add_entry(self, user_id: str, text: str, embedding: list[float], emotion: dict[str, str] | None) -> JournalEntry:
        doc: Document = {"user_id": user_id, "text": text, "created_at": _now(), "embedding": embedding, "emotion": emotion}
        result = await self._db[ENTRIES].insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("[STORE] Entry %s saved for user '%s' (embedding=%s).", result.inserted_id, user_id, bool(embedding))
        return JournalEntry.from_document(doc)


    async def update_entry(self, user_id: str, entry_id: str, fields: Document) -> None:
        await self._set_fields(ENTRIES, user_id, entry_id, fields)

    # ── Goals ──────────────────────────────────────────────────────────

    async def list_goals(self, user_id: str) -> list[Goal]:
        return await self._find_all(GOALS, user_id, Goal)


    async def update_goal(self, user_id: str, goal_id: str, fields: Document) -> None:
        await self._set_fields(GOALS, user_id, goal_id, fields)

    # ── Habits ─────────────────────────────────────────────────────────

    async def list_habits(self, user_id: str) -> list[Habit]:
        return await self._find_all(HABITS, user_id, Habit)


    async def get_habit(self, user_id: str, habit_id: str) -> Habit | None:
        return await self._find_one(HABITS, user_id, habit_id, Habit)


    async def update_habit(self, user_id: str, habit_id: str, fields: Document) -> None:
        await self._set_fields(HABITS, user_id, habit_id, fields)

    # ── Chat sessions ──────────────────────────────────────────────────

    async def create_session(self, user_id: str) -> ChatSession:
        now = _now()
        doc: Document = {"user_id": user_id, "messages": [{"sender": "ai", "text": CHAT_GREETING}], "title": NEW_CHAT_TITLE, "created_at": now, "updated_at": now}
        result = await self._db[SESSIONS].insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("[SESSION] New chat session %s for user '%s'.", result.inserted_id, user_id)
        return ChatSession.from_document(doc)


    async def get_session(self, user_id: str, session_id: str) -> ChatSession | None:
        return await self._find_one(SESSIONS, user_id, session_id, ChatSession)


    async def save_session(self, user_id: str, session: ChatSession) -> None:
        messages = [m.model_dump() for m in session.messages]
        await self._set_fields(SESSIONS, user_id, session.id, {"messages": messages, "title": session.title, "updated_at": _now()})


    async def delete_session(self, user_id: str, session_id: str) -> bool:
        result = await self._db[SESSIONS].delete_one(_id_filter(user_id, session_id))
        return result.deleted_count > 0


    async def list_sessions(self, user_id: str) -> list[ChatSession]:
        """All sessions, most recently updated first."""
        cursor = self._db[SESSIONS].find({"user_id": user_id}).sort("updated_at", -1)
        docs = await cursor.to_list(length=None)
        return [ChatSession.from_document(doc) for doc in docs]
