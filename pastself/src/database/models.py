"""
PastSelf - Document Models
===========================
``pydantic`` models for the documents kept in the per-user store, plus
the single timestamp normalisation step applied at the data-access
boundary.

Stored documents carry their creation time under several historical
field names (``createdAt``, ``created_at``, ``timestamp``, ``date``) and
in several shapes (``datetime``, ISO strings, epoch seconds or
milliseconds, ``{"seconds": ..., "nanoseconds": ...}`` server-timestamp
mappings).  ``from_document`` collapses all of them into one
timezone-aware UTC ``created_at``; core code never sees the variants.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from pastself.config.prompt_templates import CHAT_TITLE_LENGTH, EMOTION_MAP, MAX_PROGRESS, NEW_CHAT_TITLE, PROGRESS_PER_MENTION

Document = dict[str, Any]

GoalCategory = Literal["personal", "health", "career", "relationships", "learning", "other"]
GoalFrequency = Literal["one-time", "daily", "weekly", "monthly"]
HabitFrequency = Literal["daily", "weekly"]
EmotionLabel = Literal["happy", "sad", "stressed", "calm", "excited", "angry", "anxious", "content", "frustrated", "hopeful"]

_TIMESTAMP_FIELDS: tuple[str, ...] = ("createdAt", "created_at", "timestamp", "date")

# Epoch values above this are milliseconds (year ~2286 in seconds)
_EPOCH_MS_THRESHOLD = 10_000_000_000


# ══════════════════════════════════════════════════════════════════════
#  TIMESTAMP NORMALISATION
# ══════════════════════════════════════════════════════════════════════


def normalize_timestamp(value: Any) -> datetime | None:
    """
    Convert any stored timestamp representation to an aware UTC datetime.

    Returns ``None`` for missing or unparseable values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > _EPOCH_MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return normalize_timestamp(datetime.fromisoformat(text))
        except ValueError:
            return None
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
            return normalize_timestamp(seconds + nanos / 1e9)
        return None
    return None


def document_timestamp(doc: Document) -> datetime | None:
    """First parseable creation timestamp among the known field names."""
    for field in _TIMESTAMP_FIELDS:
        parsed = normalize_timestamp(doc.get(field))
        if parsed is not None:
            return parsed
    return None


def _document_id(doc: Document) -> str:
    raw = doc.get("id", doc.get("_id"))
    return "" if raw is None else str(raw)


# ══════════════════════════════════════════════════════════════════════
#  JOURNAL ENTRIES
# ══════════════════════════════════════════════════════════════════════


class Emotion(BaseModel):
    """Externally computed emotion label with its presentation colour and glyph."""

    label: EmotionLabel
    color: str
    emoji: str

    @classmethod
    def from_label(cls, label: str) -> Emotion:
        color, emoji = EMOTION_MAP[label]
        return cls(label=label, color=color, emoji=emoji)


class JournalEntry(BaseModel):
    """
    A single journal entry.

    ``embedding`` is an empty list when the vector was never computed or
    its computation failed.
    """

    id: str
    text: str = ""
    created_at: datetime | None = None
    embedding: list[float] = Field(default_factory=list)
    emotion: Emotion | None = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    @classmethod
    def from_document(cls, doc: Document) -> JournalEntry:
        emotion = doc.get("emotion")
        parsed_emotion: Emotion | None = None
        if isinstance(emotion, dict):
            label = str(emotion.get("label", "")).lower()
            if label in EMOTION_MAP:
                parsed_emotion = Emotion.from_label(label)
        return cls(id=_document_id(doc), text=doc.get("text") or doc.get("entry") or "", created_at=document_timestamp(doc), embedding=list(doc.get("embedding") or []), emotion=parsed_emotion)


# ══════════════════════════════════════════════════════════════════════
#  GOALS & HABITS
# ══════════════════════════════════════════════════════════════════════


def progress_for(mention_count: int) -> int:
    """Goal progress: 10 points per mentioning entry, capped at 100."""
    return min(MAX_PROGRESS, PROGRESS_PER_MENTION * mention_count)


class Goal(BaseModel):
    id: str
    title: str
    description: str = ""
    category: GoalCategory = "personal"
    frequency: GoalFrequency = "one-time"
    keywords: str = ""
    target_date: date | None = None
    mentions: list[str] = Field(default_factory=list)
    progress: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_document(cls, doc: Document) -> Goal:
        target = normalize_timestamp(doc.get("targetDate", doc.get("target_date")))
        mentions = list(dict.fromkeys(str(m) for m in doc.get("mentions") or []))
        return cls(
            id=_document_id(doc),
            title=doc.get("title") or "",
            description=doc.get("description") or "",
            category=doc.get("category") or "personal",
            frequency=doc.get("frequency") or "one-time",
            keywords=doc.get("keywords") or "",
            target_date=target.date() if target else None,
            mentions=mentions,
            progress=progress_for(len(mentions)),
            created_at=document_timestamp(doc),
        )


class Habit(BaseModel):
    id: str
    title: str
    frequency: HabitFrequency = "daily"
    completions: list[str] = Field(default_factory=list)
    streak: int = 0
    last_completed: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_document(cls, doc: Document) -> Habit:
        return cls(
            id=_document_id(doc),
            title=doc.get("title") or "",
            frequency=doc.get("frequency") or "daily",
            completions=[str(c) for c in doc.get("completions") or []],
            streak=int(doc.get("streak") or 0),
            last_completed=doc.get("lastCompleted", doc.get("last_completed")),
            created_at=document_timestamp(doc),
        )


# ══════════════════════════════════════════════════════════════════════
#  CHAT SESSIONS
# ══════════════════════════════════════════════════════════════════════


class ChatMessage(BaseModel):
    sender: Literal["user", "ai"]
    text: str


class ChatSession(BaseModel):
    id: str
    messages: list[ChatMessage] = Field(default_factory=list)
    title: str = NEW_CHAT_TITLE
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def derive_title(self) -> str:
        """First user message, truncated, or the placeholder title."""
        for message in self.messages:
            if message.sender == "user":
                return message.text[:CHAT_TITLE_LENGTH] + "..."
        return NEW_CHAT_TITLE

    @classmethod
    def from_document(cls, doc: Document) -> ChatSession:
        return cls(
            id=_document_id(doc),
            messages=[ChatMessage(**m) for m in doc.get("messages") or []],
            title=doc.get("title") or NEW_CHAT_TITLE,
            created_at=document_timestamp(doc),
            updated_at=normalize_timestamp(doc.get("updatedAt", doc.get("updated_at"))),
        )
