"""
PastSelf - Journal & Chat Services
===================================
The two flows the presentation layer drives.

``JournalService``
    Saving an entry: embedding and emotion are computed concurrently and
    best effort (a failure stores an empty embedding / no emotion, it
    never blocks the save), the entry is persisted, then the incremental
    mention scan runs.  Also the explicit habit toggle.

``ChatService``
    One chat turn: fetch the corpus while embedding the question,
    retrieve + compose + generate,
    persist both messages to the session.  The answer is stored and
    returned with markdown stripped for display.  Generation failures
    become an apologetic AI message instead of an exception.  A reply
    that was overtaken by a newer question on the same session comes
    back flagged ``stale`` and is not persisted, so the UI can drop it.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime

from pastself.config.prompt_templates import CHAT_ERROR_PREFIX
from pastself.config.settings import settings
from pastself.src.core.composer import AnswerComposer
from pastself.src.core.embedding_client import EmbeddingClient
from pastself.src.core.emotion import EmotionClassifier
from pastself.src.core.errors import GenerationError
from pastself.src.core.mention_scanner import MentionScanner
from pastself.src.core.streaks import habit_streak, local_day
from pastself.src.database.document_store import JournalRepository
from pastself.src.database.models import ChatMessage, Habit, JournalEntry
from pastself.src.utils.logger import get_logger
from pastself.src.utils.text_utils import strip_markdown

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  JOURNAL
# ══════════════════════════════════════════════════════════════════════


class JournalService:
    """
    Parameters
    ----------
    repository
        Per-user document store.
    embedding_client
        Computes the entry embedding.
    emotion_classifier
        Labels the entry's emotion.
    mention_scanner
        Runs the incremental goal scan after the save.
    """

    __slots__ = ("_repo", "_embedder", "_emotions", "_scanner")

    def __init__(self, repository: JournalRepository, embedding_client: EmbeddingClient, emotion_classifier: EmotionClassifier, mention_scanner: MentionScanner) -> None:
        self._repo = repository
        self._embedder = embedding_client
        self._emotions = emotion_classifier
        self._scanner = mention_scanner


    async def save_entry(self, user_id: str, text: str) -> JournalEntry:
        """
        Persist a new entry with whatever enrichment could be computed.

        Raises
        ------
        ValueError
            If *text* is blank.
        """
        if not text or not text.strip():
            raise ValueError("Journal entry text must not be empty.")

        embedding, emotion = await asyncio.gather(self._embedder.embed(text), self._emotions.classify(text))
        if embedding is None:
            logger.warning("[JOURNAL] Saving entry without embedding (generation failed).")

        entry = await self._repo.add_entry(user_id, text, embedding or [], emotion.model_dump() if emotion else None)
        await self._scanner.scan_entry(user_id, entry.id, text)
        return entry


    async def toggle_habit(self, user_id: str, habit_id: str, now: datetime | None = None) -> Habit:
        """
        Mark *habit_id* done for today, or undo today's mark if present.

        Raises
        ------
        LookupError
            If the habit does not exist for this user.
        """
        habit = await self._repo.get_habit(user_id, habit_id)
        if habit is None:
            raise LookupError(f"Habit '{habit_id}' not found.")

        now = now or datetime.now(settings.timezone)
        tz = now.tzinfo
        today = now.date()

        if any(local_day(c, tz) == today for c in habit.completions):
            completions = [c for c in habit.completions if local_day(c, tz) != today]
            last_completed = completions[-1] if completions else None
        else:
            completions = [*habit.completions, now.isoformat()]
            last_completed = completions[-1]

        streak = habit_streak(completions, today, tz)
        await self._repo.update_habit(user_id, habit_id, {"completions": completions, "streak": streak, "last_completed": last_completed})
        logger.info("[JOURNAL] Habit '%s' toggled (streak=%d).", habit.title, streak)
        return habit.model_copy(update={"completions": completions, "streak": streak, "last_completed": last_completed})


# ══════════════════════════════════════════════════════════════════════
#  CHAT
# ══════════════════════════════════════════════════════════════════════


@dataclass
class ChatReply:
    session_id: str
    text: str
    failed: bool = False
    stale: bool = False
    entries: list[JournalEntry] = field(default_factory=list)


class ChatService:
    """
    Parameters
    ----------
    repository
        Per-user document store (entries and chat sessions).
    composer
        Answers questions from the journal.
    """

    __slots__ = ("_repo", "_composer", "_latest", "_tickets")

    def __init__(self, repository: JournalRepository, composer: AnswerComposer) -> None:
        self._repo = repository
        self._composer = composer
        self._latest: dict[str, int] = {}
        self._tickets = itertools.count(1)


    async def send_message(self, user_id: str, session_id: str | None, question: str) -> ChatReply:
        """Ask *question* in a session, creating the session when *session_id* is ``None``."""
        if not question or not question.strip():
            raise ValueError("Question must not be empty.")

        session = await self._repo.get_session(user_id, session_id) if session_id else None
        if session is None:
            session = await self._repo.create_session(user_id)

        ticket = next(self._tickets)
        self._latest[session.id] = ticket

        entries: list[JournalEntry] = []
        failed = False
        try:
            composed = await self._composer.answer_for_user(user_id, question, self._repo)
            text = strip_markdown(composed.text)
            entries = composed.entries
        except GenerationError as exc:
            logger.warning("[CHAT] Generation failed for session %s: %s", session.id, exc)
            text = CHAT_ERROR_PREFIX + exc.user_message
            failed = True

        if self._latest.get(session.id) != ticket:
            logger.info("[CHAT] Reply for session %s superseded by a newer question; not saving.", session.id)
            return ChatReply(session_id=session.id, text=text, failed=failed, stale=True, entries=entries)

        # Re-read so turns finished while we waited are not overwritten
        current = await self._repo.get_session(user_id, session.id) or session
        current.messages.extend([ChatMessage(sender="user", text=question), ChatMessage(sender="ai", text=text)])
        current.title = current.derive_title()
        await self._repo.save_session(user_id, current)

        # A newer question may have taken the slot while saving
        if self._latest.get(session.id) == ticket:
            del self._latest[session.id]
        return ChatReply(session_id=session.id, text=text, failed=failed, entries=entries)
