"""
PastSelf - Mention Scanner
===========================
Decides which goals and habits a journal entry talks about and keeps
their ``mentions`` / ``progress`` / ``completions`` in step.

Two entry points, deliberately *not* equivalent:

``scan_entry``
    Incremental, run right after an entry is saved.  Only ever appends
    the entry id to matching goals.  It never removes anything, so a
    goal whose keywords were narrowed keeps its older matches until the
    next bulk rescan.
``rescan``
    Bulk recompute.  Each goal's ``mentions`` is replaced by the matches
    within the goal's frequency scope; habits mentioned in today's
    entries get today's completion.  Running it twice on unchanged data
    yields the same result.

Matching itself lives in ``text_utils.is_mentioned``.  Both paths are
best effort: one failing goal or habit is logged and skipped, never
aborting the others or the entry save that triggered the scan.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from pastself.config.settings import settings
from pastself.src.core.streaks import habit_streak, is_completed_on, scope_start, start_of_day
from pastself.src.database.document_store import JournalRepository
from pastself.src.database.models import Goal, Habit, JournalEntry, progress_for
from pastself.src.utils.logger import get_logger
from pastself.src.utils.text_utils import is_mentioned

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _local_now() -> datetime:
    return datetime.now(settings.timezone)


@dataclass
class RescanReport:
    goals_updated: int = 0
    habits_updated: int = 0
    entries_scanned: int = 0
    failures: int = 0


def entries_in_scope(entries: Sequence[JournalEntry], frequency: str, now: datetime) -> list[JournalEntry]:
    """Entries a goal of *frequency* may count; undated entries only count for one-time goals."""
    start = scope_start(frequency, now)
    if start is None:
        return list(entries)
    return [e for e in entries if e.created_at is not None and e.created_at >= start]


def goal_matches(goal: Goal, text: str) -> bool:
    return is_mentioned(text, goal.title, goal.keywords)


def habit_matches(habit: Habit, text: str) -> bool:
    return is_mentioned(text, habit.title)


class MentionScanner:
    """
    Parameters
    ----------
    repository
        Per-user document store.
    clock
        Returns the current aware local time; injected by tests.
    """

    __slots__ = ("_repo", "_clock")

    def __init__(self, repository: JournalRepository, clock: Clock | None = None) -> None:
        self._repo = repository
        self._clock = clock or _local_now

    # ══════════════════════════════════════════════════════════════════
    #  INCREMENTAL
    # ══════════════════════════════════════════════════════════════════

    async def scan_entry(self, user_id: str, entry_id: str, text: str) -> list[str]:
        """
        Append *entry_id* to every goal the text mentions.

        Returns the ids of goals that were updated.  Never raises.
        """
        try:
            goals = await self._repo.list_goals(user_id)
        except Exception:
            logger.exception("[SCAN] Could not load goals for user '%s'; skipping scan.", user_id)
            return []

        updated: list[str] = []
        for goal in goals:
            try:
                if not goal_matches(goal, text) or entry_id in goal.mentions:
                    continue
                mentions = [*goal.mentions, entry_id]
                await self._repo.update_goal(user_id, goal.id, {"mentions": mentions, "progress": progress_for(len(mentions))})
                updated.append(goal.id)
                logger.info("[SCAN] Entry %s mentions goal '%s' (%d mentions).", entry_id, goal.title, len(mentions))
            except Exception:
                logger.exception("[SCAN] Failed to scan goal %s; continuing.", goal.id)
        return updated

    # ══════════════════════════════════════════════════════════════════
    #  BULK
    # ══════════════════════════════════════════════════════════════════

    async def rescan(self, user_id: str) -> RescanReport:
        """Recompute every goal's mentions and auto-complete today's habits."""
        report = RescanReport()
        goals = await self._repo.list_goals(user_id)
        habits = await self._repo.list_habits(user_id)
        if not goals and not habits:
            logger.info("[SCAN] User '%s' has no goals or habits to scan.", user_id)
            return report

        entries = await self._repo.list_entries(user_id)
        now = self._clock()
        logger.info("[SCAN] Rescanning %d goals and %d habits over %d entries.", len(goals), len(habits), len(entries))

        for goal in goals:
            try:
                scoped = entries_in_scope(entries, goal.frequency, now)
                report.entries_scanned += len(scoped)
                mentions = [e.id for e in scoped if goal_matches(goal, e.text)]
                await self._repo.update_goal(user_id, goal.id, {"mentions": mentions, "progress": progress_for(len(mentions))})
                if mentions:
                    report.goals_updated += 1
                logger.debug("[SCAN] Goal '%s' (%s): %d/%d entries match.", goal.title, goal.frequency, len(mentions), len(scoped))
            except Exception:
                report.failures += 1
                logger.exception("[SCAN] Failed to rescan goal %s; continuing.", goal.id)

        todays_entries = entries_in_scope(entries, "daily", now)
        for habit in habits:
            try:
                if await self._complete_if_mentioned(user_id, habit, todays_entries, now):
                    report.habits_updated += 1
            except Exception:
                report.failures += 1
                logger.exception("[SCAN] Failed to rescan habit %s; continuing.", habit.id)

        logger.info("[SCAN] Rescan done: %d goals, %d habits updated, %d failures.", report.goals_updated, report.habits_updated, report.failures)
        return report


    async def _complete_if_mentioned(self, user_id: str, habit: Habit, todays_entries: Sequence[JournalEntry], now: datetime) -> bool:
        if not any(habit_matches(habit, e.text) for e in todays_entries):
            return False

        today = start_of_day(now).date()
        if is_completed_on(habit.completions, today, now.tzinfo):
            logger.debug("[SCAN] Habit '%s' already completed today.", habit.title)
            return False

        stamp = now.isoformat()
        completions = [*habit.completions, stamp]
        streak = habit_streak(completions, today, now.tzinfo)
        await self._repo.update_habit(user_id, habit.id, {"completions": completions, "streak": streak, "last_completed": stamp})
        logger.info("[SCAN] Habit '%s' auto-completed (streak=%d).", habit.title, streak)
        return True
