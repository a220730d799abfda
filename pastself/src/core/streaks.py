"""
PastSelf - Streaks & Calendar Scopes
=====================================
Calendar-day helpers shared by habit tracking and the mention scanner.

All "days" are local calendar days in the configured timezone
(``settings.USER_TIMEZONE``); stored timestamps are UTC.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any

from pastself.config.settings import settings
from pastself.src.database.models import normalize_timestamp


@dataclass(frozen=True)
class StreakSummary:
    current: int
    longest: int


def local_day(value: Any, tz: tzinfo | None = None) -> date | None:
    """Calendar day of a stored timestamp, or ``None`` if it cannot be parsed."""
    parsed = normalize_timestamp(value)
    if parsed is None:
        return None
    return parsed.astimezone(tz or settings.timezone).date()


def distinct_days(values: Iterable[Any], tz: tzinfo | None = None) -> list[date]:
    """Unique calendar days, newest first."""
    days = {d for d in (local_day(v, tz) for v in values) if d is not None}
    return sorted(days, reverse=True)


def is_completed_on(completions: Iterable[str], day: date, tz: tzinfo | None = None) -> bool:
    return any(local_day(c, tz) == day for c in completions)


def habit_streak(completions: Iterable[str], today: date, tz: tzinfo | None = None) -> int:
    """
    Consecutive completed days ending today or yesterday.

    ``0`` when the latest completion is older than yesterday.  A missing
    day ends the count: completions on D and D-2 give ``1``.
    """
    days = distinct_days(completions, tz)
    if not days or days[0] < today - timedelta(days=1):
        return 0

    streak = 1
    expected = days[0]
    for day in days[1:]:
        expected -= timedelta(days=1)
        if day != expected:
            break
        streak += 1
    return streak


def journaling_streak(timestamps: Iterable[Any], today: date, tz: tzinfo | None = None) -> StreakSummary:
    """Current and longest run of consecutive days with at least one entry."""
    days = distinct_days(timestamps, tz)
    if not days:
        return StreakSummary(current=0, longest=0)

    current = 0
    if days[0] >= today - timedelta(days=1):
        current = 1
        for prev, day in zip(days, days[1:]):
            if prev - day != timedelta(days=1):
                break
            current += 1

    longest = run = 1
    for prev, day in zip(days, days[1:]):
        run = run + 1 if prev - day == timedelta(days=1) else 1
        longest = max(longest, run)

    return StreakSummary(current=current, longest=max(longest, current))


# ── Scope boundaries ───────────────────────────────────────────────────

def start_of_day(now: datetime) -> datetime:
    """Local midnight of *now*'s day (aware, same tz as *now*)."""
    return datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)


def start_of_week(now: datetime) -> datetime:
    """Midnight of the most recent Sunday (today if today is Sunday)."""
    days_since_sunday = (now.weekday() + 1) % 7
    return start_of_day(now) - timedelta(days=days_since_sunday)


def start_of_month(now: datetime) -> datetime:
    return datetime.combine(now.date().replace(day=1), time.min, tzinfo=now.tzinfo)


def scope_start(frequency: str, now: datetime) -> datetime | None:
    """
    Earliest creation time considered for a goal of *frequency*.

    ``None`` means the whole corpus (one-time goals and unknown values).
    """
    if frequency == "daily":
        return start_of_day(now)
    if frequency == "weekly":
        return start_of_week(now)
    if frequency == "monthly":
        return start_of_month(now)
    return None
