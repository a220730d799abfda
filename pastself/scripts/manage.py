"""
PastSelf - Maintenance CLI
===========================
Operator entry point for the jobs that run outside the app:

    backfill   Compute embeddings for entries saved without one.
    rescan     Recompute goal mentions and auto-complete today's habits.
    streak     Report the journaling streak and each habit's streak.
    ask        Ask a question against a user's journal from the terminal.

Each command validates settings first (fail-fast on a missing
``GOOGLE_API_KEY`` / ``MONGO_URI``), prints a header, runs the job on a
single event loop and finishes with a timing summary.

Usage:
    python -m pastself.scripts.manage backfill --user USER_ID
    python -m pastself.scripts.manage rescan --user USER_ID
    python -m pastself.scripts.manage streak --user USER_ID
    python -m pastself.scripts.manage ask --user USER_ID "What was I worried about last month?"
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

# ── Ensure project root is importable when run directly ────────────────
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

if TYPE_CHECKING:
    from pastself.src.database.document_store import JournalRepository


# ── CLI Argument Parsing ───────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="manage", description="PastSelf maintenance jobs.")
    sub = parser.add_subparsers(dest="command", required=True)

    backfill = sub.add_parser("backfill", help="Embed entries that have no embedding yet.")
    backfill.add_argument("--user", required=True, help="User id whose entries to backfill.")

    rescan = sub.add_parser("rescan", help="Recompute goal mentions and today's habit completions.")
    rescan.add_argument("--user", required=True, help="User id to rescan.")

    streak = sub.add_parser("streak", help="Show journaling and habit streaks.")
    streak.add_argument("--user", required=True, help="User id to report on.")

    ask = sub.add_parser("ask", help="Ask your past self a question.")
    ask.add_argument("--user", required=True, help="User id whose journal to draw from.")
    ask.add_argument("question", help="The question to ask.")
    return parser.parse_args(argv)


# ── Jobs ───────────────────────────────────────────────────────────────

async def _run_backfill(user_id: str) -> dict[str, int]:
    from pastself.src.core.backfill import BackfillCoordinator
    from pastself.src.core.embedding_client import EmbeddingClient
    from pastself.src.database.document_store import MongoJournalStore

    coordinator = BackfillCoordinator(EmbeddingClient.from_settings(), MongoJournalStore.from_settings())
    report = await coordinator.run(user_id, on_progress=_print_progress)
    return {"Entries needing work": report.total, "Embedded": report.processed, "Failed": report.failed}


async def _run_rescan(user_id: str) -> dict[str, int]:
    from pastself.src.core.mention_scanner import MentionScanner
    from pastself.src.database.document_store import MongoJournalStore

    report = await MentionScanner(MongoJournalStore.from_settings()).rescan(user_id)
    return {"Goals with mentions": report.goals_updated, "Habits completed": report.habits_updated, "Entries scanned": report.entries_scanned, "Failures": report.failures}


async def _run_ask(user_id: str, question: str) -> dict[str, int]:
    from pastself.src.core.composer import AnswerComposer
    from pastself.src.core.embedding_client import EmbeddingClient
    from pastself.src.core.errors import GenerationError
    from pastself.src.core.generation_client import GenerationClient
    from pastself.src.core.retriever import RelevanceRetriever
    from pastself.src.database.document_store import MongoJournalStore
    from pastself.src.utils.text_utils import strip_markdown

    retriever = RelevanceRetriever(EmbeddingClient.from_settings())
    composer = AnswerComposer(retriever, GenerationClient.from_settings())
    selected = await retriever.select_for_user(user_id, question, MongoJournalStore.from_settings())

    try:
        answer = await composer.answer_from(question, selected)
    except GenerationError as exc:
        print(f"\n  {exc.user_message}\n")
        return {"Context entries": len(selected), "Answered": 0}

    print()
    print(strip_markdown(answer.text))
    print()
    return {"Context entries": len(selected), "Answered": 1}


async def _run_streak(user_id: str, repository: JournalRepository | None = None, now: datetime | None = None) -> dict[str, int]:
    from pastself.config.settings import settings
    from pastself.src.core.streaks import habit_streak, journaling_streak
    from pastself.src.database.document_store import MongoJournalStore

    repo = repository or MongoJournalStore.from_settings()
    now = now or datetime.now(settings.timezone)
    entries, habits = await asyncio.gather(repo.list_entries(user_id), repo.list_habits(user_id))

    summary = journaling_streak([e.created_at for e in entries if e.created_at], now.date(), now.tzinfo)
    active = 0
    for habit in habits:
        streak = habit_streak(habit.completions, now.date(), now.tzinfo)
        if streak:
            active += 1
        print(f"  {habit.title:<30} {streak:>3} day(s)")

    return {"Entries": len(entries), "Current streak": summary.current, "Longest streak": summary.longest, "Habits on a streak": active}


def _print_progress(current: int, total: int) -> None:
    print(f"  [{current}/{total}]", end="\r", flush=True)


# ── Main Orchestration ─────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    t_start = time.perf_counter()

    # ── 0. Load settings + .env (timed) ────────────────────────────────
    t_settings = time.perf_counter()
    try:
        from pastself.config.settings import settings
    except Exception as exc:
        print("\nConfiguration error, check your .env file:\n")
        print(f"  {exc}")
        print()
        sys.exit(1)
    settings_ms = (time.perf_counter() - t_settings) * 1000

    from pastself.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Settings loaded in %.1fms", settings_ms)

    _print_header(settings, args.command, args.user)

    if args.command == "backfill":
        job = _run_backfill(args.user)
    elif args.command == "rescan":
        job = _run_rescan(args.user)
    elif args.command == "streak":
        job = _run_streak(args.user)
    else:
        job = _run_ask(args.user, args.question)

    try:
        summary = asyncio.run(job)
    except KeyboardInterrupt:
        logger.warning("Interrupted.")
        sys.exit(130)
    except Exception:
        logger.exception("'%s' failed.", args.command)
        sys.exit(1)

    _print_footer(summary, time.perf_counter() - t_start, settings_ms)


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_header(settings: object, command: str, user_id: str) -> None:
    api_key_val = settings.GOOGLE_API_KEY.get_secret_value()  # type: ignore[attr-defined]
    masked = f"****{api_key_val[-4:]}" if len(api_key_val) > 4 else "****"

    mongo_uri_val = settings.MONGO_URI.get_secret_value()  # type: ignore[attr-defined]
    mongo_masked = mongo_uri_val.split("@")[-1] if "@" in mongo_uri_val else mongo_uri_val

    print()
    print("=" * 60)
    print(f"  PASTSELF - {command}")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")                   # type: ignore[attr-defined]
    print(f"  User         : {user_id}")
    print(f"  Embedding    : {settings.EMBEDDING_MODEL}")       # type: ignore[attr-defined]
    print(f"  LLM          : {settings.LLM_MODEL}")             # type: ignore[attr-defined]
    print(f"  MongoDB      : {mongo_masked} (db: {settings.MONGO_DB_NAME})")  # type: ignore[attr-defined]
    print(f"  Timezone     : {settings.USER_TIMEZONE}")         # type: ignore[attr-defined]
    print(f"  API Key      : {masked}")
    print("=" * 60)
    print()


def _print_footer(summary: dict[str, int], elapsed: float, settings_ms: float) -> None:
    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    for label, value in summary.items():
        print(f"  {label:<21}: {value}")
    print("-" * 60)
    print(f"  Settings + .env load : {settings_ms:>8.1f}ms")
    print(f"  Total elapsed        : {elapsed:>8.2f}s")
    print("=" * 60)
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    main()
