"""
PastSelf - Text Utilities
==========================
Stateless helpers for keyword extraction, crude stemming, goal/habit
mention matching and display cleanup of model output.

The stemmer is intentionally naive: the mention thresholds were tuned
against exactly this behaviour, so it must not be swapped for a real
stemmer.
"""

from __future__ import annotations

import math
import re

from pastself.config.prompt_templates import KEYWORD_MATCH_RATIO, KEYWORD_STOPWORDS, MIN_KEYWORD_LENGTH

_TITLE_SPLIT_RE = re.compile(r"[\s,]+")

# Applied once each, in this order, to the result of the previous step
_STEM_SUFFIXES: tuple[str, ...] = ("s", "es", "ed", "ing")


# ── Stemming & keywords ────────────────────────────────────────────────

def stem(text: str) -> str:
    """
    Strip trailing ``s``, then ``es``, then ``ed``, then ``ing``.

    Each suffix is removed at most once and only from the end of the
    whole string, so ``"exercising"`` → ``"exercis"`` and
    ``"pushes"`` → ``"pushe"``.
    """
    for suffix in _STEM_SUFFIXES:
        if text.endswith(suffix):
            text = text[: -len(suffix)]
    return text


def custom_keywords(raw: str | None) -> list[str]:
    """Comma-separated user keywords, trimmed and lowercased, ``len >= 3``."""
    if not raw:
        return []
    keywords = (part.strip() for part in raw.lower().split(","))
    return [kw for kw in keywords if len(kw) >= MIN_KEYWORD_LENGTH]


def title_keywords(title: str) -> list[str]:
    """Words of a goal/habit title worth matching on their own."""
    words = _TITLE_SPLIT_RE.split(title.lower())
    return [w for w in words if len(w) >= MIN_KEYWORD_LENGTH and w not in KEYWORD_STOPWORDS]


def keyword_threshold(keyword_count: int) -> int:
    """Minimum keyword hits: 40% of the keywords, rounded up, at least one."""
    return max(1, math.ceil(keyword_count * KEYWORD_MATCH_RATIO))


# ── Mention matching ───────────────────────────────────────────────────

def is_mentioned(text: str, title: str, keywords: str | None = None) -> bool:
    """
    Decide whether *text* references a goal or habit.

    Rules, first hit wins:
        a. the full lowercased title is a substring of the text;
        b. any custom keyword is a substring of the text;
        c. the stemmed text contains the stemmed title;
        d. enough title + custom keywords match verbatim or stemmed
           (see ``keyword_threshold``).
    """
    entry_lower = (text or "").lower()
    title_lower = (title or "").lower()
    customs = custom_keywords(keywords)

    if title_lower and title_lower in entry_lower:
        return True
    if any(kw in entry_lower for kw in customs):
        return True

    stemmed_entry = stem(entry_lower)
    stemmed_title = stem(title_lower)
    if stemmed_title and stemmed_title in stemmed_entry:
        return True

    all_keywords = title_keywords(title_lower) + customs
    if not all_keywords:
        return False

    hits = 0
    for keyword in all_keywords:
        stemmed_keyword = stem(keyword)
        if stemmed_keyword in stemmed_entry or keyword in entry_lower or stemmed_keyword in entry_lower:
            hits += 1
    return hits >= keyword_threshold(len(all_keywords))


# ── Display cleanup ────────────────────────────────────────────────────

_HEADING_RE = re.compile(r"#{1,6}\s+")
_INLINE_STAR_RE = re.compile(r"(?<=[^\n])\*(?!\*)")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+", re.MULTILINE)
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def strip_markdown(text: str | None) -> str:
    """
    Remove the model's native markdown for plain-text display.

    Headings and bold markers are dropped, list markers become ``•``
    bullets, stray asterisks are removed and runs of blank lines are
    collapsed.
    """
    if not text:
        return ""
    text = _HEADING_RE.sub("", text)
    text = text.replace("**", "").replace("__", "")
    text = _INLINE_STAR_RE.sub("", text)
    text = _BULLET_RE.sub("• ", text)
    text = text.replace("*", "")
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()
