"""
PastSelf - Answer Composer
===========================
Builds the "talk to your past self" prompt and asks the model.

Prompt layout::

    <persona>

    Here are the most relevant entries from my journal:

    [2024-05-01] entry text

    [2024-05-03] entry text

    Question: <question>

    Answer as my past self, drawing from these journal entries:

The composer is stateless.  It returns the model's raw text, markdown
included; stripping it for display is the chat layer's job.  Generation
errors propagate unchanged because they are the only failures the user
is meant to see.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from pastself.config.prompt_templates import ASK_PROMPT_TEMPLATE, NO_ENTRIES_PLACEHOLDER, PERSONA_PROMPT, UNDATED_ENTRY_LABEL
from pastself.src.core.generation_client import GenerationClient
from pastself.src.core.retriever import RelevanceRetriever
from pastself.src.database.document_store import JournalRepository
from pastself.src.database.models import JournalEntry
from pastself.src.utils.logger import get_logger

logger = get_logger(__name__)

_TOKENS_PER_WORD = 1.33


@dataclass
class ComposedAnswer:
    """Raw model text plus the entries it was grounded on."""

    text: str
    entries: list[JournalEntry] = field(default_factory=list)


def format_entry(entry: JournalEntry) -> str:
    label = entry.created_at.date().isoformat() if entry.created_at else UNDATED_ENTRY_LABEL
    return f"[{label}] {entry.text}"


class AnswerComposer:
    """
    Parameters
    ----------
    retriever
        Chooses the context entries.
    generation_client
        Produces the answer, with overload retry.
    persona
        Instructional preamble.  Defaults to ``PERSONA_PROMPT``.
    """

    __slots__ = ("_retriever", "_generator", "_persona")

    def __init__(self, retriever: RelevanceRetriever, generation_client: GenerationClient, persona: str = PERSONA_PROMPT) -> None:
        self._retriever = retriever
        self._generator = generation_client
        self._persona = persona


    def build_prompt(self, question: str, entries: Sequence[JournalEntry]) -> str:
        """Persona, the entries as ``[date] text`` blocks in the given order, then the question."""
        entries_text = "\n\n".join(format_entry(e) for e in entries) or NO_ENTRIES_PLACEHOLDER
        return ASK_PROMPT_TEMPLATE.format(persona=self._persona, entries=entries_text, question=question)


    async def answer(self, question: str, entries: Sequence[JournalEntry]) -> ComposedAnswer:
        """
        Answer *question* from the user's journal.

        Raises
        ------
        GenerationError
            (or a subclass) when the model could not answer.
        """
        selected = await self._retriever.select(question, entries)
        return await self.answer_from(question, selected)


    async def answer_for_user(self, user_id: str, question: str, repository: JournalRepository) -> ComposedAnswer:
        """Fetch the user's corpus and embed the question concurrently, then answer.

        A failed corpus fetch answers from an empty context.
        """
        selected = await self._retriever.select_for_user(user_id, question, repository)
        return await self.answer_from(question, selected)


    async def answer_from(self, question: str, selected: Sequence[JournalEntry]) -> ComposedAnswer:
        """Compose and generate from an already-selected context."""
        prompt = self.build_prompt(question, selected)

        word_count = len(prompt.split())
        logger.info("[RAG] Context: %d entries, %d words (~%d tokens).", len(selected), word_count, math.ceil(word_count * _TOKENS_PER_WORD))

        text = await self._generator.generate(prompt)
        return ComposedAnswer(text=text, entries=list(selected))
