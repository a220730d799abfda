"""
PastSelf - Emotion Classifier
==============================
Labels an entry with one emotion from a closed set by asking the model.
Best effort: any failure yields ``None`` and the entry is saved without
an emotion.
"""

from __future__ import annotations

import asyncio

from pastself.config.prompt_templates import DEFAULT_EMOTION, EMOTION_MAP, EMOTION_PROMPT_TEMPLATE
from pastself.config.settings import settings
from pastself.src.core.generation_client import ChatModel, response_text
from pastself.src.database.models import Emotion
from pastself.src.utils.logger import get_logger

logger = get_logger(__name__)


class EmotionClassifier:

    __slots__ = ("_llm", "_timeout")

    def __init__(self, llm: ChatModel, timeout: float | None = None) -> None:
        self._llm = llm
        self._timeout = settings.REQUEST_TIMEOUT_SECONDS if timeout is None else timeout


    @classmethod
    def from_settings(cls) -> EmotionClassifier:
        from langchain_google_genai import ChatGoogleGenerativeAI

        llm = ChatGoogleGenerativeAI(model=settings.LLM_MODEL, temperature=0.0, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
        return cls(llm)


    async def classify(self, text: str) -> Emotion | None:
        if not text or not text.strip():
            return None

        from langchain_core.messages import HumanMessage

        prompt = EMOTION_PROMPT_TEMPLATE.format(text=text)
        try:
            call = self._llm.ainvoke([HumanMessage(content=prompt)])
            response = await (asyncio.wait_for(call, self._timeout) if self._timeout else call)
        except Exception as exc:
            logger.warning("[EMOTION] Classification failed: %s", exc)
            return None

        label = response_text(response).strip().strip(".!\"'").lower()
        if label not in EMOTION_MAP:
            logger.debug("[EMOTION] Unexpected label '%s', using '%s'.", label, DEFAULT_EMOTION)
            label = DEFAULT_EMOTION
        return Emotion.from_label(label)
