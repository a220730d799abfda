"""
PastSelf - Exceptions
======================
Only generation failures are allowed to reach the end user; every other
failure in the core is absorbed and logged.  Each generation error
carries a ``user_message`` that the chat layer shows verbatim.
"""

from __future__ import annotations

from pastself.config.prompt_templates import GENERIC_FAILURE_MESSAGE, OVERLOADED_MESSAGE, QUOTA_MESSAGE


class PastSelfError(Exception):
    """Base class for all PastSelf errors."""


class GenerationError(PastSelfError):
    """The generative model did not produce an answer."""

    user_message: str = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: str = "", attempts: int = 1) -> None:
        super().__init__(message or self.user_message)
        self.attempts = attempts


class GenerationOverloadedError(GenerationError):
    """The upstream model stayed overloaded for the whole retry budget."""

    user_message = OVERLOADED_MESSAGE


class GenerationQuotaError(GenerationError):
    """Quota or rate limit exhausted; never retried."""

    user_message = QUOTA_MESSAGE
