"""
PastSelf - Centralized Configuration
=====================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr`` and has **no default value**.
  If the key is missing at startup, Pydantic raises a ``ValidationError``
  with a clear error message.  The raw value is never exposed in repr,
  logs, or tracebacks.
- ``MONGO_URI`` is also ``SecretStr``: connection strings contain
  credentials and must never leak into logs.

Retrieval & Generation
----------------------
``RAG_TOP_K`` / ``RAG_RECENT_COUNT`` / ``RAG_FALLBACK_COUNT`` shape the
context handed to the model.  ``GENERATION_MAX_ATTEMPTS`` and
``GENERATION_INITIAL_DELAY_SECONDS`` drive the overload backoff
(1s, 2s, ... doubling).  ``REQUEST_TIMEOUT_SECONDS`` bounds every
upstream call.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env lives beside the config/ and src/ packages
_PACKAGE_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required**; the app will refuse
    to start until they are provided.

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr
        API key for Google AI Studio (Gemini).  **Required.**
    MONGO_URI : SecretStr
        MongoDB connection string.  **Required.**  Never log raw value.
    MONGO_DB_NAME : str
        Database holding entries, goals, habits and chat sessions.
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    EMBEDDING_MODEL : str
        Model identifier passed to ``GoogleGenerativeAIEmbeddings``.
    EMBEDDING_DIM : int
        Expected embedding dimensionality.  Vectors of any other
        length are treated as a failed embedding.
    LLM_MODEL : str
        Model identifier for answer generation and emotion labelling.
    USER_TIMEZONE : str
        IANA zone used for calendar-day boundaries (goal scopes, habits).
    """

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── API Keys (REQUIRED, no default) ────────────────────────────────
    GOOGLE_API_KEY: SecretStr

    # ── MongoDB (REQUIRED, no default) ─────────────────────────────────
    MONGO_URI: SecretStr
    MONGO_DB_NAME: str = "pastself"

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "models/text-embedding-004"
    EMBEDDING_DIM: int = 768
    LLM_MODEL: str = "gemini-2.5-flash"
    LLM_TEMPERATURE: float = 0.7

    # ── Retrieval ──────────────────────────────────────────────────────
    RAG_TOP_K: int = 15
    RAG_RECENT_COUNT: int = 5
    RAG_FALLBACK_COUNT: int = 20

    # ── Resilience ─────────────────────────────────────────────────────
    GENERATION_MAX_ATTEMPTS: int = 3
    GENERATION_INITIAL_DELAY_SECONDS: float = 1.0
    BACKFILL_DELAY_SECONDS: float = 0.1
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # ── Calendar ───────────────────────────────────────────────────────
    USER_TIMEZONE: str = "UTC"

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("RAG_TOP_K", "RAG_RECENT_COUNT", "RAG_FALLBACK_COUNT", "EMBEDDING_DIM")
    @classmethod
    def _positive_count(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}")
        return v


    @field_validator("GENERATION_MAX_ATTEMPTS")
    @classmethod
    def _attempts_range(cls, v: int) -> int:
        if not 1 <= v <= 10:
            raise ValueError(f"GENERATION_MAX_ATTEMPTS must be 1-10, got {v}")
        return v


    @field_validator("GENERATION_INITIAL_DELAY_SECONDS", "BACKFILL_DELAY_SECONDS", "REQUEST_TIMEOUT_SECONDS")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"must be >= 0, got {v}")
        return v


    @field_validator("USER_TIMEZONE")
    @classmethod
    def _known_zone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown timezone '{v}'") from exc
        return v


    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.USER_TIMEZONE)

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=_PACKAGE_ROOT / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from pastself.config.settings import settings
settings = Settings()
