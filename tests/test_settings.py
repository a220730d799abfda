"""Tests for settings loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

import pastself.config.settings as settings_module
from pastself.config.settings import Settings


class TestSettings:
    """Tests for the Settings model."""

    def test_env_file_is_package_root(self):
        expected = Path(settings_module.__file__).resolve().parent.parent / ".env"
        assert Settings.model_config["env_file"] == expected

    def test_only_configurable_fields(self):
        assert "BASE_DIR" not in Settings.model_fields

    def test_defaults(self):
        s = Settings(_env_file=None)
        assert (s.RAG_TOP_K, s.RAG_RECENT_COUNT, s.RAG_FALLBACK_COUNT) == (15, 5, 20)
        assert s.timezone.key == "UTC"

    @pytest.mark.parametrize("field, value", [("RAG_TOP_K", 0), ("GENERATION_MAX_ATTEMPTS", 11), ("BACKFILL_DELAY_SECONDS", -1), ("USER_TIMEZONE", "Mars/Olympus")])
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})
