"""Tests for the shared logger factory."""

import logging

from pastself.src.utils.logger import ROOT_LOGGER_NAME, get_logger


class TestGetLogger:
    """Tests for get_logger."""

    def test_package_modules_share_one_handler(self):
        a = get_logger("pastself.src.core.retriever")
        b = get_logger("pastself.src.core.composer")
        root = logging.getLogger(ROOT_LOGGER_NAME)

        assert len(root.handlers) == 1
        assert a.handlers == [] and b.handlers == []
        assert a.propagate and b.propagate
        assert not root.propagate

    def test_outside_names_are_rerooted(self):
        assert get_logger("__main__").name == "pastself.__main__"

    def test_repeated_calls_do_not_add_handlers(self):
        get_logger("pastself.scripts.manage")
        get_logger("pastself.scripts.manage")
        assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1

    def test_dev_level_inherited(self):
        """Tests run with ENV=dev, so module loggers see DEBUG."""
        assert get_logger("pastself.src.core.backfill").getEffectiveLevel() == logging.DEBUG

    def test_explicit_level(self):
        logger = get_logger("pastself.tests.quiet", level=logging.ERROR)
        assert logger.level == logging.ERROR
