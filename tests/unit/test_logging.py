"""Tests for structured logging setup."""

import json
import logging

import pytest

from trade_ledger.observability.logger import get_logger, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler.get_name() == "trade_ledger":
            root.removeHandler(handler)
    root.setLevel(level)


def _our_handlers():
    return [h for h in logging.getLogger().handlers if h.get_name() == "trade_ledger"]


class TestSetupLogging:
    def test_stdlib_records_render_as_json(self, capsys):
        setup_logging("INFO", "json")
        logging.getLogger("trade_ledger.ledger.book").info("Imported %d trades", 3)
        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "Imported 3 trades"
        assert entry["level"] == "info"
        assert entry["component"] == "ledger"

    def test_level_filters(self, capsys):
        setup_logging("WARNING", "json")
        logging.getLogger("trade_ledger.storage.kv").info("quiet")
        assert "quiet" not in capsys.readouterr().err

    def test_repeat_calls_keep_one_handler(self):
        setup_logging("INFO", "console")
        setup_logging("DEBUG", "console")
        assert len(_our_handlers()) == 1
        assert logging.getLogger().level == logging.DEBUG

    def test_get_logger_is_bound(self):
        setup_logging("INFO", "json")
        assert hasattr(get_logger("trade_ledger.cli"), "bind")
