"""Test Settings loading from TOML, env vars and overrides."""

import pytest

from trade_ledger.core.config import Settings, load_settings
from trade_ledger.core.enums import SortDirection, SortKey
from trade_ledger.core.errors import ConfigError


class TestDefaults:
    def test_review_defaults(self):
        settings = Settings()
        assert settings.review.audit_reminders_enabled is True
        assert settings.review.milestone_frequency == 10
        assert settings.review.streak_threshold == 3
        assert settings.review.dismiss_window == 10

    def test_view_defaults(self):
        settings = Settings()
        assert settings.view.page_size == 20
        assert settings.view.sort_key == SortKey.ID
        assert settings.view.sort_direction == SortDirection.DESCENDING


class TestLoadSettings:
    def test_toml_file(self, tmp_path):
        path = tmp_path / "ledger.toml"
        path.write_text('[view]\npage_size = 50\n\n[storage]\npath = "x.json"\n')
        settings = load_settings(path)
        assert settings.view.page_size == 50
        assert settings.storage.path == "x.json"

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_settings(tmp_path / "absent.toml").view.page_size == 20

    def test_malformed_toml_raises(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[view\npage_size = ")
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_overrides_merge_sections(self, tmp_path):
        path = tmp_path / "ledger.toml"
        path.write_text("[review]\nstreak_threshold = 5\n")
        settings = load_settings(path, overrides={"review": {"dismiss_window": 4}})
        assert settings.review.streak_threshold == 5
        assert settings.review.dismiss_window == 4

    def test_env_nested_override(self, monkeypatch):
        monkeypatch.setenv("TRADE_LEDGER_REVIEW__MILESTONE_FREQUENCY", "25")
        assert load_settings().review.milestone_frequency == 25

    def test_invalid_value_rejected(self):
        with pytest.raises(ValueError):
            load_settings(overrides={"view": {"page_size": 0}})
