"""Tests for settings loading."""
from pathlib import Path

import pytest

from config import settings as settings_module
from config.settings import load_settings

SETTINGS_YAML = """
app_name: FamilyReminder
version: 2.1
reminders_path: ${TEST_REMINDERS_PATH}
manual_trigger_secret: ${TEST_TRIGGER_SECRET}
webhook:
  url: ${TEST_WEBHOOK_URL}
  username: 家族Bot
dispatch:
  batch_size: 10
  inter_message_delay: 0.5
schedule:
  enabled: false
  run_at: "07:30"
"""


@pytest.fixture(autouse=True)
def reset_cache():
    yield
    settings_module._settings = None


@pytest.fixture
def settings_file(tmp_path) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS_YAML, encoding="utf-8")
    return path


def test_loads_yaml_with_env(settings_file, monkeypatch):
    monkeypatch.setenv("TEST_REMINDERS_PATH", "/data/reminders.json")
    monkeypatch.setenv("TEST_TRIGGER_SECRET", "abc")
    monkeypatch.setenv("TEST_WEBHOOK_URL", "https://discord.test/hook")

    settings = load_settings(str(settings_file))

    assert settings.app_name == "FamilyReminder"
    assert settings.version == "2.1"
    assert settings.reminders_path == "/data/reminders.json"
    assert settings.manual_trigger_secret == "abc"
    assert settings.webhook.url == "https://discord.test/hook"
    assert settings.webhook.username == "家族Bot"
    assert settings.webhook.footer == "Daily Reminder System"
    assert settings.dispatch.batch_size == 10
    assert settings.dispatch.inter_message_delay == 0.5
    assert settings.dispatch.max_retries == 3
    assert settings.schedule.enabled is False
    assert settings.schedule.run_at == "07:30"


def test_unset_env_vars(settings_file, monkeypatch):
    for name in ("TEST_REMINDERS_PATH", "TEST_TRIGGER_SECRET", "TEST_WEBHOOK_URL"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings(str(settings_file))

    assert settings.reminders_path == "./reminders.yaml"
    assert settings.manual_trigger_secret == ""
    assert settings.webhook.url == ""


def test_missing_file_gives_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "absent.yaml"))
    assert settings.app_name == "DailyReminder"
    assert settings.dispatch.batch_size == 20
    assert settings.schedule.run_at == "08:00"


def test_path_from_environment(settings_file, monkeypatch):
    monkeypatch.setenv("REMINDER_CONFIG", str(settings_file))
    assert load_settings().app_name == "FamilyReminder"


def test_get_settings_is_cached(settings_file, monkeypatch):
    monkeypatch.setenv("REMINDER_CONFIG", str(settings_file))
    settings_module._settings = None
    first = settings_module.get_settings()
    assert settings_module.get_settings() is first


def test_bundled_defaults(monkeypatch):
    monkeypatch.delenv("REMINDER_CONFIG", raising=False)
    monkeypatch.setenv("DISCORD_WEBHOOK_URL", "https://discord.test/hook")
    settings = load_settings()
    assert settings.webhook.url == "https://discord.test/hook"
    assert settings.dispatch.inter_message_delay == 1.0
    assert settings.schedule.enabled is True
