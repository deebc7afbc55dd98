"""
Configuration loader for the daily reminder system.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class WebhookConfig:
    url: str = ""
    username: str = "Daily Reminder Bot"
    footer: str = "Daily Reminder System"
    timeout_seconds: float = 10.0


@dataclass
class DispatchConfig:
    batch_size: int = 20                # max reminders per payload
    inter_message_delay: float = 1.0    # seconds between chunk sends
    max_retries: int = 3                # retries per payload after the first attempt
    backoff_base: float = 1.0           # base seconds for exponential retry backoff


@dataclass
class ScheduleConfig:
    enabled: bool = True
    run_at: str = "08:00"               # HH:MM in UTC+9


@dataclass
class Settings:
    app_name: str = "DailyReminder"
    version: str = "1.0.0"
    debug: bool = False
    reminders_path: str = "./reminders.yaml"
    manual_trigger_secret: str = ""
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values (unset → empty)."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        return os.environ.get(match.group(1), "")
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "REMINDER_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)
        settings.version = str(raw.get("version", settings.version))
        settings.debug = raw.get("debug", settings.debug)
        settings.reminders_path = raw.get("reminders_path") or settings.reminders_path
        settings.manual_trigger_secret = raw.get("manual_trigger_secret", settings.manual_trigger_secret)

        if "webhook" in raw:
            wh = raw["webhook"] or {}
            settings.webhook = WebhookConfig(
                url=wh.get("url", ""),
                username=wh.get("username", settings.webhook.username),
                footer=wh.get("footer", settings.webhook.footer),
                timeout_seconds=float(wh.get("timeout_seconds", settings.webhook.timeout_seconds)),
            )

        if "dispatch" in raw:
            d = raw["dispatch"] or {}
            settings.dispatch = DispatchConfig(
                batch_size=int(d.get("batch_size", 20)),
                inter_message_delay=float(d.get("inter_message_delay", 1.0)),
                max_retries=int(d.get("max_retries", 3)),
                backoff_base=float(d.get("backoff_base", 1.0)),
            )

        if "schedule" in raw:
            s = raw["schedule"] or {}
            settings.schedule = ScheduleConfig(
                enabled=bool(s.get("enabled", True)),
                run_at=str(s.get("run_at", settings.schedule.run_at)),
            )

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
