"""
Reminder config loader — decodes the six rule collections.

The reminders file (YAML or JSON) is read fresh on every pass. Decoding
is defensive: a missing or malformed collection becomes an empty one and
an invalid record is dropped, each logged as a ConfigDefect. Nothing is
filled in for a record that fails validation.
"""
from __future__ import annotations

import json
import structlog
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import ValidationError

from models.schemas import RULE_COLLECTIONS, BaseRule, ReminderConfig

logger = structlog.get_logger()


class ConfigDefect(ValueError):
    """A rule collection or record that cannot be decoded. Recovered locally."""

    def __init__(self, collection: str, reason: str, index: int | None = None):
        self.collection = collection
        self.index = index
        self.reason = reason
        where = collection if index is None else f"{collection}[{index}]"
        super().__init__(f"{where}: {reason}")


class ConfigLoadError(Exception):
    """The reminders file itself is missing or unreadable. Fatal for the pass."""


def decode_collection(key: str, model: type[BaseRule], raw: Any) -> list[BaseRule]:
    """
    Decode one collection. Raises ConfigDefect if the collection as a whole
    is unusable; invalid records are skipped.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigDefect(key, f"expected a list, got {type(raw).__name__}")

    rules: list[BaseRule] = []
    for index, item in enumerate(raw):
        try:
            if not isinstance(item, dict):
                raise ConfigDefect(key, f"expected a mapping, got {type(item).__name__}", index)
            rules.append(model.model_validate(item))
        except ValidationError as e:
            defect = ConfigDefect(key, _first_error(e), index)
            logger.warning("rule_record_invalid", collection=key, index=index, error=defect.reason)
        except ConfigDefect as defect:
            logger.warning("rule_record_invalid", collection=key, index=index, error=defect.reason)
    return rules


def decode_config(raw: Any) -> ReminderConfig:
    """Decode an untrusted mapping into a ReminderConfig. Never raises."""
    if isinstance(raw, ReminderConfig):
        return raw
    if not isinstance(raw, dict):
        logger.warning("reminder_config_malformed", got=type(raw).__name__)
        raw = {}

    collections: dict[str, list[BaseRule]] = {}
    for key, _kind, model in RULE_COLLECTIONS:
        try:
            collections[key] = decode_collection(key, model, raw.get(key))
        except ConfigDefect as defect:
            logger.warning("rule_collection_malformed", collection=key, error=defect.reason)
            collections[key] = []

    return ReminderConfig.model_validate(collections)


def read_config_file(path: Union[str, Path]) -> dict[str, Any]:
    """Parse a YAML or JSON reminders file into a plain mapping."""
    path = Path(path)
    if not path.exists():
        raise ConfigLoadError(f"reminders file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigLoadError(f"failed to read reminders file {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigLoadError(f"reminders file {path} must contain a mapping at the top level")
    return raw


def load_reminder_config(path: Union[str, Path]) -> ReminderConfig:
    """Read and decode the reminders file."""
    config = decode_config(read_config_file(path))
    logger.info("reminder_config_loaded", path=str(path), **config.summary())
    return config


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    loc = ".".join(str(p) for p in first.get("loc", ())) or "record"
    return f"{loc}: {first.get('msg', 'invalid')}"
