#!/usr/bin/env python3
"""
Reminder File Validation — check a reminders file before deploying it.

Every collection and record is validated strictly: problems the runtime
would silently skip are reported here and the exit code is non-zero.

Usage:
    python scripts/validate_config.py                   # path from settings
    python scripts/validate_config.py reminders.yaml
"""
import argparse
import os
import sys

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pydantic import ValidationError

from models.schemas import RULE_COLLECTIONS

LABELS = {
    "countdowns": "カウントダウン",
    "yearlyTasks": "年次タスク",
    "monthlyTasks": "月次タスク",
    "weeklyTasks": "週次タスク",
    "specificWeekTasks": "特定週タスク",
    "lastWeekTasks": "最終週タスク",
}


def validate(raw: dict) -> tuple[list[str], dict[str, int]]:
    """Return (problems, per-collection counts of valid records)."""
    problems: list[str] = []
    counts: dict[str, int] = {}

    known = {key for key, _kind, _model in RULE_COLLECTIONS}
    for key in raw:
        if key not in known:
            problems.append(f"{key}: unknown collection")

    for key, _kind, model in RULE_COLLECTIONS:
        items = raw.get(key)
        counts[key] = 0
        if items is None:
            continue
        if not isinstance(items, list):
            problems.append(f"{key}: expected a list, got {type(items).__name__}")
            continue
        for index, item in enumerate(items):
            try:
                model.model_validate(item)
                counts[key] += 1
            except ValidationError as e:
                for err in e.errors():
                    loc = ".".join(str(p) for p in err["loc"]) or "record"
                    problems.append(f"{key}[{index}].{loc}: {err['msg']}")
    return problems, counts


def main(argv: list[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate a reminders file")
    parser.add_argument("path", nargs="?", help="reminders file (YAML or JSON)")
    args = parser.parse_args(argv)

    from config.settings import get_settings
    from rules.loader import ConfigLoadError, read_config_file

    path = args.path or get_settings().reminders_path
    print(f"📋 Validating {path}")

    try:
        raw = read_config_file(path)
    except ConfigLoadError as e:
        print(f"❌ {e}")
        return 1

    problems, counts = validate(raw)

    print("\nSummary:")
    for key, _kind, _model in RULE_COLLECTIONS:
        print(f"  - {LABELS[key]} ({key}): {counts[key]}")

    if problems:
        print(f"\n❌ {len(problems)} problem(s) found:")
        for p in problems:
            print(f"  - {p}")
        return 1

    print("\n🎉 Reminders file is valid")
    return 0


if __name__ == "__main__":
    sys.exit(main())
