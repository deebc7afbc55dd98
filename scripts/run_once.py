#!/usr/bin/env python3
"""
Run one reminder pass from the command line.

Usage:
    python scripts/run_once.py                       # evaluate + send
    python scripts/run_once.py --dry-run             # evaluate only, print reminders
    python scripts/run_once.py --dry-run --date 2026-12-31
    python scripts/run_once.py --test-connection     # webhook self-test
"""
import argparse
import asyncio
import os
import sys
from datetime import date

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


async def run(args: argparse.Namespace) -> int:
    from dotenv import load_dotenv
    load_dotenv()

    from config.settings import load_settings
    from core.orchestrator import create_runner
    from rules.loader import load_reminder_config

    settings = load_settings(args.config)
    runner = create_runner(settings)
    try:
        if args.test_connection:
            result = await runner.test_connection()
            print(f"Connection test: {'OK' if result['success'] else 'FAILED'}")
            if not result["success"]:
                print(f"  {result.get('error')}")
            return 0 if result["success"] else 1

        reference = date.fromisoformat(args.date) if args.date else None
        if args.dry_run:
            config = load_reminder_config(settings.reminders_path)
            evaluation = runner.evaluator.evaluate(config, reference)
            print(f"🗓️ {evaluation.date}: {len(evaluation.reminders)} reminder(s)")
            for i, text in enumerate(evaluation.reminders, start=1):
                print(f"  {i}. {text}")
            return 0

        result = await runner.run(trigger="cli", reference=reference)
        print(f"✓ {result.date}: {result.reminder_count} reminder(s) in {result.message_count} message(s)")
        return 0
    finally:
        await runner.close()


def main(argv: list[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Run one reminder pass")
    parser.add_argument("--config", help="settings YAML (default: config/settings.yaml)")
    parser.add_argument("--date", help="reference date YYYY-MM-DD (default: today in UTC+9)")
    parser.add_argument("--dry-run", action="store_true", help="evaluate without sending")
    parser.add_argument("--test-connection", action="store_true", help="send a webhook test message")
    args = parser.parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
