"""
Rules Engine — Evaluates reminder rules against a reference date.

Each rule kind has one evaluator in a kind → evaluator table. An
evaluator returns the reminder text when its rule fires on the given
day, or None. Rules are processed collection by collection in the fixed
global order (countdown, yearly, monthly, weekly, specific week, last
week) and keep their order within a collection.
"""
from __future__ import annotations

import structlog
from datetime import date
from typing import Any, Callable, Optional, Union

from models.schemas import (
    BaseRule, CountdownRule, EvaluationResult, LastWeekRule, MonthlyRule,
    ReminderConfig, ReminderRule, RuleKind, SpecificWeekRule, WeeklyRule, YearlyRule,
)
from rules.loader import decode_config
from utils.clock import Clock, SystemClock, reference_date, to_local_date
from utils.dates import (
    clamp_day, days_until, format_date, last_weekday, nth_weekday, sunday_weekday,
)

logger = structlog.get_logger()

RuleEvaluator = Callable[[ReminderRule, date], Optional[str]]


# ──────────────────────────────────────────────────────────────
#  Default messages
# ──────────────────────────────────────────────────────────────

def countdown_message(rule: CountdownRule, days: int) -> str:
    if rule.message:
        return rule.message.replace("{days}", str(days))
    if days == 0:
        return f"本日が{rule.name}です！"
    return f"{rule.name}まであと{days}日です"


def day_message(rule: BaseRule) -> str:
    return rule.message or f"今日は{rule.name}の日です"


# ──────────────────────────────────────────────────────────────
#  Per-kind evaluators
# ──────────────────────────────────────────────────────────────

def evaluate_countdown(rule: CountdownRule, today: date) -> Optional[str]:
    days = days_until(today, rule.target_date)
    if days < 0:
        return None
    return countdown_message(rule, days)


def evaluate_yearly(rule: YearlyRule, today: date) -> Optional[str]:
    if today.month != rule.month or today.day != rule.day:
        return None
    return rule.message or f"今日は{rule.name}です"


def evaluate_monthly(rule: MonthlyRule, today: date) -> Optional[str]:
    if today.day != clamp_day(today.year, today.month, rule.day):
        return None
    return day_message(rule)


def evaluate_weekly(rule: WeeklyRule, today: date) -> Optional[str]:
    if sunday_weekday(today) not in rule.day_of_week:
        return None
    return day_message(rule)


def evaluate_specific_week(rule: SpecificWeekRule, today: date) -> Optional[str]:
    if sunday_weekday(today) != rule.day_of_week:
        return None
    # A missing occurrence (e.g. a 5th Monday) falls back to the month's last one.
    target = nth_weekday(today.year, today.month, rule.day_of_week, rule.week)
    if target is None:
        target = last_weekday(today.year, today.month, rule.day_of_week)
    if today != target:
        return None
    return day_message(rule)


def evaluate_last_week(rule: LastWeekRule, today: date) -> Optional[str]:
    if today != last_weekday(today.year, today.month, rule.day_of_week):
        return None
    return day_message(rule)


EVALUATORS: dict[RuleKind, RuleEvaluator] = {
    RuleKind.COUNTDOWN: evaluate_countdown,
    RuleKind.YEARLY: evaluate_yearly,
    RuleKind.MONTHLY: evaluate_monthly,
    RuleKind.WEEKLY: evaluate_weekly,
    RuleKind.SPECIFIC_WEEK: evaluate_specific_week,
    RuleKind.LAST_WEEK: evaluate_last_week,
}


# ──────────────────────────────────────────────────────────────
#  Reminder Evaluator
# ──────────────────────────────────────────────────────────────

class ReminderEvaluator:
    """
    Turns a reminder config into today's reminder strings.

    Pure with respect to (config, reference date); the clock is only read
    when no reference date is passed.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        evaluators: Optional[dict[RuleKind, RuleEvaluator]] = None,
    ):
        self.clock = clock or SystemClock()
        self._evaluators = dict(evaluators if evaluators is not None else EVALUATORS)
        missing = set(RuleKind) - set(self._evaluators)
        if missing:
            raise RuntimeError(f"no evaluator for rule kinds: {sorted(k.value for k in missing)}")

    def today(self) -> date:
        return reference_date(self.clock)

    def evaluate_rule(self, rule: ReminderRule, today: date) -> Optional[str]:
        if not rule.is_active:
            return None
        return self._evaluators[RuleKind(rule.kind)](rule, today)

    def evaluate(
        self,
        config: Union[ReminderConfig, dict[str, Any]],
        reference: Optional[date] = None,
    ) -> EvaluationResult:
        """
        Evaluate every rule for the reference date (today in UTC+9 by default).
        A datetime reference is truncated to its UTC+9 calendar day.
        """
        config = decode_config(config)
        today = to_local_date(reference) if reference is not None else self.today()

        reminders: list[str] = []
        for rule in config.rules():
            message = self.evaluate_rule(rule, today)
            if message is not None:
                reminders.append(message)

        logger.info(
            "reminders_evaluated",
            date=format_date(today),
            rules=len(config.rules()),
            reminders=len(reminders),
        )
        return EvaluationResult(date=format_date(today), reminders=reminders)
