"""
Core data models for the daily reminder system.
These are the universal types shared across all modules.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ──────────────────────────────────────────────────────────────
#  Enums
# ──────────────────────────────────────────────────────────────

class RuleKind(str, Enum):
    COUNTDOWN = "countdown"
    YEARLY = "yearly"
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    SPECIFIC_WEEK = "specific_week"
    LAST_WEEK = "last_week"


class ColorTag(str, Enum):
    NORMAL = "normal"
    EMPTY = "empty"
    ERROR = "error"
    SUCCESS = "success"


COLOR_VALUES: dict[ColorTag, int] = {
    ColorTag.NORMAL: 0x5865F2,
    ColorTag.EMPTY: 0x808080,
    ColorTag.ERROR: 0xFF0000,
    ColorTag.SUCCESS: 0x00FF00,
}

Weekday = Annotated[int, Field(ge=0, le=6)]   # 0 = Sunday .. 6 = Saturday


# ──────────────────────────────────────────────────────────────
#  Rules — one record per reminder definition
# ──────────────────────────────────────────────────────────────

class BaseRule(BaseModel):
    """Fields shared by every rule kind."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    message: Optional[str] = None           # custom text, overrides the default template
    enabled: bool = True                    # absent behaves like true

    @property
    def is_active(self) -> bool:
        return self.enabled


class CountdownRule(BaseRule):
    kind: Literal["countdown"] = "countdown"
    target_date: date = Field(alias="targetDate")


class YearlyRule(BaseRule):
    kind: Literal["yearly"] = "yearly"
    month: int = Field(ge=1, le=12)
    day: int = Field(ge=1, le=31)


class MonthlyRule(BaseRule):
    kind: Literal["monthly"] = "monthly"
    day: int = Field(ge=1, le=31)           # clamped to the month's last day


class WeeklyRule(BaseRule):
    kind: Literal["weekly"] = "weekly"
    day_of_week: list[Weekday] = Field(alias="dayOfWeek", min_length=1)


class SpecificWeekRule(BaseRule):
    kind: Literal["specific_week"] = "specific_week"
    day_of_week: Weekday = Field(alias="dayOfWeek")
    week: int = Field(ge=1)                 # 1-based occurrence within the month


class LastWeekRule(BaseRule):
    kind: Literal["last_week"] = "last_week"
    day_of_week: Weekday = Field(alias="dayOfWeek")


ReminderRule = Annotated[
    Union[CountdownRule, YearlyRule, MonthlyRule, WeeklyRule, SpecificWeekRule, LastWeekRule],
    Field(discriminator="kind"),
]


# Collection key in the config file → rule kind → model.
# Order here is the global evaluation order.
RULE_COLLECTIONS: tuple[tuple[str, RuleKind, type[BaseRule]], ...] = (
    ("countdowns", RuleKind.COUNTDOWN, CountdownRule),
    ("yearlyTasks", RuleKind.YEARLY, YearlyRule),
    ("monthlyTasks", RuleKind.MONTHLY, MonthlyRule),
    ("weeklyTasks", RuleKind.WEEKLY, WeeklyRule),
    ("specificWeekTasks", RuleKind.SPECIFIC_WEEK, SpecificWeekRule),
    ("lastWeekTasks", RuleKind.LAST_WEEK, LastWeekRule),
)


# ──────────────────────────────────────────────────────────────
#  ReminderConfig — the six rule collections for one pass
# ──────────────────────────────────────────────────────────────

class ReminderConfig(BaseModel):
    """
    Decoded reminder configuration.

    Built once per pass and discarded afterwards. Use `from_raw` to decode
    an untrusted mapping; malformed collections degrade to empty ones.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    countdowns: list[CountdownRule] = []
    yearly_tasks: list[YearlyRule] = Field(default=[], alias="yearlyTasks")
    monthly_tasks: list[MonthlyRule] = Field(default=[], alias="monthlyTasks")
    weekly_tasks: list[WeeklyRule] = Field(default=[], alias="weeklyTasks")
    specific_week_tasks: list[SpecificWeekRule] = Field(default=[], alias="specificWeekTasks")
    last_week_tasks: list[LastWeekRule] = Field(default=[], alias="lastWeekTasks")

    @classmethod
    def from_raw(cls, raw: Any) -> "ReminderConfig":
        from rules.loader import decode_config
        return decode_config(raw)

    def collection(self, key: str) -> list[BaseRule]:
        """Return a collection by its config-file key (e.g. 'weeklyTasks')."""
        for name, info in type(self).model_fields.items():
            if key in (name, info.alias):
                return getattr(self, name)
        raise KeyError(key)

    def rules(self) -> list[ReminderRule]:
        """All rules in global evaluation order."""
        ordered: list[ReminderRule] = []
        for key, _kind, _model in RULE_COLLECTIONS:
            ordered.extend(self.collection(key))
        return ordered

    def summary(self) -> dict[str, int]:
        return {key: len(self.collection(key)) for key, _kind, _model in RULE_COLLECTIONS}


# ──────────────────────────────────────────────────────────────
#  Evaluation output
# ──────────────────────────────────────────────────────────────

class EvaluationResult(BaseModel):
    date: str                                 # YYYY/MM/DD in UTC+9
    reminders: list[str] = []


# ──────────────────────────────────────────────────────────────
#  Notification payloads
# ──────────────────────────────────────────────────────────────

class PayloadField(BaseModel):
    label: str
    text: str


class NotificationPayload(BaseModel):
    """One outbound webhook call. Either `entries` or `description` is set."""
    title: str
    entries: list[PayloadField] = []
    description: Optional[str] = None
    color_tag: ColorTag = ColorTag.NORMAL
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_embed(self, footer: str = "") -> dict[str, Any]:
        embed: dict[str, Any] = {
            "title": self.title,
            "color": COLOR_VALUES[self.color_tag],
            "timestamp": self.timestamp.isoformat(),
        }
        if footer:
            embed["footer"] = {"text": footer}
        if self.entries:
            embed["fields"] = [
                {"name": f.label, "value": f.text, "inline": False}
                for f in self.entries
            ]
        elif self.description is not None:
            embed["description"] = self.description
        return embed


class DispatchResult(BaseModel):
    success: bool = True
    message_count: int = 0


class RunResult(BaseModel):
    success: bool
    date: str
    reminder_count: int
    message_count: int
    trigger: str = "manual"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
