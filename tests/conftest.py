"""Shared test fixtures for the daily reminder system."""
import json
from datetime import date
from typing import Any

import httpx
import pytest

from channels.notifier import ReminderNotifier
from channels.webhook import WebhookClient
from models.schemas import ReminderConfig

WEBHOOK_URL = "https://discord.test/api/webhooks/123/token"


class SleepRecorder:
    """Stands in for asyncio.sleep; records requested waits without waiting."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeEndpoint:
    """Scripted webhook endpoint for httpx.MockTransport. Replies 204 once the script runs out."""

    def __init__(self, responses: list[Any] = None):
        self.responses = list(responses or [])
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.responses.pop(0) if self.responses else httpx.Response(204)
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def embeds(self) -> list[dict[str, Any]]:
        return [b["embeds"][0] for b in self.bodies]


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def endpoint() -> FakeEndpoint:
    return FakeEndpoint()


@pytest.fixture
def make_client(sleeps):
    def _make(endpoint: FakeEndpoint, **kwargs) -> WebhookClient:
        return WebhookClient(
            url=kwargs.pop("url", WEBHOOK_URL),
            transport=httpx.MockTransport(endpoint),
            sleep=sleeps,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_notifier(make_client, sleeps):
    def _make(endpoint: FakeEndpoint, url: str = WEBHOOK_URL, **kwargs) -> ReminderNotifier:
        return ReminderNotifier(make_client(endpoint, url=url), sleep=sleeps, **kwargs)
    return _make


@pytest.fixture
def sample_config() -> ReminderConfig:
    """Every rule fires on Monday 2026-10-26 (last Monday of the month)."""
    return ReminderConfig.from_raw({
        "countdowns": [
            {"name": "締切", "targetDate": "2026-10-26"},
            {"name": "旅行", "targetDate": "2026-11-01"},
            {"name": "過去イベント", "targetDate": "2026-10-01"},
        ],
        "yearlyTasks": [{"name": "創立記念日", "month": 10, "day": 26}],
        "monthlyTasks": [{"name": "家賃振込", "day": 26}],
        "weeklyTasks": [{"name": "燃えるゴミ", "dayOfWeek": [1, 4]}],
        "specificWeekTasks": [{"name": "定例会", "dayOfWeek": 1, "week": 4}],
        "lastWeekTasks": [{"name": "月末レビュー", "dayOfWeek": 1}],
    })


@pytest.fixture
def monday() -> date:
    return date(2026, 10, 26)
