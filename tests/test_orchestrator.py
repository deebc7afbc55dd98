"""Tests for the reminder run orchestration."""
import asyncio
from datetime import date

import httpx
import pytest

from channels.base import DeliveryError
from config.settings import DispatchConfig, Settings, WebhookConfig
from conftest import FakeEndpoint
from core.orchestrator import ReminderRunner, create_runner, originated_from_channel
from models.schemas import COLOR_VALUES, ColorTag, DispatchResult
from rules.engine import ReminderEvaluator
from rules.loader import ConfigDefect, ConfigLoadError
from utils.clock import FixedClock


@pytest.fixture
def make_runner(make_notifier, monday):
    def _make(endpoint: FakeEndpoint, config_source) -> ReminderRunner:
        return ReminderRunner(
            config_source,
            ReminderEvaluator(clock=FixedClock(monday)),
            make_notifier(endpoint),
        )
    return _make


def missing_file():
    raise ConfigLoadError("reminders file not found: /nowhere.yaml")


class TestReminderRunner:
    @pytest.mark.asyncio
    async def test_successful_run(self, make_runner, endpoint, sample_config):
        runner = make_runner(endpoint, lambda: sample_config)

        result = await runner.run(trigger="scheduled")

        assert result.success is True
        assert result.date == "2026/10/26"
        assert result.reminder_count == 7
        assert result.message_count == 1
        assert result.trigger == "scheduled"
        assert len(endpoint.embeds[0]["fields"]) == 7

    @pytest.mark.asyncio
    async def test_reference_date_override(self, make_runner, endpoint, sample_config):
        runner = make_runner(endpoint, lambda: sample_config)

        result = await runner.run(reference=date(2026, 10, 20))

        assert result.date == "2026/10/20"
        assert result.reminder_count == 1

    @pytest.mark.asyncio
    async def test_config_is_read_every_run(self, make_runner, endpoint, sample_config):
        calls = []

        def source():
            calls.append(1)
            return sample_config

        runner = make_runner(endpoint, source)
        await runner.run()
        await runner.run()
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_dry_run_sends_nothing(self, make_runner, endpoint, sample_config):
        runner = make_runner(endpoint, lambda: sample_config)

        result = await runner.run(dry_run=True)

        assert result.reminder_count == 7
        assert result.message_count == 0
        assert endpoint.requests == []

    @pytest.mark.asyncio
    async def test_empty_day_still_notifies(self, make_runner, endpoint):
        runner = make_runner(endpoint, lambda: {})

        result = await runner.run()

        assert result.reminder_count == 0
        assert result.message_count == 1
        assert endpoint.embeds[0]["color"] == COLOR_VALUES[ColorTag.EMPTY]

    @pytest.mark.asyncio
    async def test_config_failure_sends_alert_and_reraises(self, make_runner, endpoint):
        runner = make_runner(endpoint, missing_file)

        with pytest.raises(ConfigLoadError):
            await runner.run()

        assert len(endpoint.requests) == 1
        alert = endpoint.embeds[0]
        assert alert["color"] == COLOR_VALUES[ColorTag.ERROR]
        assert "reminders file not found" in alert["description"]

    @pytest.mark.asyncio
    async def test_delivery_failure_sends_no_alert(self, make_runner, sample_config):
        endpoint = FakeEndpoint([httpx.Response(404, json={"code": 10015})])
        runner = make_runner(endpoint, lambda: sample_config)

        with pytest.raises(DeliveryError):
            await runner.run()

        # only the failed notification; no alert to the same webhook
        assert len(endpoint.requests) == 1

    @pytest.mark.asyncio
    async def test_malformed_webhook_url_sends_no_alert(self, make_notifier, endpoint, sample_config, monday):
        runner = ReminderRunner(
            lambda: sample_config,
            ReminderEvaluator(clock=FixedClock(monday)),
            make_notifier(endpoint, url="http://[::1"),
        )

        with pytest.raises(DeliveryError):
            await runner.run()

        assert endpoint.requests == []
        assert runner.notifier.client.metrics.messages_failed == 1

    @pytest.mark.asyncio
    async def test_alert_failure_is_swallowed(self, make_runner):
        endpoint = FakeEndpoint([httpx.Response(500) for _ in range(4)])
        runner = make_runner(endpoint, missing_file)

        with pytest.raises(ConfigLoadError):
            await runner.run()

        assert len(endpoint.requests) == 4

    @pytest.mark.asyncio
    async def test_dry_run_failure_sends_no_alert(self, make_runner, endpoint):
        runner = make_runner(endpoint, missing_file)

        with pytest.raises(ConfigLoadError):
            await runner.run(dry_run=True)

        assert endpoint.requests == []

    @pytest.mark.asyncio
    async def test_test_connection(self, make_runner, endpoint, sample_config):
        runner = make_runner(endpoint, lambda: sample_config)
        assert await runner.test_connection() == {"success": True}


def test_originated_from_channel():
    assert originated_from_channel(DeliveryError("x", "webhook")) is True
    assert originated_from_channel(ConfigLoadError("x")) is False
    assert originated_from_channel(ConfigDefect("weeklyTasks", "bad")) is False


class TestCreateRunner:
    @pytest.mark.asyncio
    async def test_wires_settings(self, tmp_path, make_client, endpoint, monday):
        reminders = tmp_path / "reminders.yaml"
        reminders.write_text(
            "weeklyTasks:\n  - name: ゴミ\n    dayOfWeek: [1]\n",
            encoding="utf-8",
        )
        settings = Settings(
            reminders_path=str(reminders),
            webhook=WebhookConfig(url="https://discord.test/hook", username="家族Bot"),
            dispatch=DispatchConfig(batch_size=5),
        )

        runner = create_runner(settings, clock=FixedClock(monday), client=make_client(endpoint))
        result = await runner.run()

        assert result.reminder_count == 1
        assert runner.notifier.batch_size == 5
        assert endpoint.bodies[0]["username"] == "家族Bot"
        assert endpoint.embeds[0]["fields"][0]["value"] == "今日はゴミの日です"
        await runner.close()

    def test_builds_client_from_settings(self):
        settings = Settings(
            webhook=WebhookConfig(url="https://discord.test/hook", timeout_seconds=5),
            dispatch=DispatchConfig(max_retries=1),
        )
        runner = create_runner(settings, config_source=lambda: {})
        assert runner.notifier.client.url == "https://discord.test/hook"
        assert runner.notifier.client.timeout == 5
        assert runner.notifier.client.max_retries == 1


class RecordingNotifier:
    """Notifier stand-in that yields mid-send so overlapping passes would interleave."""

    def __init__(self):
        self.events: list[str] = []

    async def send_notification(self, date_label, reminders):
        self.events.append(f"start {date_label}")
        for _ in range(3):
            await asyncio.sleep(0)
        self.events.append(f"end {date_label}")
        return DispatchResult(message_count=1)


@pytest.mark.asyncio
async def test_concurrent_runs_are_serialized(sample_config, monday):
    notifier = RecordingNotifier()
    runner = ReminderRunner(lambda: sample_config, ReminderEvaluator(clock=FixedClock(monday)), notifier)

    results = await asyncio.gather(
        runner.run(trigger="scheduled"),
        runner.run(trigger="manual", reference=date(2026, 10, 20)),
    )

    assert [r.trigger for r in results] == ["scheduled", "manual"]
    assert notifier.events == [
        "start 2026/10/26", "end 2026/10/26",
        "start 2026/10/20", "end 2026/10/20",
    ]
