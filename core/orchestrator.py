"""
Orchestrator — runs one reminder pass.

Flow (timer tick or manual trigger):
    load reminders file → ReminderEvaluator → ReminderNotifier
    → RunResult

Failures are reported through the same webhook as a system-error alert,
except failures that came from the notification channel itself: those
are only logged, so a broken webhook never triggers another send to it.
"""
from __future__ import annotations

import asyncio
import structlog
from datetime import date
from typing import Callable, Optional

from channels.base import ChannelError
from channels.notifier import ReminderNotifier
from channels.webhook import WebhookClient
from config.settings import Settings, get_settings
from models.schemas import ReminderConfig, RunResult
from rules.engine import ReminderEvaluator
from rules.loader import load_reminder_config
from utils.clock import Clock

logger = structlog.get_logger()

ConfigSource = Callable[[], ReminderConfig]


def originated_from_channel(error: BaseException) -> bool:
    """True when the error came from the notification channel (no alert loop)."""
    return isinstance(error, ChannelError)


class ReminderRunner:
    """
    Coordinates one evaluation + delivery pass.

    The configuration is read on every run and discarded afterwards; no
    state is carried between runs. Runs are serialized so a manual trigger
    never overlaps a scheduled pass on the shared webhook.
    """

    def __init__(
        self,
        config_source: ConfigSource,
        evaluator: ReminderEvaluator,
        notifier: ReminderNotifier,
    ):
        self._config_source = config_source
        self.evaluator = evaluator
        self.notifier = notifier
        self._lock = asyncio.Lock()

    async def run(
        self,
        trigger: str = "manual",
        reference: Optional[date] = None,
        dry_run: bool = False,
    ) -> RunResult:
        if self._lock.locked():
            logger.info("reminder_run_queued", trigger=trigger)
        async with self._lock:
            return await self._run_pass(trigger, reference, dry_run)

    async def _run_pass(self, trigger: str, reference: Optional[date], dry_run: bool) -> RunResult:
        logger.info("reminder_run_started", trigger=trigger, dry_run=dry_run)
        try:
            config = self._config_source()
            evaluation = self.evaluator.evaluate(config, reference)

            message_count = 0
            if not dry_run:
                dispatch = await self.notifier.send_notification(evaluation.date, evaluation.reminders)
                message_count = dispatch.message_count

            result = RunResult(
                success=True,
                date=evaluation.date,
                reminder_count=len(evaluation.reminders),
                message_count=message_count,
                trigger=trigger,
            )
            logger.info(
                "reminder_run_completed",
                trigger=trigger,
                date=result.date,
                reminders=result.reminder_count,
                messages=result.message_count,
            )
            return result

        except Exception as e:
            logger.error("reminder_run_failed", trigger=trigger, error=str(e), error_type=type(e).__name__)
            if not dry_run:
                await self._report_failure(e)
            raise

    async def _report_failure(self, error: Exception) -> None:
        if originated_from_channel(error):
            logger.warning("error_alert_skipped", reason="notification_channel_error")
            return
        try:
            await self.notifier.send_error_alert(str(error))
            logger.info("error_alert_sent")
        except Exception as alert_error:
            logger.error("error_alert_failed", error=str(alert_error))

    async def test_connection(self) -> dict:
        return await self.notifier.test_connection()

    async def close(self) -> None:
        await self.notifier.close()


def create_runner(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
    config_source: Optional[ConfigSource] = None,
    client: Optional[WebhookClient] = None,
) -> ReminderRunner:
    """Build a runner from settings."""
    settings = settings or get_settings()
    if config_source is None:
        reminders_path = settings.reminders_path
        config_source = lambda: load_reminder_config(reminders_path)  # noqa: E731

    client = client or WebhookClient(
        url=settings.webhook.url,
        timeout=settings.webhook.timeout_seconds,
        max_retries=settings.dispatch.max_retries,
        backoff_base=settings.dispatch.backoff_base,
    )
    notifier = ReminderNotifier(
        client,
        username=settings.webhook.username,
        footer=settings.webhook.footer,
        batch_size=settings.dispatch.batch_size,
        inter_message_delay=settings.dispatch.inter_message_delay,
    )
    return ReminderRunner(config_source, ReminderEvaluator(clock=clock), notifier)
