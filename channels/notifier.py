"""
Reminder Notifier — delivers a day's reminders as webhook embeds.

Reminders are split into chunks of at most `batch_size` entries, one
payload per chunk, sent strictly one after another with a fixed pause
between chunks so the endpoint's rate-limit budget is respected.
"""
from __future__ import annotations

import asyncio
import structlog
from typing import Any, Optional, Sequence

from channels.base import DeliveryError
from channels.webhook import Sleep, WebhookClient
from models.schemas import ColorTag, DispatchResult, NotificationPayload, PayloadField

logger = structlog.get_logger()

TITLE_TEMPLATE = "🗓️ 本日のリマインダー ({date})"
ENTRY_LABEL_TEMPLATE = "{index}. リマインダー"
NO_REMINDERS_TEXT = "本日のリマインド事項はありません"
TEST_TITLE = "🧪 接続テスト"
TEST_DESCRIPTION = "Discord Webhook接続テストが成功しました"
ERROR_TITLE = "⚠️ システムエラー"


def split_reminders(reminders: Sequence[str], batch_size: int) -> list[list[str]]:
    """Consecutive chunks of at most batch_size items, order preserved."""
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(reminders[i:i + batch_size]) for i in range(0, len(reminders), batch_size)]


class ReminderNotifier:
    """
    Builds notification payloads and sends them through a WebhookClient.
    """

    def __init__(
        self,
        client: WebhookClient,
        username: str = "Daily Reminder Bot",
        footer: str = "Daily Reminder System",
        batch_size: int = 20,
        inter_message_delay: float = 1.0,
        sleep: Optional[Sleep] = None,
    ):
        self.client = client
        self.username = username
        self.footer = footer
        self.batch_size = batch_size
        self.inter_message_delay = inter_message_delay
        self._sleep: Sleep = sleep or asyncio.sleep

    # ── Payload building ──────────────────────────────────────

    def create_payload(self, date_label: str, reminders: Sequence[str]) -> NotificationPayload:
        if not reminders:
            return NotificationPayload(
                title=TITLE_TEMPLATE.format(date=date_label),
                description=NO_REMINDERS_TEXT,
                color_tag=ColorTag.EMPTY,
            )
        return NotificationPayload(
            title=TITLE_TEMPLATE.format(date=date_label),
            entries=[
                PayloadField(label=ENTRY_LABEL_TEMPLATE.format(index=i), text=text)
                for i, text in enumerate(reminders, start=1)
            ],
        )

    def build_payloads(self, date_label: str, reminders: Sequence[str]) -> list[NotificationPayload]:
        """All payloads for one notification, titled (i/n) when split."""
        if not reminders:
            return [self.create_payload(date_label, [])]

        chunks = split_reminders(reminders, self.batch_size)
        payloads = []
        for i, chunk in enumerate(chunks, start=1):
            payload = self.create_payload(date_label, chunk)
            if len(chunks) > 1:
                payload.title += f" ({i}/{len(chunks)})"
            payloads.append(payload)
        return payloads

    def to_body(self, payload: NotificationPayload) -> dict[str, Any]:
        return {
            "username": self.username,
            "embeds": [payload.to_embed(footer=self.footer)],
        }

    # ── Sending ───────────────────────────────────────────────

    async def send_payload(self, payload: NotificationPayload) -> None:
        await self.client.post(self.to_body(payload))

    async def send_notification(self, date_label: str, reminders: Sequence[str]) -> DispatchResult:
        """
        Send the day's reminders. Returns the number of outbound calls made.
        Raises DeliveryError / RateLimitError once a payload's retries are spent.
        """
        payloads = self.build_payloads(date_label, reminders)
        message_count = 0

        for i, payload in enumerate(payloads):
            await self.send_payload(payload)
            message_count += 1
            logger.info(
                "notification_chunk_sent",
                date=date_label,
                chunk=i + 1,
                total=len(payloads),
                entries=len(payload.entries),
            )
            if i < len(payloads) - 1:
                await self._sleep(self.inter_message_delay)

        return DispatchResult(success=True, message_count=message_count)

    async def test_connection(self) -> dict[str, Any]:
        """Send one diagnostic payload. Never raises."""
        payload = NotificationPayload(
            title=TEST_TITLE,
            description=TEST_DESCRIPTION,
            color_tag=ColorTag.SUCCESS,
        )
        try:
            await self.send_payload(payload)
        except DeliveryError as e:
            logger.warning("connection_test_failed", error=str(e))
            return {"success": False, "error": str(e)}
        logger.info("connection_test_succeeded")
        return {"success": True}

    async def send_error_alert(self, error_message: str) -> None:
        payload = NotificationPayload(
            title=ERROR_TITLE,
            description=f"リマインダーシステムでエラーが発生しました:\n```\n{error_message}\n```",
            color_tag=ColorTag.ERROR,
        )
        await self.send_payload(payload)

    async def close(self) -> None:
        await self.client.close()
