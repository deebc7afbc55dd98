"""Outbound notification channels."""
from channels.base import (
    ChannelError,
    DeliveryError,
    RateLimitError,
    ChannelMetrics,
)
from channels.webhook import WebhookClient
from channels.notifier import ReminderNotifier

__all__ = [
    "ChannelError", "DeliveryError", "RateLimitError", "ChannelMetrics",
    "WebhookClient", "ReminderNotifier",
]
