"""
Channel base infrastructure for outbound notifications.

Provides:
- ChannelError: structured error hierarchy (DeliveryError, RateLimitError)
- ChannelMetrics: per-channel send/fail/retry/latency tracking
"""
from __future__ import annotations

from typing import Any, Optional, Union


# ══════════════════════════════════════════════════════════════
#  ERRORS
# ══════════════════════════════════════════════════════════════

class ChannelError(Exception):
    """Base exception for all channel operations."""

    def __init__(self, message: str, channel: str = "", retryable: bool = False):
        self.channel = channel
        self.retryable = retryable
        super().__init__(message)


class DeliveryError(ChannelError):
    """
    A payload could not be delivered.

    `retryable` marks failures the retry loop may attempt again (5xx,
    transport errors). Once raised to a caller the retries are spent.
    """

    def __init__(
        self,
        message: str,
        channel: str = "",
        status_code: Optional[int] = None,
        error_code: Union[int, str, None] = None,
        retryable: bool = False,
    ):
        self.status_code = status_code
        self.error_code = error_code if error_code is not None else status_code
        super().__init__(message, channel, retryable=retryable)


class RateLimitError(DeliveryError):
    """HTTP 429 from the endpoint. `retry_after` is in seconds when reported."""

    def __init__(
        self,
        channel: str = "",
        retry_after: Optional[float] = None,
        error_code: Union[int, str, None] = None,
    ):
        self.retry_after = retry_after
        detail = f", retry after {retry_after}s" if retry_after is not None else ""
        super().__init__(
            f"Rate limit exceeded for {channel}{detail}",
            channel,
            status_code=429,
            error_code=error_code,
            retryable=True,
        )


# ══════════════════════════════════════════════════════════════
#  CHANNEL METRICS
# ══════════════════════════════════════════════════════════════

class ChannelMetrics:
    """Tracks per-channel send, failure, retry, and latency metrics."""

    def __init__(self, channel: str):
        self.channel = channel
        self.messages_sent: int = 0
        self.messages_failed: int = 0
        self.retries: int = 0
        self._latencies: list[float] = []
        self._errors: list[str] = []

    def record_send(self, latency_ms: float = 0.0):
        self.messages_sent += 1
        if latency_ms > 0:
            self._latencies.append(latency_ms)

    def record_failure(self, error: str = ""):
        self.messages_failed += 1
        if error:
            self._errors.append(error)

    def record_retry(self):
        self.retries += 1

    @property
    def avg_latency_ms(self) -> float:
        return sum(self._latencies) / len(self._latencies) if self._latencies else 0.0

    @property
    def failure_rate(self) -> float:
        total = self.messages_sent + self.messages_failed
        return self.messages_failed / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel,
            "sent": self.messages_sent,
            "failed": self.messages_failed,
            "retries": self.retries,
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "failure_rate": round(self.failure_rate, 4),
            "recent_errors": self._errors[-10:],
        }
