"""
Webhook Client — one outbound POST per notification payload.

Every call runs the retry protocol:
- 2xx: done
- 429: wait Retry-After (or exponential backoff) and retry
- 5xx / transport error: exponential backoff and retry
- any other status, malformed URL: fail immediately

Retries are bounded (max_retries, i.e. max_retries + 1 attempts). The
last failure is raised to the caller as DeliveryError / RateLimitError.
"""
from __future__ import annotations

import asyncio
import time
import structlog
from typing import Any, Awaitable, Callable, Optional, Union

import httpx
from tenacity import (
    AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential,
)

from channels.base import ChannelMetrics, DeliveryError, RateLimitError

logger = structlog.get_logger()

Sleep = Callable[[float], Awaitable[None]]


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, DeliveryError) and error.retryable


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def parse_retry_after(response: httpx.Response) -> Optional[float]:
    """Seconds to wait from the Retry-After header, else the JSON `retry_after` field."""
    header = response.headers.get("Retry-After")
    if header:
        try:
            return max(float(header), 0.0)
        except ValueError:
            pass    # HTTP-date form; fall back to the body / backoff
    value = _json_body(response).get("retry_after")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return max(float(value), 0.0)
    return None


def parse_error_code(response: httpx.Response) -> Union[int, str]:
    """The endpoint's own error code when it reports one, else the HTTP status."""
    code = _json_body(response).get("code")
    if isinstance(code, (int, str)) and not isinstance(code, bool):
        return code
    return response.status_code


class WebhookClient:
    """Async JSON webhook client with the bounded retry protocol."""

    channel = "webhook"

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        sleep: Optional[Sleep] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[ChannelMetrics] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.max_retries = max_retries
        self._backoff = wait_exponential(multiplier=backoff_base, exp_base=2)
        self._sleep: Sleep = sleep or asyncio.sleep
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.metrics = metrics or ChannelMetrics(self.channel)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
                transport=self._transport,
            )
        return self._client

    # ── Public send ───────────────────────────────────────────

    async def post(self, body: dict[str, Any]) -> httpx.Response:
        """POST one JSON body, retrying per the protocol. Raises DeliveryError."""
        if not self.url:
            raise DeliveryError("Webhook URL is not configured", self.channel)

        start = time.monotonic()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._wait,
            retry=retry_if_exception(_is_retryable),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._post_once(body)
        except DeliveryError as e:
            self.metrics.record_failure(str(e))
            logger.error(
                "webhook_delivery_failed",
                status=e.status_code,
                error_code=e.error_code,
                error=str(e),
            )
            raise

        self.metrics.record_send((time.monotonic() - start) * 1000)
        return response

    async def _post_once(self, body: dict[str, Any]) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.post(self.url, json=body)
        except httpx.UnsupportedProtocol as e:
            raise DeliveryError(f"Invalid webhook URL: {e}", self.channel) from e
        except httpx.TransportError as e:
            raise DeliveryError(
                f"Webhook request failed: {type(e).__name__}: {e}",
                self.channel,
                retryable=True,
            ) from e
        except (httpx.InvalidURL, httpx.RequestError) as e:
            # malformed URL or request; retrying cannot help
            raise DeliveryError(
                f"Webhook request failed: {type(e).__name__}: {e}",
                self.channel,
            ) from e

        if response.is_success:
            return response

        error_code = parse_error_code(response)
        if response.status_code == 429:
            raise RateLimitError(
                self.channel,
                retry_after=parse_retry_after(response),
                error_code=error_code,
            )
        raise DeliveryError(
            f"Webhook API error ({response.status_code}): {response.text[:500]}",
            self.channel,
            status_code=response.status_code,
            error_code=error_code,
            retryable=response.status_code >= 500,
        )

    # ── Retry hooks ───────────────────────────────────────────

    def _wait(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(error, RateLimitError) and error.retry_after is not None:
            return error.retry_after
        return self._backoff(retry_state)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        self.metrics.record_retry()
        logger.warning(
            "webhook_retry",
            attempt=retry_state.attempt_number,
            wait_s=retry_state.next_action.sleep if retry_state.next_action else None,
            status=getattr(error, "status_code", None),
            error=str(error),
        )

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
