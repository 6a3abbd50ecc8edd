"""
Multi-channel notification dispatcher.

Implements NotificationSinkPort. Every notification is:
    1. appended to a bounded in-memory history (read by the API),
    2. logged,
    3. fanned out concurrently to async callbacks and HTTP webhooks.

Channel failures are logged and recorded in the summary; they never
propagate into the execution controller.

Usage:
    dispatcher = NotificationDispatcher()
    dispatcher.add_webhook("https://hooks.example.com/intentflow")
    await dispatcher.notify(Notification(NotificationType.INFO, "hi", 3000))
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine
from urllib.parse import urlparse

import httpx

from intentflow.domain.command.entities import Notification, NotificationType
from intentflow.domain.command.ports import NotificationSinkPort

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════
# Data structures
# ══════════════════════════════════════════════════════════════════════

_LOG_LEVEL = {
    NotificationType.SUCCESS: logging.INFO,
    NotificationType.INFO: logging.INFO,
    NotificationType.WARNING: logging.WARNING,
    NotificationType.ERROR: logging.WARNING,
}


@dataclass
class ChannelResult:
    """Result of delivering one notification to one channel."""

    channel: str
    success: bool
    error: str | None = None
    latency_ms: float = 0.0


@dataclass
class DispatchSummary:
    """All channel results for one notification."""

    notification: Notification
    results: list[ChannelResult] = field(default_factory=list)

    @property
    def all_success(self) -> bool:
        return all(r.success for r in self.results)


def notification_to_dict(notification: Notification) -> dict[str, Any]:
    """Serialize a Notification for JSON transport."""
    return {
        "type": notification.type.value,
        "message": notification.message,
        "duration_ms": notification.duration_ms,
    }


NotificationCallback = Callable[[Notification], Coroutine[Any, Any, None]]


# ══════════════════════════════════════════════════════════════════════
# Dispatcher
# ══════════════════════════════════════════════════════════════════════


class NotificationDispatcher(NotificationSinkPort):
    """Fans notifications out to history, log, callbacks and webhooks.

    Args:
        webhook_urls: Initial webhook URLs to POST notifications to.
        webhook_timeout: HTTP timeout in seconds for webhook calls.
        history_size: Number of notifications kept in memory.
        transport: Optional httpx transport (tests use a MockTransport).
    """

    def __init__(
        self,
        webhook_urls: list[str] | None = None,
        webhook_timeout: float = 5.0,
        history_size: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._webhook_urls: list[str] = []
        for url in webhook_urls or []:
            self.add_webhook(url)
        self._callbacks: list[NotificationCallback] = []
        self._webhook_timeout = webhook_timeout
        self._transport = transport
        self._history: deque[Notification] = deque(maxlen=history_size)
        self._stats = {
            "notifications": 0,
            "webhook_calls": 0,
            "callback_invocations": 0,
            "errors": 0,
        }

    @property
    def stats(self) -> dict:
        return dict(self._stats)

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def add_webhook(self, url: str) -> None:
        """Register a webhook URL.

        Raises:
            ValueError: If the URL is not http(s).
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"Invalid webhook URL scheme: {parsed.scheme}")
        if url not in self._webhook_urls:
            self._webhook_urls.append(url)
            logger.info("Webhook registered: %s", parsed.netloc)

    def remove_webhook(self, url: str) -> None:
        if url in self._webhook_urls:
            self._webhook_urls.remove(url)

    def add_callback(self, callback: NotificationCallback) -> None:
        """Register an async callback invoked with every notification."""
        self._callbacks.append(callback)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def notify(self, notification: Notification) -> None:
        await self.dispatch(notification)

    async def dispatch(self, notification: Notification) -> DispatchSummary:
        """Deliver a notification through every channel.

        Returns:
            DispatchSummary with one result per callback and webhook.
        """
        self._history.append(notification)
        self._stats["notifications"] += 1
        logger.log(
            _LOG_LEVEL[notification.type],
            "Notification [%s]: %s",
            notification.type.value,
            notification.message,
        )

        summary = DispatchSummary(notification=notification)
        tasks = [self._send_callback(cb, notification) for cb in self._callbacks]
        tasks.extend(self._send_webhook(url, notification) for url in self._webhook_urls)
        if tasks:
            summary.results.extend(await asyncio.gather(*tasks))
        return summary

    # ------------------------------------------------------------------
    # Channel: HTTP webhook
    # ------------------------------------------------------------------

    async def _send_webhook(self, url: str, notification: Notification) -> ChannelResult:
        start = time.monotonic()
        payload = {
            "event": "notification",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "notification": notification_to_dict(notification),
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._webhook_timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    url,
                    json=payload,
                    headers={"X-IntentFlow-Event": "notification"},
                )
                resp.raise_for_status()
        except Exception as exc:
            self._stats["errors"] += 1
            logger.error("Webhook POST to %s failed: %s", urlparse(url).netloc, exc)
            return ChannelResult(
                channel=f"webhook:{url}",
                success=False,
                error=str(exc),
                latency_ms=round((time.monotonic() - start) * 1000, 2),
            )

        self._stats["webhook_calls"] += 1
        return ChannelResult(
            channel=f"webhook:{url}",
            success=True,
            latency_ms=round((time.monotonic() - start) * 1000, 2),
        )

    # ------------------------------------------------------------------
    # Channel: async callbacks
    # ------------------------------------------------------------------

    async def _send_callback(
        self, callback: NotificationCallback, notification: Notification
    ) -> ChannelResult:
        start = time.monotonic()
        name = getattr(callback, "__name__", type(callback).__name__)
        try:
            await callback(notification)
        except Exception as exc:
            self._stats["errors"] += 1
            logger.error("Callback %s failed: %s", name, exc)
            return ChannelResult(
                channel=f"callback:{name}",
                success=False,
                error=str(exc),
                latency_ms=round((time.monotonic() - start) * 1000, 2),
            )

        self._stats["callback_invocations"] += 1
        return ChannelResult(
            channel=f"callback:{name}",
            success=True,
            latency_ms=round((time.monotonic() - start) * 1000, 2),
        )
