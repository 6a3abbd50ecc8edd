"""
Port interfaces (ABCs) for the command bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Optional

from intentflow.domain.command.cancellation import CancellationToken
from intentflow.domain.command.entities import (
    Intent,
    MarketQuote,
    Notification,
    WalletSnapshot,
)


class CommandInterpreterPort(ABC):
    """Strategy that turns free text into a typed intent."""

    @abstractmethod
    def classify(self, text: str) -> Intent:
        """Classify a command. Must never raise.

        Unmatched input is reported as an ``unknown`` intent rather
        than an exception.
        """
        raise NotImplementedError


class MarketDataPort(ABC):
    """Port for quote, gas and liquidity figures."""

    @abstractmethod
    def get_quote(self, intent: Intent) -> MarketQuote:
        """Return market figures relevant to the intent's tokens and chain."""
        raise NotImplementedError


class WalletSessionPort(ABC):
    """Port for the user's wallet connection."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Return True if a wallet is connected."""
        raise NotImplementedError

    @abstractmethod
    def address(self) -> Optional[str]:
        """Return the connected address, or None."""
        raise NotImplementedError

    @abstractmethod
    def snapshot(self) -> WalletSnapshot:
        """Return the current wallet state including balances."""
        raise NotImplementedError


class NotificationSinkPort(ABC):
    """Port for user-facing notifications (toasts, webhooks, ...)."""

    @abstractmethod
    async def notify(self, notification: Notification) -> None:
        """Deliver a notification. Delivery problems must not raise."""
        raise NotImplementedError


class ExecutorPort(ABC):
    """Strategy that commits a confirmed intent."""

    @abstractmethod
    async def execute(self, intent: Intent, cancel_token: CancellationToken) -> str:
        """Commit the intent and return a transaction reference.

        Args:
            intent: The confirmed intent.
            cancel_token: Token to check at every suspension point.

        Raises:
            ExecutionFailure: If the commit does not go through.
            CancellationRequested: If the token is set mid-execution.
        """
        raise NotImplementedError


class ClockPort(ABC):
    """Time source and sleeper, injectable so tests can use virtual time."""

    @abstractmethod
    def monotonic(self) -> float:
        """Return a monotonic timestamp in seconds."""
        raise NotImplementedError

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for the given number of seconds."""
        raise NotImplementedError
