"""
Shared fixtures: a virtual clock, stub ports, and factories for the
orchestrator and controller wired to them.
"""

import asyncio
import random

import pytest

from intentflow.domain.command.controller import ExecutionController
from intentflow.domain.command.entities import Notification
from intentflow.domain.command.interpreter import RuleBasedInterpreter
from intentflow.domain.command.orchestrator import PipelineOrchestrator
from intentflow.domain.command.ports import ClockPort, NotificationSinkPort
from intentflow.domain.command.vocabulary import default_vocabulary
from intentflow.infrastructure.command.simulated_executor import SimulatedExecutor
from intentflow.infrastructure.command.simulated_market_data import (
    SimulatedMarketDataAdapter,
)
from intentflow.infrastructure.command.wallet_session import InMemoryWalletSession


class VirtualClock(ClockPort):
    """Clock whose time only moves when someone sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class RecordingNotifier(NotificationSinkPort):
    """Notification sink that keeps everything it receives."""

    def __init__(self) -> None:
        self.received: list[Notification] = []

    async def notify(self, notification: Notification) -> None:
        self.received.append(notification)

    @property
    def messages(self) -> list[str]:
        return [n.message for n in self.received]


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def interpreter() -> RuleBasedInterpreter:
    return RuleBasedInterpreter(default_vocabulary())


@pytest.fixture
def wallet() -> InMemoryWalletSession:
    return InMemoryWalletSession()


@pytest.fixture
def market_data() -> SimulatedMarketDataAdapter:
    return SimulatedMarketDataAdapter()


@pytest.fixture
def make_orchestrator(market_data, wallet, clock):
    """Factory for orchestrators on the virtual clock; kwargs override."""

    def _make(**overrides) -> PipelineOrchestrator:
        options = {
            "market_data": market_data,
            "wallet": wallet,
            "clock": clock,
            "rng": random.Random(42),
            "warning_probability": 0.0,
        }
        options.update(overrides)
        return PipelineOrchestrator(**options)

    return _make


@pytest.fixture
def make_controller(interpreter, make_orchestrator, wallet, clock, notifier):
    """Factory for controllers on the virtual clock; kwargs override."""

    def _make(**overrides) -> ExecutionController:
        options = {
            "interpreter": interpreter,
            "orchestrator": make_orchestrator(),
            "executor": SimulatedExecutor(clock, wallet, latency=3.0, rng=random.Random(1)),
            "notifier": notifier,
            "clock": clock,
            "classify_latency": 1.0,
            "reset_delay": 2.0,
        }
        options.update(overrides)
        return ExecutionController(**options)

    return _make
