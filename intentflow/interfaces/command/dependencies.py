"""
Dependency injection for the command bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection. This is the
composition root: the vocabulary, the wallet session, the notification
dispatcher and the session service are built once per process; use
cases are cheap and built per request.
"""

import random
from functools import lru_cache
from typing import Optional

from intentflow.application.command.classify_command import ClassifyCommandUseCase
from intentflow.application.command.execute_intent import ExecuteIntentUseCase
from intentflow.application.command.run_pipeline import RunPipelineUseCase
from intentflow.application.command.session_service import CommandSessionService
from intentflow.core.config import settings
from intentflow.domain.command.aggregator import PipelineAggregator
from intentflow.domain.command.controller import ExecutionController
from intentflow.domain.command.interpreter import RuleBasedInterpreter
from intentflow.domain.command.orchestrator import PipelineOrchestrator
from intentflow.domain.command.vocabulary import CommandVocabulary, default_vocabulary
from intentflow.infrastructure.command.clock import AsyncioClock
from intentflow.infrastructure.command.notification_dispatcher import NotificationDispatcher
from intentflow.infrastructure.command.simulated_executor import SimulatedExecutor
from intentflow.infrastructure.command.simulated_market_data import (
    SimulatedMarketDataAdapter,
)
from intentflow.infrastructure.command.wallet_session import InMemoryWalletSession


def _rng() -> random.Random:
    return random.Random(settings.random_seed)


@lru_cache(maxsize=1)
def get_vocabulary() -> CommandVocabulary:
    return default_vocabulary()


@lru_cache(maxsize=1)
def get_clock() -> AsyncioClock:
    return AsyncioClock()


@lru_cache(maxsize=1)
def get_wallet_session() -> InMemoryWalletSession:
    return InMemoryWalletSession(
        connected=settings.wallet_connected,
        address=settings.wallet_address,
        network=settings.wallet_network,
    )


@lru_cache(maxsize=1)
def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(webhook_urls=settings.notification_webhooks)


def build_interpreter() -> RuleBasedInterpreter:
    return RuleBasedInterpreter(get_vocabulary())


def build_orchestrator(rng: Optional[random.Random] = None) -> PipelineOrchestrator:
    """Build an orchestrator configured from settings."""
    return PipelineOrchestrator(
        market_data=SimulatedMarketDataAdapter(),
        wallet=get_wallet_session(),
        clock=get_clock(),
        rng=rng or _rng(),
        aggregator=PipelineAggregator(settings.derive_recommendations),
        max_workers=settings.pipeline_workers,
        warning_probability=settings.warning_probability,
        increment_bounds=(settings.increment_min, settings.increment_max),
        tick_delay_bounds=(settings.tick_delay_min_seconds, settings.tick_delay_max_seconds),
        stage_timeout=settings.stage_timeout_seconds,
    )


def build_executor(rng: Optional[random.Random] = None) -> SimulatedExecutor:
    return SimulatedExecutor(
        clock=get_clock(),
        wallet=get_wallet_session(),
        latency=settings.execution_latency_seconds,
        rng=rng or _rng(),
    )


def build_controller() -> ExecutionController:
    """Build a fresh ExecutionController for a new session."""
    rng = _rng()
    return ExecutionController(
        interpreter=build_interpreter(),
        orchestrator=build_orchestrator(rng),
        executor=build_executor(rng),
        notifier=get_notification_dispatcher(),
        clock=get_clock(),
        classify_latency=settings.classify_latency_seconds,
        reset_delay=settings.success_reset_seconds,
    )


@lru_cache(maxsize=1)
def get_session_service() -> CommandSessionService:
    return CommandSessionService(build_controller)


def get_classify_command_use_case() -> ClassifyCommandUseCase:
    """Build ClassifyCommandUseCase with the rule-based interpreter."""
    return ClassifyCommandUseCase(interpreter=build_interpreter())


def get_run_pipeline_use_case() -> RunPipelineUseCase:
    """Build RunPipelineUseCase with the simulated market data."""
    return RunPipelineUseCase(orchestrator=build_orchestrator())


def get_execute_intent_use_case() -> ExecuteIntentUseCase:
    """Build ExecuteIntentUseCase with the simulated executor."""
    return ExecuteIntentUseCase(executor=build_executor())
