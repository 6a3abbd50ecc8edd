"""
Domain entities for the command bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from intentflow.domain.command.errors import (
    AggregateAlreadySetError,
    PipelineNotTerminalError,
    StageTransitionError,
)


class IntentCategory(Enum):
    """Kind of operation a free-text command asks for."""

    SWAP = "swap"
    BRIDGE = "bridge"
    LIMIT_ORDER = "limit_order"
    PORTFOLIO = "portfolio"
    ANALYSIS = "analysis"
    HELP = "help"
    UNKNOWN = "unknown"

    @property
    def is_on_chain(self) -> bool:
        """True for categories that commit a transaction."""
        return self in (
            IntentCategory.SWAP,
            IntentCategory.BRIDGE,
            IntentCategory.LIMIT_ORDER,
        )


class StageId(Enum):
    """Identifiers of the twelve analysis stages."""

    INTENT_ANALYSIS = "intent_analysis"
    RISK_ASSESSMENT = "risk_assessment"
    MARKET_ANALYSIS = "market_analysis"
    WALLET_VALIDATION = "wallet_validation"
    GAS_OPTIMIZATION = "gas_optimization"
    ROUTE_CALCULATION = "route_calculation"
    EXECUTION_PLANNING = "execution_planning"
    SECURITY_CHECK = "security_check"
    PERFORMANCE_PREDICTION = "performance_prediction"
    NETWORK_ANALYSIS = "network_analysis"
    LIQUIDITY_CHECK = "liquidity_check"
    PRICE_IMPACT_ANALYSIS = "price_impact_analysis"


class StageCategory(Enum):
    """Functional grouping of a stage."""

    ANALYSIS = "analysis"
    SECURITY = "security"
    EXECUTION = "execution"
    OPTIMIZATION = "optimization"


class StageStatus(Enum):
    """Lifecycle status of a single stage."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    WARNING = "warning"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    {
        StageStatus.COMPLETED,
        StageStatus.WARNING,
        StageStatus.FAILED,
        StageStatus.CANCELLED,
    }
)


class RiskLevel(Enum):
    """Overall risk classification of a pipeline run."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExecutionState(Enum):
    """States of the per-session execution state machine."""

    IDLE = "idle"
    UNDERSTANDING = "understanding"
    READY = "ready"
    EXECUTING = "executing"
    SUCCESS = "success"
    ERROR = "error"


class NotificationType(Enum):
    """Severity of a user-facing notification."""

    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Intent:
    """Structured result of classifying a free-text command.

    Immutable once produced. ``parameters`` is exposed as a read-only
    mapping; every value is a string.
    """

    category: IntentCategory
    confidence: float
    parameters: Mapping[str, str] = field(default_factory=dict)
    action_summary: str = ""
    planned_steps: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        object.__setattr__(
            self, "parameters", MappingProxyType(dict(self.parameters))
        )
        object.__setattr__(self, "planned_steps", tuple(self.planned_steps))


@dataclass(frozen=True)
class StageDefinition:
    """Static description of one catalog stage."""

    id: StageId
    name: str
    description: str
    category: StageCategory


@dataclass
class Stage:
    """Mutable runtime record of one stage within a pipeline run.

    Owned by exactly one PipelineRun and mutated only by the orchestrator
    task responsible for it. Status changes go through the transition
    methods, which enforce a single terminal transition and
    non-decreasing progress.
    """

    id: StageId
    name: str
    description: str
    category: StageCategory
    status: StageStatus = StageStatus.PENDING
    progress: int = 0
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    duration_ms: Optional[int] = None

    @classmethod
    def from_definition(cls, definition: StageDefinition) -> "Stage":
        return cls(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            category=definition.category,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def start(self) -> None:
        """Move a pending stage to running with zero progress."""
        self._require(self.status is StageStatus.PENDING, StageStatus.RUNNING)
        self.status = StageStatus.RUNNING
        self.progress = 0

    def advance(self, progress: int) -> None:
        """Raise progress of a running stage, clamped to 100."""
        self._require(self.status is StageStatus.RUNNING, StageStatus.RUNNING)
        progress = min(int(progress), 100)
        if progress < self.progress:
            raise StageTransitionError(
                self.id.value, f"progress {self.progress}", f"progress {progress}"
            )
        self.progress = progress

    def finish(
        self,
        result: dict[str, Any],
        duration_ms: int,
        warning: Optional[str] = None,
    ) -> None:
        """Terminate a fully progressed stage as completed, or as warning."""
        target = StageStatus.WARNING if warning else StageStatus.COMPLETED
        self._require(
            self.status is StageStatus.RUNNING and self.progress == 100, target
        )
        self.result = result
        self.error = warning
        self.duration_ms = duration_ms
        self.status = target

    def fail(self, error: str, duration_ms: Optional[int] = None) -> None:
        """Terminate a running stage as failed."""
        self._require(self.status is StageStatus.RUNNING, StageStatus.FAILED)
        self.error = error
        self.duration_ms = duration_ms
        self.status = StageStatus.FAILED

    def cancel(self, duration_ms: Optional[int] = None) -> None:
        """Terminate a pending or running stage as cancelled."""
        self._require(not self.is_terminal, StageStatus.CANCELLED)
        self.duration_ms = duration_ms
        self.status = StageStatus.CANCELLED

    def copy(self) -> "Stage":
        return replace(self, result=copy.deepcopy(self.result))

    def _require(self, allowed: bool, target: StageStatus) -> None:
        if not allowed:
            raise StageTransitionError(
                self.id.value, self.status.value, target.value
            )


@dataclass(frozen=True)
class Aggregate:
    """Summary metrics computed once every stage is terminal."""

    success_probability: float
    risk_level: RiskLevel
    recommendations: tuple[str, ...]
    estimated_gas: str
    estimated_time: str
    security_score: int


@dataclass
class PipelineRun:
    """One execution of the stage catalog for a single intent."""

    intent: Intent
    stages: list[Stage] = field(default_factory=list)
    aggregate: Optional[Aggregate] = None

    @property
    def is_terminal(self) -> bool:
        return all(stage.is_terminal for stage in self.stages)

    @property
    def completed_count(self) -> int:
        return sum(1 for s in self.stages if s.status is StageStatus.COMPLETED)

    def count(self, status: StageStatus) -> int:
        return sum(1 for s in self.stages if s.status is status)

    def stage(self, stage_id: StageId) -> Stage:
        for stage in self.stages:
            if stage.id is stage_id:
                return stage
        raise KeyError(stage_id.value)

    def set_aggregate(self, aggregate: Aggregate) -> None:
        """Write the aggregate once, after the all-terminal barrier."""
        if self.aggregate is not None:
            raise AggregateAlreadySetError()
        pending = sum(1 for s in self.stages if not s.is_terminal)
        if pending:
            raise PipelineNotTerminalError(pending)
        self.aggregate = aggregate

    def snapshot(self) -> "PipelineRun":
        """Return an independent copy safe to hand to consumers."""
        return PipelineRun(
            intent=self.intent,
            stages=[stage.copy() for stage in self.stages],
            aggregate=self.aggregate,
        )


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of the executing phase as seen by the caller."""

    status: ExecutionState
    tx_reference: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is ExecutionState.SUCCESS


@dataclass(frozen=True)
class Notification:
    """User-facing notification handed to the notification sink."""

    type: NotificationType
    message: str
    duration_ms: int


@dataclass(frozen=True)
class TokenInfo:
    """A token supported by the command vocabulary."""

    symbol: str
    name: str
    address: str
    chain_id: int
    decimals: int


@dataclass(frozen=True)
class ChainInfo:
    """A chain supported by the command vocabulary."""

    key: str
    chain_id: int
    name: str


@dataclass(frozen=True)
class MarketQuote:
    """Market, gas and liquidity figures used to populate stage results.

    Values are display-ready strings except where arithmetic is needed.
    """

    pair: str
    current_price: str
    price_change: str
    volume_24h: str
    market_trend: str
    volatility: str
    total_liquidity: str
    available_liquidity: str
    pool_depth: str
    spread: str
    gas_price_gwei: float
    estimated_gas: str
    gas_cost: str
    best_route: str
    alternative_routes: tuple[str, ...]
    expected_output: str
    price_impact_pct: float
    expected_slippage_pct: float
    congestion: str
    block_time: str
    network_health: str


@dataclass(frozen=True)
class WalletSnapshot:
    """Point-in-time view of the connected wallet."""

    connected: bool
    address: Optional[str]
    network: str
    balance: str
    gas_balance: str
