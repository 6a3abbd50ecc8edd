"""
Pydantic schemas for command API request/response validation.

These schemas define the API contract and convert to and from domain
objects. No business logic belongs here.
"""

from typing import Any

from pydantic import BaseModel, Field

from intentflow.application.command.dtos import SessionView
from intentflow.domain.command.entities import (
    Aggregate,
    ChainInfo,
    ExecutionResult,
    ExecutionState,
    Intent,
    IntentCategory,
    Notification,
    NotificationType,
    PipelineRun,
    RiskLevel,
    Stage,
    StageCategory,
    StageDefinition,
    StageId,
    StageStatus,
    TokenInfo,
)

COMMAND_MAX_LEN = 500


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    detail: str | None = None


# ------------------------------------------------------------------
# Intents
# ------------------------------------------------------------------


class CommandTextRequest(BaseModel):
    """Request schema carrying free-text command input.

    Attributes:
        text: The user's command, e.g. "Swap 100 USDC for ETH".
    """

    text: str = Field(..., min_length=1, max_length=COMMAND_MAX_LEN)


class IntentSchema(BaseModel):
    """A classified intent."""

    category: IntentCategory
    confidence: float = Field(..., ge=0.0, le=1.0)
    parameters: dict[str, str] = Field(default_factory=dict)
    action_summary: str = ""
    planned_steps: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, intent: Intent) -> "IntentSchema":
        return cls(
            category=intent.category,
            confidence=intent.confidence,
            parameters=dict(intent.parameters),
            action_summary=intent.action_summary,
            planned_steps=list(intent.planned_steps),
        )

    def to_domain(self) -> Intent:
        return Intent(
            category=self.category,
            confidence=self.confidence,
            parameters=self.parameters,
            action_summary=self.action_summary,
            planned_steps=tuple(self.planned_steps),
        )


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------


class StageDefinitionSchema(BaseModel):
    """One entry of the stage catalog."""

    id: StageId
    name: str
    description: str
    category: StageCategory

    @classmethod
    def from_domain(cls, definition: StageDefinition) -> "StageDefinitionSchema":
        return cls(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            category=definition.category,
        )


class CatalogResponse(BaseModel):
    stages: list[StageDefinitionSchema]


class StageSchema(BaseModel):
    """Runtime state of one stage."""

    id: StageId
    name: str
    description: str
    category: StageCategory
    status: StageStatus
    progress: int
    result: dict[str, Any] | None = None
    error: str | None = None
    duration_ms: int | None = None

    @classmethod
    def from_domain(cls, stage: Stage) -> "StageSchema":
        return cls(
            id=stage.id,
            name=stage.name,
            description=stage.description,
            category=stage.category,
            status=stage.status,
            progress=stage.progress,
            result=stage.result,
            error=stage.error,
            duration_ms=stage.duration_ms,
        )


class AggregateSchema(BaseModel):
    """Summary of a finished pipeline run."""

    success_probability: float
    risk_level: RiskLevel
    recommendations: list[str]
    estimated_gas: str
    estimated_time: str
    security_score: int

    @classmethod
    def from_domain(cls, aggregate: Aggregate) -> "AggregateSchema":
        return cls(
            success_probability=aggregate.success_probability,
            risk_level=aggregate.risk_level,
            recommendations=list(aggregate.recommendations),
            estimated_gas=aggregate.estimated_gas,
            estimated_time=aggregate.estimated_time,
            security_score=aggregate.security_score,
        )


class PipelineRunSchema(BaseModel):
    """Snapshot of a pipeline run."""

    intent: IntentSchema
    stages: list[StageSchema]
    completed_count: int
    is_terminal: bool
    aggregate: AggregateSchema | None = None

    @classmethod
    def from_domain(cls, run: PipelineRun) -> "PipelineRunSchema":
        return cls(
            intent=IntentSchema.from_domain(run.intent),
            stages=[StageSchema.from_domain(s) for s in run.stages],
            completed_count=run.completed_count,
            is_terminal=run.is_terminal,
            aggregate=AggregateSchema.from_domain(run.aggregate) if run.aggregate else None,
        )


# ------------------------------------------------------------------
# Execution
# ------------------------------------------------------------------


class ExecutionResultSchema(BaseModel):
    """Outcome of an execution attempt."""

    status: ExecutionState
    tx_reference: str | None = None
    error: str | None = None

    @classmethod
    def from_domain(cls, result: ExecutionResult) -> "ExecutionResultSchema":
        return cls(status=result.status, tx_reference=result.tx_reference, error=result.error)


# ------------------------------------------------------------------
# Vocabulary
# ------------------------------------------------------------------


class TokenSchema(BaseModel):
    symbol: str
    name: str
    address: str
    chain_id: int
    decimals: int

    @classmethod
    def from_domain(cls, token: TokenInfo) -> "TokenSchema":
        return cls(
            symbol=token.symbol,
            name=token.name,
            address=token.address,
            chain_id=token.chain_id,
            decimals=token.decimals,
        )


class ChainSchema(BaseModel):
    key: str
    chain_id: int
    name: str

    @classmethod
    def from_domain(cls, chain: ChainInfo) -> "ChainSchema":
        return cls(key=chain.key, chain_id=chain.chain_id, name=chain.name)


class VocabularyResponse(BaseModel):
    """Tokens and chains the interpreter recognises."""

    tokens: list[TokenSchema]
    chains: list[ChainSchema]


# ------------------------------------------------------------------
# Sessions and notifications
# ------------------------------------------------------------------


class SessionResponse(BaseModel):
    """State of one command session."""

    session_id: str
    state: ExecutionState
    last_input: str | None = None
    intent: IntentSchema | None = None
    run: PipelineRunSchema | None = None
    error: str | None = None
    last_result: ExecutionResultSchema | None = None

    @classmethod
    def from_view(cls, view: SessionView) -> "SessionResponse":
        return cls(
            session_id=view.session_id,
            state=view.state,
            last_input=view.last_input,
            intent=IntentSchema.from_domain(view.intent) if view.intent else None,
            run=PipelineRunSchema.from_domain(view.run) if view.run else None,
            error=view.error,
            last_result=(
                ExecutionResultSchema.from_domain(view.last_result)
                if view.last_result
                else None
            ),
        )


class CancelResponse(BaseModel):
    cancelled: bool
    session: SessionResponse


class NotificationSchema(BaseModel):
    type: NotificationType
    message: str
    duration_ms: int

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationSchema":
        return cls(
            type=notification.type,
            message=notification.message,
            duration_ms=notification.duration_ms,
        )


class NotificationsResponse(BaseModel):
    notifications: list[NotificationSchema]
