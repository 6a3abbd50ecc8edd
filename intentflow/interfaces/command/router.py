"""
FastAPI router for the command bounded context.

All routes delegate to use cases or the session service. No business
logic here. Input validation is handled by Pydantic schemas. Error
mapping is handled by centralized error handlers.
"""

from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse

from intentflow.application.command.classify_command import ClassifyCommandUseCase
from intentflow.application.command.dtos import (
    ClassifyCommandQuery,
    ExecuteIntentCommand,
    RunPipelineCommand,
)
from intentflow.application.command.execute_intent import ExecuteIntentUseCase
from intentflow.application.command.run_pipeline import RunPipelineUseCase
from intentflow.application.command.session_service import CommandSessionService
from intentflow.domain.command.catalog import STAGE_CATALOG
from intentflow.domain.command.entities import PipelineRun
from intentflow.domain.command.vocabulary import CommandVocabulary
from intentflow.infrastructure.command.notification_dispatcher import NotificationDispatcher
from intentflow.interfaces.command.dependencies import (
    get_classify_command_use_case,
    get_execute_intent_use_case,
    get_notification_dispatcher,
    get_run_pipeline_use_case,
    get_session_service,
    get_vocabulary,
)
from intentflow.interfaces.command.schemas import (
    CancelResponse,
    CatalogResponse,
    ChainSchema,
    CommandTextRequest,
    ErrorResponse,
    ExecutionResultSchema,
    IntentSchema,
    NotificationSchema,
    NotificationsResponse,
    PipelineRunSchema,
    SessionResponse,
    StageDefinitionSchema,
    TokenSchema,
    VocabularyResponse,
)
from intentflow.shared.security.rate_limiting import EXECUTE_RATE_LIMIT, limiter

router = APIRouter(prefix="/commands", tags=["commands"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _snapshot_event(run: PipelineRun) -> str:
    data = PipelineRunSchema.from_domain(run).model_dump_json()
    return f"event: snapshot\ndata: {data}\n\n"


# ------------------------------------------------------------------
# Stateless entry points
# ------------------------------------------------------------------


@router.post(
    "/classify",
    response_model=IntentSchema,
    responses={422: {"model": ErrorResponse}},
    summary="Classify a command",
    description="Classify free text into an intent with extracted parameters.",
)
def classify_command(
    request: CommandTextRequest,
    use_case: ClassifyCommandUseCase = Depends(get_classify_command_use_case),
) -> IntentSchema:
    """Classify free text into an intent."""
    intent = use_case.execute(ClassifyCommandQuery(text=request.text))
    return IntentSchema.from_domain(intent)


@router.post(
    "/pipeline",
    summary="Run the analysis pipeline",
    description=(
        "Streams PipelineRun snapshots as text/event-stream `snapshot` events. "
        "The last event carries the aggregate."
    ),
)
async def run_pipeline(
    request: IntentSchema,
    use_case: RunPipelineUseCase = Depends(get_run_pipeline_use_case),
) -> StreamingResponse:
    """SSE endpoint: streams pipeline snapshots."""
    snapshots = use_case.execute(RunPipelineCommand(intent=request.to_domain()))

    async def events() -> AsyncIterator[str]:
        async for snapshot in snapshots:
            yield _snapshot_event(snapshot)

    return StreamingResponse(events(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post(
    "/execute",
    response_model=ExecutionResultSchema,
    responses={422: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
    summary="Execute an intent",
    description="Commit an intent and report success or error.",
)
@limiter.limit(EXECUTE_RATE_LIMIT)
async def execute_intent(
    request: Request,
    body: IntentSchema,
    use_case: ExecuteIntentUseCase = Depends(get_execute_intent_use_case),
) -> ExecutionResultSchema:
    """Execute an intent outside of a session."""
    result = await use_case.execute(ExecuteIntentCommand(intent=body.to_domain()))
    return ExecutionResultSchema.from_domain(result)


@router.get("/catalog", response_model=CatalogResponse, summary="List analysis stages")
def get_catalog() -> CatalogResponse:
    """Return the twelve stage definitions in run order."""
    return CatalogResponse(stages=[StageDefinitionSchema.from_domain(d) for d in STAGE_CATALOG])


@router.get(
    "/vocabulary", response_model=VocabularyResponse, summary="List supported tokens and chains"
)
def get_vocabulary_info(
    vocabulary: CommandVocabulary = Depends(get_vocabulary),
) -> VocabularyResponse:
    return VocabularyResponse(
        tokens=[TokenSchema.from_domain(t) for t in vocabulary.supported_tokens],
        chains=[ChainSchema.from_domain(c) for c in vocabulary.supported_chains],
    )


@router.get(
    "/notifications",
    response_model=NotificationsResponse,
    summary="Recent notifications",
)
def get_notifications(
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> NotificationsResponse:
    """Return the dispatcher's notification history, oldest first."""
    return NotificationsResponse(
        notifications=[NotificationSchema.from_domain(n) for n in dispatcher.history]
    )


# ------------------------------------------------------------------
# Sessions
# ------------------------------------------------------------------


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a command session",
)
def create_session(
    service: CommandSessionService = Depends(get_session_service),
) -> SessionResponse:
    return SessionResponse.from_view(service.create())


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get session state",
)
def get_session(
    session_id: str,
    service: CommandSessionService = Depends(get_session_service),
) -> SessionResponse:
    return SessionResponse.from_view(service.get(session_id))


@router.post(
    "/sessions/{session_id}/submit",
    response_model=SessionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Submit a command",
    description="Enters understanding immediately; analysis runs in the background.",
)
async def submit_command(
    session_id: str,
    request: CommandTextRequest,
    service: CommandSessionService = Depends(get_session_service),
) -> SessionResponse:
    return SessionResponse.from_view(service.submit(session_id, request.text))


@router.post(
    "/sessions/{session_id}/confirm",
    response_model=SessionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Confirm the analysed command",
)
async def confirm_command(
    session_id: str,
    service: CommandSessionService = Depends(get_session_service),
) -> SessionResponse:
    return SessionResponse.from_view(service.confirm(session_id))


@router.post(
    "/sessions/{session_id}/retry",
    response_model=SessionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Retry the last command",
)
async def retry_command(
    session_id: str,
    service: CommandSessionService = Depends(get_session_service),
) -> SessionResponse:
    return SessionResponse.from_view(service.retry(session_id))


@router.post(
    "/sessions/{session_id}/cancel",
    response_model=CancelResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Cancel understanding or execution",
)
async def cancel_command(
    session_id: str,
    service: CommandSessionService = Depends(get_session_service),
) -> CancelResponse:
    cancelled, view = service.cancel(session_id)
    return CancelResponse(cancelled=cancelled, session=SessionResponse.from_view(view))
