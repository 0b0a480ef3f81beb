"""Execution endpoints: list, get, execute step, update step status, cascade failures."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import ApiResponse
from api.schemas.execution import (
    CascadeFailureResponse,
    ExecutionResponse,
    ExecutionStepResponse,
    StepOutcomeResponse,
    StepStatusUpdate,
)
from app.dependencies import get_db, get_orchestrator
from core.security import TokenPayload, get_current_user
from playbook.orchestrator import PlaybookOrchestrator
from services.cascade_failure_service import CascadeFailureService

router = APIRouter(tags=["executions"])


@router.get("", response_model=ApiResponse[List[ExecutionResponse]])
async def list_executions(
    case_id: str = Query(..., min_length=1),
    current_user: TokenPayload = Depends(get_current_user),
    orchestrator: PlaybookOrchestrator = Depends(get_orchestrator),
):
    """Executions run against a case, newest first."""
    executions = await orchestrator.list_executions(current_user.tenant_id, case_id)
    return ApiResponse(data=[ExecutionResponse.model_validate(e) for e in executions])


@router.get("/cascade-failures", response_model=ApiResponse[List[CascadeFailureResponse]])
async def list_cascade_failures(
    execution_id: Optional[str] = Query(default=None),
    current_user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Dead-lettered successor-resolution jobs, newest first."""
    failures = await CascadeFailureService(db).list_cascade_failures(
        current_user.tenant_id, execution_id=execution_id
    )
    return ApiResponse(data=[CascadeFailureResponse.model_validate(f) for f in failures])


@router.get("/{execution_id}", response_model=ApiResponse[ExecutionResponse])
async def get_execution(
    execution_id: str,
    current_user: TokenPayload = Depends(get_current_user),
    orchestrator: PlaybookOrchestrator = Depends(get_orchestrator),
):
    execution = await orchestrator.get_execution(current_user.tenant_id, execution_id)
    return ApiResponse(data=ExecutionResponse.model_validate(execution))


@router.post(
    "/{execution_id}/steps/{step_id}/execute",
    response_model=ApiResponse[StepOutcomeResponse],
)
async def execute_step(
    execution_id: str,
    step_id: str,
    current_user: TokenPayload = Depends(get_current_user),
    orchestrator: PlaybookOrchestrator = Depends(get_orchestrator),
):
    """Dispatch a step. Approval and input steps are idempotent."""
    outcome = await orchestrator.execute_step(current_user.tenant_id, execution_id, step_id)
    return ApiResponse(data=StepOutcomeResponse(**outcome.to_dict()))


@router.put(
    "/{execution_id}/steps/{step_id}",
    response_model=ApiResponse[ExecutionStepResponse],
)
async def update_step_status(
    execution_id: str,
    step_id: str,
    request: StepStatusUpdate,
    current_user: TokenPayload = Depends(get_current_user),
    orchestrator: PlaybookOrchestrator = Depends(get_orchestrator),
):
    """Set a step's status, e.g. to complete a manual step.

    Completing a step queues resolution of its successor; the response
    does not wait for it.
    """
    step = await orchestrator.update_step_status(
        current_user.tenant_id,
        execution_id,
        step_id,
        request.status.value,
        request.result,
    )
    return ApiResponse(data=ExecutionStepResponse.model_validate(step))
