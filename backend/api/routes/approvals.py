"""Approval endpoints: list pending, decide."""

from typing import List

from fastapi import APIRouter, Depends

from api.schemas.approval import ApprovalDecisionRequest, ApprovalResponse
from api.schemas.common import ApiResponse
from api.schemas.execution import StepOutcomeResponse
from app.dependencies import get_approval_gate
from core.security import TokenPayload, get_current_user
from playbook.gates import ApprovalGate

router = APIRouter(tags=["approvals"])


@router.get("", response_model=ApiResponse[List[ApprovalResponse]])
async def list_pending_approvals(
    current_user: TokenPayload = Depends(get_current_user),
    gate: ApprovalGate = Depends(get_approval_gate),
):
    """Pending approval requests for the tenant, newest first."""
    approvals = await gate.list_pending(current_user.tenant_id)
    return ApiResponse(data=[ApprovalResponse.model_validate(a) for a in approvals])


@router.post("/{approval_id}/decide", response_model=ApiResponse[StepOutcomeResponse])
async def decide_approval(
    approval_id: str,
    request: ApprovalDecisionRequest,
    current_user: TokenPayload = Depends(get_current_user),
    gate: ApprovalGate = Depends(get_approval_gate),
):
    """Approve or reject. Rejection fails the step and the execution."""
    outcome = await gate.decide(
        current_user.tenant_id,
        approval_id,
        current_user.sub,
        request.decision.value,
        request.comments,
    )
    return ApiResponse(data=StepOutcomeResponse(**outcome.to_dict()))
