"""Input request endpoints: list pending, submit."""

from typing import List

from fastapi import APIRouter, Depends

from api.schemas.approval import InputRequestResponse, InputSubmitRequest
from api.schemas.common import ApiResponse
from api.schemas.execution import StepOutcomeResponse
from app.dependencies import get_input_gate
from core.security import TokenPayload, get_current_user
from playbook.gates import InputGate

router = APIRouter(tags=["inputs"])


@router.get("", response_model=ApiResponse[List[InputRequestResponse]])
async def list_pending_inputs(
    current_user: TokenPayload = Depends(get_current_user),
    gate: InputGate = Depends(get_input_gate),
):
    requests = await gate.list_pending(current_user.tenant_id)
    return ApiResponse(data=[InputRequestResponse.model_validate(r) for r in requests])


@router.post("/{input_id}/submit", response_model=ApiResponse[StepOutcomeResponse])
async def submit_input(
    input_id: str,
    request: InputSubmitRequest,
    current_user: TokenPayload = Depends(get_current_user),
    gate: InputGate = Depends(get_input_gate),
):
    """Submit analyst data and resume the waiting step."""
    outcome = await gate.submit(current_user.tenant_id, input_id, current_user.sub, request.data)
    return ApiResponse(data=StepOutcomeResponse(**outcome.to_dict()))
