"""Action registry endpoint."""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from api.schemas.common import ApiResponse
from app.dependencies import get_orchestrator
from core.security import TokenPayload, get_current_user
from playbook.orchestrator import PlaybookOrchestrator

router = APIRouter(tags=["actions"])


@router.get("", response_model=ApiResponse[List[Dict[str, Any]]])
async def list_actions(
    current_user: TokenPayload = Depends(get_current_user),
    orchestrator: PlaybookOrchestrator = Depends(get_orchestrator),
):
    """Registered actions with their risk level and input schema."""
    return ApiResponse(data=orchestrator.registry.list_all())
