"""Playbook template endpoints: list, create, get, update, delete, run."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import ApiResponse, Page, PaginationParams
from api.schemas.execution import ExecutionResponse, RunPlaybookRequest
from api.schemas.playbook import PlaybookCreate, PlaybookResponse, PlaybookUpdate
from app.dependencies import get_db, get_orchestrator
from core.security import TokenPayload, get_current_user
from playbook.orchestrator import PlaybookOrchestrator
from services.playbook_service import PlaybookService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["playbooks"])


@router.get("", response_model=ApiResponse[Page[PlaybookResponse]])
async def list_playbooks(
    pagination: PaginationParams = Depends(),
    current_user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the tenant's playbooks (paginated, newest first)."""
    playbooks, total = await PlaybookService(db).list_playbooks(
        current_user.tenant_id,
        offset=pagination.offset,
        limit=pagination.per_page,
    )
    return ApiResponse(data=Page(
        items=[PlaybookResponse.model_validate(pb) for pb in playbooks],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    ))


@router.post("", response_model=ApiResponse[PlaybookResponse], status_code=status.HTTP_201_CREATED)
async def create_playbook(
    request: PlaybookCreate,
    current_user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a playbook; steps are ordered by their position in the list."""
    data = request.model_dump(mode="json")
    playbook = await PlaybookService(db).create_playbook(current_user.tenant_id, **data)
    return ApiResponse(data=PlaybookResponse.model_validate(playbook))


@router.post("/run", response_model=ApiResponse[ExecutionResponse], status_code=status.HTTP_201_CREATED)
async def run_playbook(
    request: RunPlaybookRequest,
    current_user: TokenPayload = Depends(get_current_user),
    orchestrator: PlaybookOrchestrator = Depends(get_orchestrator),
):
    """Seed an execution of a playbook against a case.

    No step is dispatched; execute the first step explicitly.
    """
    execution = await orchestrator.run(
        tenant_id=current_user.tenant_id,
        case_id=request.case_id,
        playbook_id=request.playbook_id,
        user_id=current_user.sub,
        mode=request.mode.value,
    )
    return ApiResponse(data=ExecutionResponse.model_validate(execution))


@router.get("/{playbook_id}", response_model=ApiResponse[PlaybookResponse])
async def get_playbook(
    playbook_id: str,
    current_user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    playbook = await PlaybookService(db).get_playbook(current_user.tenant_id, playbook_id)
    return ApiResponse(data=PlaybookResponse.model_validate(playbook))


@router.put("/{playbook_id}", response_model=ApiResponse[PlaybookResponse])
async def update_playbook(
    playbook_id: str,
    request: PlaybookUpdate,
    current_user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a playbook. Supplying `steps` replaces every existing step."""
    data = request.model_dump(mode="json", exclude_unset=True)
    playbook = await PlaybookService(db).update_playbook(current_user.tenant_id, playbook_id, data)
    return ApiResponse(data=PlaybookResponse.model_validate(playbook))


@router.delete("/{playbook_id}", response_model=ApiResponse[dict])
async def delete_playbook(
    playbook_id: str,
    current_user: TokenPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a playbook. Running executions are unaffected."""
    await PlaybookService(db).delete_playbook(current_user.tenant_id, playbook_id)
    return ApiResponse(data={"id": playbook_id, "deleted": True})
