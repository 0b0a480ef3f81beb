"""Approval request persistence."""

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import ApprovalStatus
from db.models.approval import ApprovalRequest
from services.base import BaseService


class ApprovalService(BaseService[ApprovalRequest]):
    """Service for approval requests."""

    def __init__(self, db: AsyncSession):
        super().__init__(ApprovalRequest, db)

    async def get_pending_for_step(
        self,
        tenant_id: str,
        execution_id: str,
        step_id: str,
    ) -> Optional[ApprovalRequest]:
        """The pending request for (execution, step), if one exists."""
        result = await self.db.execute(
            select(ApprovalRequest).where(
                ApprovalRequest.tenant_id == tenant_id,
                ApprovalRequest.execution_id == execution_id,
                ApprovalRequest.step_id == step_id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
                ApprovalRequest.is_deleted == False,
            )
        )
        return result.scalar_one_or_none()

    async def list_pending(self, tenant_id: str) -> Sequence[ApprovalRequest]:
        """Pending approvals for a tenant, newest first."""
        result = await self.db.execute(
            select(ApprovalRequest)
            .where(
                ApprovalRequest.tenant_id == tenant_id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
                ApprovalRequest.is_deleted == False,
            )
            .order_by(ApprovalRequest.created_at.desc())
        )
        return result.scalars().all()
