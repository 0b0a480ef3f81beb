"""Input request persistence."""

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import InputStatus
from db.models.approval import InputRequest
from services.base import BaseService


class InputService(BaseService[InputRequest]):
    """Service for analyst input requests."""

    def __init__(self, db: AsyncSession):
        super().__init__(InputRequest, db)

    async def get_pending_for_step(
        self,
        tenant_id: str,
        execution_id: str,
        step_id: str,
    ) -> Optional[InputRequest]:
        result = await self.db.execute(
            select(InputRequest).where(
                InputRequest.tenant_id == tenant_id,
                InputRequest.execution_id == execution_id,
                InputRequest.step_id == step_id,
                InputRequest.status == InputStatus.PENDING.value,
                InputRequest.is_deleted == False,
            )
        )
        return result.scalar_one_or_none()

    async def list_pending(self, tenant_id: str) -> Sequence[InputRequest]:
        """Pending input requests for a tenant, newest first."""
        result = await self.db.execute(
            select(InputRequest)
            .where(
                InputRequest.tenant_id == tenant_id,
                InputRequest.status == InputStatus.PENDING.value,
                InputRequest.is_deleted == False,
            )
            .order_by(InputRequest.created_at.desc())
        )
        return result.scalars().all()
