"""Dead-letter log for cascade jobs that exhausted their retries."""

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models.cascade_failure import CascadeFailure
from services.base import BaseService


class CascadeFailureService(BaseService[CascadeFailure]):
    """Records and lists failed successor-resolution jobs."""

    def __init__(self, db: AsyncSession):
        super().__init__(CascadeFailure, db)

    async def record(
        self,
        tenant_id: str,
        execution_id: str,
        step_id: str,
        error: Exception,
        attempts: int,
    ) -> CascadeFailure:
        return await self.create({
            "tenant_id": tenant_id,
            "execution_id": execution_id,
            "step_id": step_id,
            "error": str(error) or type(error).__name__,
            "error_type": type(error).__name__,
            "attempts": attempts,
        })

    async def list_cascade_failures(
        self,
        tenant_id: str,
        execution_id: Optional[str] = None,
    ) -> Sequence[CascadeFailure]:
        """Dead-lettered jobs for a tenant, newest first, optionally per execution."""
        query = select(CascadeFailure).where(
            CascadeFailure.tenant_id == tenant_id,
            CascadeFailure.is_deleted == False,
        )
        if execution_id:
            query = query.where(CascadeFailure.execution_id == execution_id)
        result = await self.db.execute(query.order_by(CascadeFailure.created_at.desc()))
        return result.scalars().all()
