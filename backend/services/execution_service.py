"""Execution service: reads and status bookkeeping for playbook runs."""

from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import ExecutionStatus
from core.exceptions import NotFoundError
from db.models.execution import ExecutionStep, PlaybookExecution
from services.base import BaseService


class ExecutionService(BaseService[PlaybookExecution]):
    """Service for playbook executions and their steps."""

    def __init__(self, db: AsyncSession):
        super().__init__(PlaybookExecution, db)

    async def get_execution(self, tenant_id: str, execution_id: str) -> PlaybookExecution:
        execution = await self.get_by_id_and_tenant(execution_id, tenant_id)
        if not execution:
            raise NotFoundError(f"Execution {execution_id} not found")
        return execution

    async def list_for_case(self, tenant_id: str, case_id: str) -> Sequence[PlaybookExecution]:
        """Executions run against a case, newest first."""
        result = await self.db.execute(
            select(PlaybookExecution)
            .where(
                PlaybookExecution.tenant_id == tenant_id,
                PlaybookExecution.case_id == case_id,
                PlaybookExecution.is_deleted == False,
            )
            .order_by(PlaybookExecution.created_at.desc())
        )
        return result.scalars().all()

    async def get_step(self, tenant_id: str, execution_id: str, step_id: str) -> ExecutionStep:
        result = await self.db.execute(
            select(ExecutionStep)
            .join(PlaybookExecution, ExecutionStep.execution_id == PlaybookExecution.id)
            .where(
                PlaybookExecution.tenant_id == tenant_id,
                ExecutionStep.id == step_id,
                ExecutionStep.execution_id == execution_id,
            )
        )
        step = result.scalar_one_or_none()
        if not step:
            raise NotFoundError(f"Execution step {step_id} not found")
        return step

    async def get_step_for_template_step(
        self,
        tenant_id: str,
        execution_id: str,
        template_step_id: str,
    ) -> Optional[ExecutionStep]:
        """The execution step seeded from a given template step."""
        result = await self.db.execute(
            select(ExecutionStep)
            .join(PlaybookExecution, ExecutionStep.execution_id == PlaybookExecution.id)
            .where(
                PlaybookExecution.tenant_id == tenant_id,
                ExecutionStep.execution_id == execution_id,
                ExecutionStep.step_id == template_step_id,
            )
        )
        return result.scalar_one_or_none()

    async def finish(
        self,
        execution: PlaybookExecution,
        status: ExecutionStatus,
        error_message: Optional[str] = None,
    ) -> PlaybookExecution:
        """Move an execution to a terminal status."""
        execution.status = status.value
        execution.completed_at = datetime.now(timezone.utc)
        if error_message:
            execution.error_message = error_message
        await self.db.flush()
        return execution
