"""Human-in-the-loop gates: approval decisions and analyst input.

Both gates resume a paused execution step through the orchestrator's
single mutation point, so a rejection fails the execution and an
approval or submission publishes the cascade job for the successor.
"""

from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import structlog

from core.constants import (
    ApprovalDecision,
    ApprovalStatus,
    InputStatus,
    StepStatus,
    StepType,
)
from core.exceptions import InvalidStateError, NotFoundError, ValidationError
from db.models.approval import ApprovalRequest, InputRequest
from playbook.orchestrator import PlaybookOrchestrator, StepOutcome
from playbook.variables import resolve
from services.approval_service import ApprovalService
from services.case_service import CaseService
from services.execution_service import ExecutionService
from services.input_service import InputService

logger = structlog.get_logger(__name__)


class ApprovalGate:
    """Records approval decisions and resumes the waiting step."""

    def __init__(self, orchestrator: PlaybookOrchestrator):
        self._orchestrator = orchestrator

    async def decide(
        self,
        tenant_id: str,
        approval_id: str,
        user_id: str,
        decision: str,
        comments: Optional[str] = None,
    ) -> StepOutcome:
        """Approve or reject a pending request.

        Approved approval steps complete; approved critical automation
        steps run their action now and complete or fail from its result.
        Rejection fails the step and with it the execution.

        Raises:
            ValidationError: Unknown decision
            NotFoundError: No such request for the tenant
            InvalidStateError: Request already decided, or execution terminal
        """
        try:
            decision = ApprovalDecision(decision)
        except ValueError:
            raise ValidationError(f"Unknown decision: {decision!r} (expected 'approved' or 'rejected')")

        async with self._orchestrator.unit_of_work() as uow:
            approvals = ApprovalService(uow.session)
            approval = await approvals.get_by_id_and_tenant(approval_id, tenant_id)
            if not approval:
                raise NotFoundError(f"Approval {approval_id} not found")
            if approval.status != ApprovalStatus.PENDING.value:
                raise InvalidStateError(f"Approval {approval_id} was already {approval.status}")

            executions = ExecutionService(uow.session)
            execution = await executions.get_execution(tenant_id, approval.execution_id)
            exec_step = await executions.get_step(execution.tenant_id, execution.id, approval.step_id)

            decided_at = datetime.now(timezone.utc)
            approval.status = (
                ApprovalStatus.APPROVED.value
                if decision == ApprovalDecision.APPROVED
                else ApprovalStatus.REJECTED.value
            )
            approval.decided_by = user_id
            approval.decided_at = decided_at
            approval.comments = comments
            await uow.session.flush()

            log = logger.bind(
                tenant_id=tenant_id,
                execution_id=execution.id,
                step_id=exec_step.id,
                approval_id=approval.id,
                decision=decision.value,
            )
            log.info("Approval decided", decided_by=user_id)

            result = {
                "decision": decision.value,
                "comments": comments,
                "decided_by": user_id,
                "decided_at": decided_at.isoformat(),
            }

            if decision == ApprovalDecision.REJECTED:
                await self._orchestrator.set_step_status(
                    uow, execution, exec_step, StepStatus.FAILED,
                    {**result, "error": f"Rejected by {user_id}"},
                )
                return StepOutcome(exec_step.id, exec_step.status, exec_step.result, approval_id=approval.id)

            if approval.action_id:
                log.info("Running approved action", action_id=approval.action_id)
                inputs = await self._action_inputs(uow, execution, exec_step)
                await self._orchestrator.set_step_status(uow, execution, exec_step, StepStatus.IN_PROGRESS)
                outcome = await self._orchestrator.run_action(
                    uow, execution, exec_step, approval.action_id, inputs
                )
                exec_step.result = {**outcome.result, "approval": result}
                outcome.result = exec_step.result
                outcome.approval_id = approval.id
                return outcome

            await self._orchestrator.set_step_status(uow, execution, exec_step, StepStatus.COMPLETED, result)
            return StepOutcome(exec_step.id, exec_step.status, result, approval_id=approval.id)

    async def _action_inputs(self, uow, execution, exec_step) -> dict:
        template = await self._orchestrator.get_template_step(uow.session, execution.tenant_id, exec_step)
        if template.type != StepType.AUTOMATION.value:
            return {}
        context = await CaseService(uow.session).build_context(execution.tenant_id, execution.case_id)
        return resolve(template.config or {}, context)

    async def list_pending(self, tenant_id: str) -> Sequence[ApprovalRequest]:
        async with self._orchestrator.unit_of_work() as uow:
            return await ApprovalService(uow.session).list_pending(tenant_id)


class InputGate:
    """Accepts analyst-supplied data and resumes the waiting step."""

    def __init__(self, orchestrator: PlaybookOrchestrator):
        self._orchestrator = orchestrator

    async def submit(
        self,
        tenant_id: str,
        input_id: str,
        user_id: str,
        data: Any,
    ) -> StepOutcome:
        """Record submitted data and complete the waiting step.

        Raises:
            NotFoundError: No such request for the tenant
            InvalidStateError: Input already submitted, or execution terminal
        """
        async with self._orchestrator.unit_of_work() as uow:
            request = await InputService(uow.session).get_by_id_and_tenant(input_id, tenant_id)
            if not request:
                raise NotFoundError(f"Input request {input_id} not found")
            if request.status != InputStatus.PENDING.value:
                raise InvalidStateError(f"Input request {input_id} was already {request.status}")

            executions = ExecutionService(uow.session)
            execution = await executions.get_execution(tenant_id, request.execution_id)
            exec_step = await executions.get_step(execution.tenant_id, execution.id, request.step_id)

            submitted_at = datetime.now(timezone.utc)
            request.status = InputStatus.SUBMITTED.value
            request.input_data = data
            request.submitted_by = user_id
            request.submitted_at = submitted_at
            await uow.session.flush()

            result = {
                "inputData": data,
                "submittedBy": user_id,
                "submittedAt": submitted_at.isoformat(),
            }
            await self._orchestrator.set_step_status(uow, execution, exec_step, StepStatus.COMPLETED, result)
            logger.info(
                "Input submitted",
                tenant_id=tenant_id,
                execution_id=execution.id,
                step_id=exec_step.id,
                input_id=request.id,
            )
            return StepOutcome(exec_step.id, exec_step.status, result, input_id=request.id)

    async def list_pending(self, tenant_id: str) -> Sequence[InputRequest]:
        async with self._orchestrator.unit_of_work() as uow:
            return await InputService(uow.session).list_pending(tenant_id)
