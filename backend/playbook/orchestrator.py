"""
Playbook Orchestrator: drives executions from seeding to a terminal status.

Architecture:
    run()               -> Execution + one ExecutionStep per template step
    execute_step()      -> dispatch by step type (condition, approval,
                           wait_for_input, automation)
    update_step_status()-> the single mutation point for step status;
                           completion publishes a CascadeJob, failure
                           fails the execution
    trigger_next_step() -> resolves the successor (order + 1 or a branch
                           target) and executes it, or completes the
                           execution at the end of the chain

Every public operation runs in its own unit of work: one AsyncSession,
committed on success and rolled back on error. Cascade jobs produced
inside a unit of work are handed to the publisher only after the commit,
so a worker never resolves a successor for a state it cannot see yet.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional, Sequence

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from actions.base_action import ActionContext, ActionResult, BaseAction
from actions.registry import ActionRegistry, get_action_registry
from core.constants import (
    STEP_TRANSITIONS,
    TERMINAL_STEP_STATUSES,
    ExecutionMode,
    ExecutionStatus,
    RiskLevel,
    StepStatus,
    StepType,
)
from core.exceptions import (
    ConfigurationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from db.models.approval import ApprovalRequest, InputRequest
from db.models.execution import ExecutionStep, PlaybookExecution
from db.models.playbook import PlaybookStep
from playbook.cascade import CascadeJob
from playbook.conditions import evaluate
from playbook.variables import resolve
from services.approval_service import ApprovalService
from services.case_service import CaseService
from services.execution_service import ExecutionService
from services.input_service import InputService
from services.playbook_service import PlaybookService

logger = structlog.get_logger(__name__)


@dataclass
class StepOutcome:
    """What a dispatched step ended up doing."""

    execution_step_id: str
    status: str
    result: Any = None
    approval_id: Optional[str] = None
    input_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "execution_step_id": self.execution_step_id,
            "status": self.status,
            "result": self.result,
            "approval_id": self.approval_id,
            "input_id": self.input_id,
        }


@dataclass
class UnitOfWork:
    """A session plus the cascade jobs to publish once it commits."""

    session: AsyncSession
    jobs: list[CascadeJob] = field(default_factory=list)


class PlaybookOrchestrator:
    """Runs playbook executions step by step.

    Args:
        session_factory: async_sessionmaker producing one session per unit of work
        action_registry: Registry used to look up and invoke actions
        publisher: Cascade publisher (in-memory queue or Celery dispatcher)
            exposing `async publish(job)`
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        action_registry: Optional[ActionRegistry] = None,
        publisher=None,
    ):
        self._session_factory = session_factory
        self._registry = action_registry or get_action_registry()
        self._publisher = publisher

    @property
    def registry(self) -> ActionRegistry:
        return self._registry

    # ─── Unit of work ──────────────────────────────────────────

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[UnitOfWork]:
        """Open a session, commit on success, then publish queued cascade jobs."""
        async with self._session_factory() as session:
            uow = UnitOfWork(session=session)
            try:
                yield uow
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        for job in uow.jobs:
            await self._publish(job)

    async def _publish(self, job: CascadeJob) -> None:
        if self._publisher is None:
            logger.warning("No cascade publisher configured, dropping job", **job.to_dict())
            return
        try:
            await self._publisher.publish(job)
        except Exception as e:
            logger.error("Cascade publish failed", error=str(e), **job.to_dict())

    # ─── Run ───────────────────────────────────────────────────

    async def run(
        self,
        tenant_id: str,
        case_id: str,
        playbook_id: str,
        user_id: Optional[str],
        mode: str = ExecutionMode.RUN.value,
    ) -> PlaybookExecution:
        """Seed an execution with one pending step per template step.

        Does not dispatch anything; the caller executes the first step.

        Raises:
            NotFoundError: Playbook or case missing for the tenant
            InvalidStateError: Playbook is inactive
            ValidationError: Unknown mode
        """
        if mode not in {m.value for m in ExecutionMode}:
            raise ValidationError(f"Unknown execution mode: {mode!r}")

        async with self.unit_of_work() as uow:
            playbook = await PlaybookService(uow.session).get_playbook(tenant_id, playbook_id)
            if not playbook.is_active:
                raise InvalidStateError(f"Playbook {playbook_id} is inactive")
            await CaseService(uow.session).get_case(tenant_id, case_id)

            execution = PlaybookExecution(
                tenant_id=tenant_id,
                playbook_id=playbook.id,
                case_id=case_id,
                status=ExecutionStatus.RUNNING.value,
                started_by=user_id,
                mode=mode,
                started_at=datetime.now(timezone.utc),
            )
            execution.steps = [
                ExecutionStep(
                    step_id=step.id,
                    position=step.step_order,
                    status=StepStatus.PENDING.value,
                )
                for step in playbook.steps
            ]
            uow.session.add(execution)
            await uow.session.flush()

        logger.info(
            "Execution created",
            tenant_id=tenant_id,
            execution_id=execution.id,
            playbook_id=playbook_id,
            case_id=case_id,
            mode=mode,
            steps=len(execution.steps),
        )
        return execution

    # ─── Reads ─────────────────────────────────────────────────

    async def get_execution(self, tenant_id: str, execution_id: str) -> PlaybookExecution:
        """Execution with its steps ordered by position."""
        async with self.unit_of_work() as uow:
            return await ExecutionService(uow.session).get_execution(tenant_id, execution_id)

    async def list_executions(self, tenant_id: str, case_id: str) -> Sequence[PlaybookExecution]:
        """Executions for a case, newest first."""
        async with self.unit_of_work() as uow:
            return await ExecutionService(uow.session).list_for_case(tenant_id, case_id)

    # ─── Execute step ──────────────────────────────────────────

    async def execute_step(self, tenant_id: str, execution_id: str, step_id: str) -> StepOutcome:
        """Dispatch one execution step by its template type.

        A concurrent caller may win the insert of the pending approval or
        input request; the loser's unit of work is rolled back and the
        dispatch retried once, which then returns the winner's request.
        """
        try:
            async with self.unit_of_work() as uow:
                return await self.dispatch_step(uow, tenant_id, execution_id, step_id)
        except IntegrityError:
            logger.info(
                "Lost request race, retrying step dispatch",
                tenant_id=tenant_id,
                execution_id=execution_id,
                step_id=step_id,
            )
            async with self.unit_of_work() as uow:
                return await self.dispatch_step(uow, tenant_id, execution_id, step_id)

    async def dispatch_step(
        self,
        uow: UnitOfWork,
        tenant_id: str,
        execution_id: str,
        step_id: str,
    ) -> StepOutcome:
        executions = ExecutionService(uow.session)
        execution = await executions.get_execution(tenant_id, execution_id)
        if execution.is_terminal:
            raise InvalidStateError(
                f"Execution {execution_id} is {execution.status}; no further steps can run"
            )

        exec_step = await executions.get_step(tenant_id, execution_id, step_id)
        template = await self.get_template_step(uow.session, tenant_id, exec_step)
        log = logger.bind(
            tenant_id=tenant_id,
            execution_id=execution_id,
            step_id=step_id,
            step_type=template.type,
        )

        if template.type == StepType.APPROVAL.value:
            return await self._request_approval(uow, execution, exec_step)
        if template.type == StepType.WAIT_FOR_INPUT.value:
            return await self._request_input(uow, execution, exec_step, template)

        if StepStatus(exec_step.status) in TERMINAL_STEP_STATUSES:
            raise InvalidStateError(f"Step {step_id} is already {exec_step.status}")

        if template.type == StepType.CONDITION.value:
            context = await CaseService(uow.session).build_context(tenant_id, execution.case_id)
            condition = self._condition_of(template)
            result = {
                "type": StepType.CONDITION.value,
                "condition": condition,
                "evaluated": evaluate(condition, context) if condition else False,
            }
            log.info("Condition step completed", evaluated=result["evaluated"])
            await self.set_step_status(uow, execution, exec_step, StepStatus.COMPLETED, result)
            return StepOutcome(exec_step.id, exec_step.status, result)

        if template.type == StepType.AUTOMATION.value:
            return await self._execute_automation(uow, execution, exec_step, template)

        raise InvalidStateError(f"Step type {template.type!r} cannot auto-execute")

    async def _execute_automation(
        self,
        uow: UnitOfWork,
        execution: PlaybookExecution,
        exec_step: ExecutionStep,
        template: PlaybookStep,
    ) -> StepOutcome:
        context = await CaseService(uow.session).build_context(execution.tenant_id, execution.case_id)
        inputs = resolve(template.config or {}, context)
        action_id = template.action_id or inputs.get("action_id")
        if not action_id:
            raise ConfigurationError(f"Automation step {template.id} has no action_id")

        action = self._registry.get(action_id)
        if (
            action is not None
            and action.risk_level == RiskLevel.CRITICAL
            and not execution.is_dry_run
        ):
            logger.info(
                "Critical action requires approval",
                tenant_id=execution.tenant_id,
                execution_id=execution.id,
                step_id=exec_step.id,
                action_id=action_id,
            )
            return await self._request_approval(uow, execution, exec_step, action)

        if exec_step.status != StepStatus.IN_PROGRESS.value:
            await self.set_step_status(uow, execution, exec_step, StepStatus.IN_PROGRESS)
        return await self.run_action(uow, execution, exec_step, action_id, inputs)

    async def run_action(
        self,
        uow: UnitOfWork,
        execution: PlaybookExecution,
        exec_step: ExecutionStep,
        action_id: str,
        inputs: dict,
    ) -> StepOutcome:
        """Invoke an action and complete or fail the step from its result.

        Any error raised by the registry becomes a failed step; nothing
        propagates to the caller.
        """
        inputs = dict(inputs)
        if execution.is_dry_run:
            inputs["mode"] = ExecutionMode.DRY_RUN.value

        ctx = ActionContext(
            tenant_id=execution.tenant_id,
            case_id=execution.case_id,
            execution_id=execution.id,
            execution_step_id=exec_step.id,
            user_id=execution.started_by,
            inputs=inputs,
            mode=execution.mode,
        )
        try:
            action_result = await self._registry.execute(action_id, ctx)
        except Exception as e:
            logger.error(
                "Action invocation failed",
                tenant_id=execution.tenant_id,
                execution_id=execution.id,
                step_id=exec_step.id,
                action_id=action_id,
                error=str(e),
            )
            action_result = ActionResult(success=False, error=str(e))

        result = {
            "action_id": action_id,
            "success": action_result.success,
            "data": action_result.data,
            "error": action_result.error,
            "mode": execution.mode,
        }
        status = StepStatus.COMPLETED if action_result.success else StepStatus.FAILED
        await self.set_step_status(uow, execution, exec_step, status, result)
        return StepOutcome(exec_step.id, exec_step.status, result)

    async def _request_approval(
        self,
        uow: UnitOfWork,
        execution: PlaybookExecution,
        exec_step: ExecutionStep,
        action: Optional[BaseAction] = None,
    ) -> StepOutcome:
        approvals = ApprovalService(uow.session)
        existing = await approvals.get_pending_for_step(execution.tenant_id, execution.id, exec_step.id)
        if existing:
            return StepOutcome(exec_step.id, exec_step.status, exec_step.result, approval_id=existing.id)

        if StepStatus(exec_step.status) in TERMINAL_STEP_STATUSES:
            raise InvalidStateError(f"Step {exec_step.id} is already {exec_step.status}")

        approval = ApprovalRequest(
            tenant_id=execution.tenant_id,
            execution_id=execution.id,
            step_id=exec_step.id,
            requested_by=execution.started_by,
            action_id=action.action_id if action else None,
            risk_level=action.risk_level.value if action else None,
        )
        uow.session.add(approval)
        await uow.session.flush()

        if exec_step.status != StepStatus.WAITING_FOR_APPROVAL.value:
            await self.set_step_status(uow, execution, exec_step, StepStatus.WAITING_FOR_APPROVAL)
        logger.info(
            "Approval requested",
            tenant_id=execution.tenant_id,
            execution_id=execution.id,
            step_id=exec_step.id,
            approval_id=approval.id,
        )
        return StepOutcome(exec_step.id, exec_step.status, exec_step.result, approval_id=approval.id)

    async def _request_input(
        self,
        uow: UnitOfWork,
        execution: PlaybookExecution,
        exec_step: ExecutionStep,
        template: PlaybookStep,
    ) -> StepOutcome:
        inputs = InputService(uow.session)
        existing = await inputs.get_pending_for_step(execution.tenant_id, execution.id, exec_step.id)
        if existing:
            return StepOutcome(exec_step.id, exec_step.status, exec_step.result, input_id=existing.id)

        if StepStatus(exec_step.status) in TERMINAL_STEP_STATUSES:
            raise InvalidStateError(f"Step {exec_step.id} is already {exec_step.status}")

        config = template.config or {}
        request = InputRequest(
            tenant_id=execution.tenant_id,
            execution_id=execution.id,
            step_id=exec_step.id,
            prompt=config.get("prompt") or template.description or template.name,
            input_schema=config.get("schema"),
        )
        uow.session.add(request)
        await uow.session.flush()

        if exec_step.status != StepStatus.WAITING_FOR_INPUT.value:
            await self.set_step_status(uow, execution, exec_step, StepStatus.WAITING_FOR_INPUT)
        logger.info(
            "Input requested",
            tenant_id=execution.tenant_id,
            execution_id=execution.id,
            step_id=exec_step.id,
            input_id=request.id,
        )
        return StepOutcome(exec_step.id, exec_step.status, exec_step.result, input_id=request.id)

    # ─── Status updates ────────────────────────────────────────

    async def update_step_status(
        self,
        tenant_id: str,
        execution_id: str,
        step_id: str,
        status: str,
        result: Any = None,
    ) -> ExecutionStep:
        """Move a step to a new status.

        Completion publishes a cascade job after commit; failure fails the
        execution in the same unit of work. A step paused on a pending
        approval or input request only moves through its gate.

        Raises:
            NotFoundError: Execution or step missing
            InvalidStateError: Terminal execution or disallowed transition
            ValidationError: Unknown status
        """
        try:
            new_status = StepStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown step status: {status!r}")

        async with self.unit_of_work() as uow:
            executions = ExecutionService(uow.session)
            execution = await executions.get_execution(tenant_id, execution_id)
            exec_step = await executions.get_step(tenant_id, execution_id, step_id)
            await self._ensure_not_gated(uow.session, tenant_id, execution_id, exec_step)
            await self.set_step_status(uow, execution, exec_step, new_status, result)
            return exec_step

    async def _ensure_not_gated(
        self,
        session: AsyncSession,
        tenant_id: str,
        execution_id: str,
        exec_step: ExecutionStep,
    ) -> None:
        if exec_step.status == StepStatus.WAITING_FOR_APPROVAL.value:
            pending = await ApprovalService(session).get_pending_for_step(tenant_id, execution_id, exec_step.id)
            gate = "approval"
        elif exec_step.status == StepStatus.WAITING_FOR_INPUT.value:
            pending = await InputService(session).get_pending_for_step(tenant_id, execution_id, exec_step.id)
            gate = "input"
        else:
            return
        if pending is not None:
            raise InvalidStateError(
                f"Step {exec_step.id} is waiting on {gate} request {pending.id}; decide it through the {gate} endpoint"
            )

    async def set_step_status(
        self,
        uow: UnitOfWork,
        execution: PlaybookExecution,
        exec_step: ExecutionStep,
        status: StepStatus,
        result: Any = None,
    ) -> None:
        """Single mutation point for execution step status."""
        if execution.is_terminal:
            raise InvalidStateError(
                f"Execution {execution.id} is {execution.status}; step status is frozen"
            )

        current = StepStatus(exec_step.status)
        if status not in STEP_TRANSITIONS[current]:
            raise InvalidStateError(
                f"Cannot move step {exec_step.id} from {current.value} to {status.value}"
            )

        exec_step.status = status.value
        if result is not None:
            exec_step.result = result
        if status in TERMINAL_STEP_STATUSES:
            exec_step.completed_at = datetime.now(timezone.utc)
        await uow.session.flush()

        logger.info(
            "Step status updated",
            tenant_id=execution.tenant_id,
            execution_id=execution.id,
            step_id=exec_step.id,
            from_status=current.value,
            to_status=status.value,
        )

        if status == StepStatus.COMPLETED:
            uow.jobs.append(CascadeJob(
                tenant_id=execution.tenant_id,
                execution_id=execution.id,
                completed_step_id=exec_step.id,
            ))
        elif status == StepStatus.FAILED:
            error = result.get("error") if isinstance(result, dict) else None
            await ExecutionService(uow.session).finish(
                execution,
                ExecutionStatus.FAILED,
                error_message=error or f"Step {exec_step.id} failed",
            )
            logger.warning(
                "Execution failed",
                tenant_id=execution.tenant_id,
                execution_id=execution.id,
                step_id=exec_step.id,
                error=execution.error_message,
            )

    # ─── Successor resolution ──────────────────────────────────

    async def trigger_next_step(
        self,
        tenant_id: str,
        execution_id: str,
        completed_step_id: str,
    ) -> Optional[StepOutcome]:
        """Resolve and dispatch the successor of a completed step.

        Returns None when the execution was already terminal or has just
        been completed because no successor exists.

        Raises:
            NotFoundError: Execution missing, or the successor's template
                step no longer has a pre-created execution step
        """
        async with self.unit_of_work() as uow:
            executions = ExecutionService(uow.session)
            execution = await executions.get_execution(tenant_id, execution_id)
            log = logger.bind(
                tenant_id=tenant_id,
                execution_id=execution_id,
                completed_step_id=completed_step_id,
            )
            if execution.is_terminal:
                log.info("Execution already terminal, skipping successor", status=execution.status)
                return None

            completed = await executions.get_step(tenant_id, execution_id, completed_step_id)
            template = await self.get_template_step(uow.session, tenant_id, completed)
            next_order = await self._resolve_next_order(uow, execution, template)

            next_template = await PlaybookService(uow.session).get_step_by_order(
                tenant_id, execution.playbook_id, next_order
            )
            if next_template is None:
                await executions.finish(execution, ExecutionStatus.COMPLETED)
                log.info("Execution completed", last_order=template.step_order)
                return None

            next_step = await executions.get_step_for_template_step(tenant_id, execution_id, next_template.id)
            if next_step is None:
                raise NotFoundError(
                    f"No execution step for template step {next_template.id} "
                    f"(order {next_order}); the playbook was edited after this execution started"
                )

            if next_template.type == StepType.MANUAL.value:
                log.info("Successor is manual, awaiting analyst", next_step_id=next_step.id, next_order=next_order)
                return StepOutcome(next_step.id, next_step.status, next_step.result)

            log.info("Dispatching successor", next_step_id=next_step.id, next_order=next_order)
            return await self.dispatch_step(uow, tenant_id, execution_id, next_step.id)

    async def _resolve_next_order(
        self,
        uow: UnitOfWork,
        execution: PlaybookExecution,
        template: PlaybookStep,
    ) -> int:
        next_order = template.step_order + 1
        targets = template.branch_targets
        if template.type != StepType.CONDITION.value and not targets:
            return next_order

        condition = self._condition_of(template)
        context = await CaseService(uow.session).build_context(execution.tenant_id, execution.case_id)
        outcome = evaluate(condition, context) if condition else False
        target = targets.get("true_step" if outcome else "false_step")
        logger.info(
            "Branch evaluated",
            execution_id=execution.id,
            condition=condition,
            outcome=outcome,
            target=target,
        )
        if target is None:
            return next_order
        try:
            return int(target)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Branch target {target!r} on step {template.id} is not a step order")

    # ─── Helpers ───────────────────────────────────────────────

    @staticmethod
    def _condition_of(template: PlaybookStep) -> Optional[str]:
        config = template.config or {}
        return config.get("condition") or config.get("expression")

    @staticmethod
    async def get_template_step(session: AsyncSession, tenant_id: str, exec_step: ExecutionStep) -> PlaybookStep:
        template = await PlaybookService(session).get_step(tenant_id, exec_step.step_id)
        if template is None:
            raise NotFoundError(
                f"Template step {exec_step.step_id} for execution step {exec_step.id} no longer exists"
            )
        return template
