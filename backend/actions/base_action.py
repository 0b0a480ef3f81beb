"""
Base action interface for all playbook response actions.

Every action (block an IP, isolate a host, send an email, ...) must
inherit from BaseAction and implement execute(). Actions are invoked by
the orchestrator through the ActionRegistry, never directly.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

from core.constants import ExecutionMode, RiskLevel

logger = structlog.get_logger(__name__)


@dataclass
class ActionContext:
    """Everything an action is told about the step invoking it."""

    tenant_id: str
    case_id: str
    execution_id: str
    execution_step_id: str
    user_id: Optional[str]
    inputs: Dict[str, Any] = field(default_factory=dict)
    mode: str = ExecutionMode.RUN.value

    @property
    def is_dry_run(self) -> bool:
        return self.mode == ExecutionMode.DRY_RUN.value


class ActionResult:
    """Standardized result from action execution."""

    def __init__(
        self,
        success: bool,
        data: Any = None,
        error: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        duration_ms: float = 0,
    ):
        self.success = success
        self.data = data
        self.error = error
        self.metadata = metadata or {}
        self.duration_ms = duration_ms
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "metadata": self.metadata,
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp.isoformat(),
        }


class BaseAction(ABC):
    """
    Abstract base class for all response actions.

    Subclasses must implement:
    - execute(ctx) -> ActionResult
    - action_id, display_name, risk_level (class attributes)

    and may override simulate(ctx) to describe what a dry run would do.
    """

    action_id: str = "base"
    display_name: str = "Base Action"
    description: str = "Abstract base action"
    risk_level: RiskLevel = RiskLevel.LOW
    required_inputs: tuple = ()

    @abstractmethod
    async def execute(self, ctx: ActionContext) -> ActionResult:
        """
        Perform the action.

        Args:
            ctx: Invocation context with resolved step inputs

        Returns:
            ActionResult with data or error
        """
        pass

    async def simulate(self, ctx: ActionContext) -> ActionResult:
        """Describe the action without side effects (dry runs)."""
        return ActionResult(
            success=True,
            data={
                "simulated": True,
                "action_id": self.action_id,
                "inputs": ctx.inputs,
            },
        )

    def missing_inputs(self, ctx: ActionContext) -> list[str]:
        return [name for name in self.required_inputs if ctx.inputs.get(name) in (None, "")]

    async def run(self, ctx: ActionContext) -> ActionResult:
        """
        Run the action with timing and error handling.

        This is the entry point called by the registry. Raised errors are
        converted into a failed ActionResult.
        """
        start = time.monotonic()
        log = logger.bind(
            action_id=self.action_id,
            tenant_id=ctx.tenant_id,
            execution_id=ctx.execution_id,
            step_id=ctx.execution_step_id,
            mode=ctx.mode,
        )
        try:
            missing = self.missing_inputs(ctx)
            if missing:
                return ActionResult(
                    success=False,
                    error=f"Missing required input(s): {', '.join(missing)}",
                )

            log.info("Action starting", action_name=self.display_name)
            if ctx.is_dry_run:
                result = await self.simulate(ctx)
            else:
                result = await self.execute(ctx)
            result.duration_ms = (time.monotonic() - start) * 1000

            log.info(
                "Action completed",
                success=result.success,
                duration_ms=round(result.duration_ms, 2),
            )
            return result

        except Exception as e:
            duration_ms = (time.monotonic() - start) * 1000
            log.error(
                "Action failed",
                error=str(e),
                duration_ms=round(duration_ms, 2),
            )
            return ActionResult(
                success=False,
                error=str(e),
                duration_ms=duration_ms,
            )

    @classmethod
    def get_input_schema(cls) -> Dict[str, Any]:
        """
        Return JSON schema for action inputs.

        Override in subclasses to document optional inputs.
        """
        return {
            "type": "object",
            "properties": {name: {"type": "string"} for name in cls.required_inputs},
            "required": list(cls.required_inputs),
        }
