"""Constants and enums for the playbook execution engine."""

from enum import Enum


class StepType(str, Enum):
    """Kind of work a playbook step performs."""

    MANUAL = "manual"
    AUTOMATION = "automation"
    APPROVAL = "approval"
    CONDITION = "condition"
    WAIT_FOR_INPUT = "wait_for_input"


class StepStatus(str, Enum):
    """Status of a single execution step."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    WAITING_FOR_APPROVAL = "waiting_for_approval"
    WAITING_FOR_INPUT = "waiting_for_input"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExecutionStatus(str, Enum):
    """Playbook execution status."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ExecutionMode(str, Enum):
    """Whether actions run for real or are rehearsed."""

    RUN = "run"
    DRY_RUN = "dry_run"


class ApprovalStatus(str, Enum):
    """Approval request status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDecision(str, Enum):
    """Decision an approver can record."""

    APPROVED = "approved"
    REJECTED = "rejected"


class InputStatus(str, Enum):
    """Input request status."""

    PENDING = "pending"
    SUBMITTED = "submitted"


class RiskLevel(str, Enum):
    """Risk classification carried by every registered action."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TriggerType(str, Enum):
    """How a playbook is meant to be started."""

    MANUAL = "manual"
    ALERT = "alert"
    CASE = "case"


TERMINAL_STEP_STATUSES = frozenset(
    {StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.SKIPPED}
)

TERMINAL_EXECUTION_STATUSES = frozenset(
    {ExecutionStatus.COMPLETED, ExecutionStatus.FAILED}
)

# Allowed forward moves. Paused states may resume to in_progress.
STEP_TRANSITIONS: dict[StepStatus, frozenset[StepStatus]] = {
    StepStatus.PENDING: frozenset({
        StepStatus.IN_PROGRESS,
        StepStatus.WAITING_FOR_APPROVAL,
        StepStatus.WAITING_FOR_INPUT,
        StepStatus.COMPLETED,
        StepStatus.FAILED,
        StepStatus.SKIPPED,
    }),
    StepStatus.IN_PROGRESS: frozenset({
        StepStatus.WAITING_FOR_APPROVAL,
        StepStatus.WAITING_FOR_INPUT,
        StepStatus.COMPLETED,
        StepStatus.FAILED,
        StepStatus.SKIPPED,
    }),
    StepStatus.WAITING_FOR_APPROVAL: frozenset({
        StepStatus.IN_PROGRESS,
        StepStatus.COMPLETED,
        StepStatus.FAILED,
        StepStatus.SKIPPED,
    }),
    StepStatus.WAITING_FOR_INPUT: frozenset({
        StepStatus.IN_PROGRESS,
        StepStatus.COMPLETED,
        StepStatus.FAILED,
        StepStatus.SKIPPED,
    }),
    StepStatus.COMPLETED: frozenset(),
    StepStatus.FAILED: frozenset(),
    StepStatus.SKIPPED: frozenset(),
}
