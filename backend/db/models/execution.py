"""Playbook execution models."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import ExecutionMode, ExecutionStatus, StepStatus
from db.base import BaseModel, TenantScopedMixin


class PlaybookExecution(TenantScopedMixin, BaseModel):
    """One run of a playbook against a case.

    Attributes:
        id: Unique identifier (UUID string)
        tenant_id: Owning tenant
        playbook_id: Playbook being run
        case_id: Case the playbook runs against
        status: running, completed or failed (the last two are terminal)
        started_by: User who started the run
        mode: run or dry_run
        started_at: Start timestamp
        completed_at: Set when the execution reaches a terminal status
        error_message: Why the execution failed
    """

    __tablename__ = "playbook_executions"

    playbook_id: Mapped[str] = mapped_column(
        ForeignKey("playbooks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    case_id: Mapped[str] = mapped_column(nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        default=ExecutionStatus.RUNNING.value, index=True
    )
    started_by: Mapped[Optional[str]] = mapped_column(nullable=True)
    mode: Mapped[str] = mapped_column(default=ExecutionMode.RUN.value)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(nullable=True)

    playbook: Mapped["PlaybookTemplate"] = relationship("PlaybookTemplate", lazy="noload")
    steps: Mapped[list["ExecutionStep"]] = relationship(
        "ExecutionStep",
        back_populates="execution",
        cascade="all, delete-orphan",
        order_by="ExecutionStep.position",
        lazy="selectin",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in (ExecutionStatus.COMPLETED.value, ExecutionStatus.FAILED.value)

    @property
    def is_dry_run(self) -> bool:
        return self.mode == ExecutionMode.DRY_RUN.value


class ExecutionStep(BaseModel):
    """Stateful instance of a template step within one execution.

    Attributes:
        id: Unique identifier (UUID string)
        execution_id: Foreign key to PlaybookExecution
        step_id: Template step this row was copied from at run time
        position: Template order at run time
        status: pending, in_progress, waiting_for_approval, waiting_for_input,
                completed, failed or skipped
        result: JSON result of the step
        completed_at: Set for completed, failed and skipped
    """

    __tablename__ = "playbook_execution_steps"

    execution_id: Mapped[str] = mapped_column(
        ForeignKey("playbook_executions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Plain id, not a FK: template steps may be replaced under a running execution.
    step_id: Mapped[str] = mapped_column(nullable=False, index=True)
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    status: Mapped[str] = mapped_column(default=StepStatus.PENDING.value, index=True)
    result: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    execution: Mapped["PlaybookExecution"] = relationship(
        "PlaybookExecution", back_populates="steps", lazy="noload"
    )
