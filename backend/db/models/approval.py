"""Human-in-the-loop request models: approvals and input requests."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import ApprovalStatus, InputStatus
from db.base import BaseModel, TenantScopedMixin


class ApprovalRequest(TenantScopedMixin, BaseModel):
    """Sign-off request blocking an approval step or a critical automation step.

    Attributes:
        execution_id: Execution the request belongs to
        step_id: Execution step waiting on the decision
        status: pending, approved or rejected
        requested_by: User who started the execution
        action_id: Action awaiting sign-off (automation steps only)
        risk_level: Risk level of that action
        decided_by: Approver
        decided_at: Decision timestamp
        comments: Approver comments
    """

    __tablename__ = "playbook_approvals"
    __table_args__ = (
        Index(
            "uq_playbook_approvals_pending",
            "execution_id",
            "step_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    execution_id: Mapped[str] = mapped_column(
        ForeignKey("playbook_executions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_id: Mapped[str] = mapped_column(
        ForeignKey("playbook_execution_steps.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(default=ApprovalStatus.PENDING.value, index=True)
    requested_by: Mapped[Optional[str]] = mapped_column(nullable=True)
    action_id: Mapped[Optional[str]] = mapped_column(nullable=True)
    risk_level: Mapped[Optional[str]] = mapped_column(nullable=True)
    decided_by: Mapped[Optional[str]] = mapped_column(nullable=True)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    comments: Mapped[Optional[str]] = mapped_column(nullable=True)


class InputRequest(TenantScopedMixin, BaseModel):
    """Request for analyst-supplied data blocking a wait_for_input step.

    Attributes:
        execution_id: Execution the request belongs to
        step_id: Execution step waiting on the data
        status: pending or submitted
        prompt: Question shown to the analyst
        input_schema: JSON schema copied from the step's config.schema
        input_data: Submitted payload
        submitted_by: Submitting user
        submitted_at: Submission timestamp
    """

    __tablename__ = "playbook_inputs"
    __table_args__ = (
        Index(
            "uq_playbook_inputs_pending",
            "execution_id",
            "step_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    execution_id: Mapped[str] = mapped_column(
        ForeignKey("playbook_executions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_id: Mapped[str] = mapped_column(
        ForeignKey("playbook_execution_steps.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(default=InputStatus.PENDING.value, index=True)
    prompt: Mapped[Optional[str]] = mapped_column(nullable=True)
    input_schema: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    input_data: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    submitted_by: Mapped[Optional[str]] = mapped_column(nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
