"""Dead-letter log for successor-resolution jobs."""

from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel, TenantScopedMixin


class CascadeFailure(TenantScopedMixin, BaseModel):
    """A cascade job that exhausted its retries.

    Attributes:
        execution_id: Execution whose cascade stopped
        step_id: Completed execution step whose successor could not be resolved
        error: Last error message
        error_type: Exception class name of the last error
        attempts: Number of attempts made
    """

    __tablename__ = "playbook_cascade_failures"

    execution_id: Mapped[str] = mapped_column(nullable=False, index=True)
    step_id: Mapped[str] = mapped_column(nullable=False)
    error: Mapped[str] = mapped_column(nullable=False)
    error_type: Mapped[str] = mapped_column(nullable=False, default="Exception")
    attempts: Mapped[int] = mapped_column(default=1)
