"""Execution schemas."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from core.constants import ExecutionMode, StepStatus


class RunPlaybookRequest(BaseModel):
    """Request to run a playbook against a case."""

    playbook_id: str = Field(min_length=1)
    case_id: str = Field(min_length=1)
    mode: ExecutionMode = Field(default=ExecutionMode.RUN, description="run or dry_run")


class StepStatusUpdate(BaseModel):
    """Manual status change for an execution step."""

    status: StepStatus
    result: Optional[Any] = None


class ExecutionStepResponse(BaseModel):
    id: str
    step_id: str
    position: int
    status: str
    result: Optional[Any]
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class ExecutionResponse(BaseModel):
    """Execution with its steps ordered by position."""

    id: str
    playbook_id: str
    case_id: str
    status: str
    mode: str
    started_by: Optional[str]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    error_message: Optional[str]
    steps: List[ExecutionStepResponse]

    class Config:
        from_attributes = True


class StepOutcomeResponse(BaseModel):
    execution_step_id: str
    status: str
    result: Optional[Any] = None
    approval_id: Optional[str] = None
    input_id: Optional[str] = None


class CascadeFailureResponse(BaseModel):
    id: str
    execution_id: str
    step_id: str
    error: str
    error_type: str
    attempts: int
    created_at: datetime

    class Config:
        from_attributes = True
