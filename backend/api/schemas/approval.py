"""Approval and input request schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from core.constants import ApprovalDecision


class ApprovalResponse(BaseModel):
    id: str
    execution_id: str
    step_id: str
    status: str
    requested_by: Optional[str]
    action_id: Optional[str]
    risk_level: Optional[str]
    decided_by: Optional[str]
    decided_at: Optional[datetime]
    comments: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ApprovalDecisionRequest(BaseModel):
    decision: ApprovalDecision = Field(description="approved or rejected")
    comments: Optional[str] = None


class InputRequestResponse(BaseModel):
    id: str
    execution_id: str
    step_id: str
    status: str
    prompt: Optional[str]
    input_schema: Optional[Any]
    input_data: Optional[Any]
    submitted_by: Optional[str]
    submitted_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class InputSubmitRequest(BaseModel):
    data: Any = Field(description="Analyst-supplied payload")
