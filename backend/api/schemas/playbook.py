"""Playbook template schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.constants import StepType, TriggerType


class PlaybookStepCreate(BaseModel):
    """A template step; order is taken from its position in the list."""

    name: str = Field(min_length=1, description="Step name")
    type: StepType = Field(description="manual, automation, approval, condition or wait_for_input")
    description: Optional[str] = Field(default="", description="Step description")
    action_id: Optional[str] = Field(default=None, description="Registry action for automation steps")
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Templated config: action inputs, condition, true_step/false_step, prompt, schema",
    )


class PlaybookCreate(BaseModel):
    """Request to create a playbook."""

    title: str = Field(min_length=1, description="Playbook title")
    description: Optional[str] = Field(default="", description="Playbook description")
    trigger_type: TriggerType = Field(default=TriggerType.MANUAL)
    target_tag: Optional[str] = None
    is_active: bool = True
    steps: List[PlaybookStepCreate] = Field(default_factory=list)


class PlaybookUpdate(BaseModel):
    """Request to update a playbook. A supplied `steps` list replaces all steps."""

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    trigger_type: Optional[TriggerType] = None
    target_tag: Optional[str] = None
    is_active: Optional[bool] = None
    steps: Optional[List[PlaybookStepCreate]] = None


class PlaybookStepResponse(BaseModel):
    id: str
    step_order: int
    name: str
    type: str
    description: str
    action_id: Optional[str]
    config: Optional[Dict[str, Any]]

    class Config:
        from_attributes = True


class PlaybookResponse(BaseModel):
    """Playbook with its ordered steps."""

    id: str
    title: str
    description: str
    trigger_type: str
    target_tag: Optional[str]
    is_active: bool
    steps: List[PlaybookStepResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
