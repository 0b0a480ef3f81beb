"""Database models for the playbook execution engine.

This module imports all models to ensure they are registered
with SQLAlchemy's declarative base.
"""

from db.models.playbook import PlaybookTemplate, PlaybookStep
from db.models.execution import PlaybookExecution, ExecutionStep
from db.models.approval import ApprovalRequest, InputRequest
from db.models.case import Case, Alert
from db.models.cascade_failure import CascadeFailure

__all__ = [
    "PlaybookTemplate",
    "PlaybookStep",
    "PlaybookExecution",
    "ExecutionStep",
    "ApprovalRequest",
    "InputRequest",
    "Case",
    "Alert",
    "CascadeFailure",
]
