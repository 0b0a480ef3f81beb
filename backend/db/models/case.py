"""Case and alert models.

The engine only reads these tables to build the variable context of a
playbook run; cases and alerts are owned by the case management service.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel, TenantScopedMixin


class Case(TenantScopedMixin, BaseModel):
    """Security case a playbook runs against."""

    __tablename__ = "cases"

    title: Mapped[str] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(nullable=False, default="")
    severity: Mapped[str] = mapped_column(default="medium", index=True)
    status: Mapped[str] = mapped_column(default="open", index=True)
    assignee_id: Mapped[Optional[str]] = mapped_column(nullable=True)
    data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    def to_context(self) -> dict[str, Any]:
        """Flatten the case into the dict exposed as `case` to playbook templates."""
        context = dict(self.data or {})
        context.update({
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "status": self.status,
            "assignee_id": self.assignee_id,
        })
        return context


class Alert(TenantScopedMixin, BaseModel):
    """Alert attached to a case."""

    __tablename__ = "alerts"

    case_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("cases.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(nullable=False)
    severity: Mapped[str] = mapped_column(default="medium")
    source: Mapped[Optional[str]] = mapped_column(nullable=True)
    source_ip: Mapped[Optional[str]] = mapped_column(nullable=True)
    hostname: Mapped[Optional[str]] = mapped_column(nullable=True)
    username: Mapped[Optional[str]] = mapped_column(nullable=True)
    data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    def to_context(self) -> dict[str, Any]:
        """Flatten the alert into the dict exposed as `alert` / `alerts[n]`."""
        context = dict(self.data or {})
        context.update({
            "id": self.id,
            "title": self.title,
            "severity": self.severity,
            "source": self.source,
            "source_ip": self.source_ip,
            "hostname": self.hostname,
            "username": self.username,
        })
        return context
