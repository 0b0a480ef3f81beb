"""Playbook template models."""

from typing import Optional

from sqlalchemy import JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import TriggerType
from db.base import BaseModel, TenantScopedMixin


class PlaybookTemplate(TenantScopedMixin, BaseModel):
    """Playbook template: an ordered, possibly branching list of response steps.

    Attributes:
        id: Unique identifier (UUID string)
        tenant_id: Owning tenant
        title: Playbook title
        description: Free-text description
        trigger_type: How the playbook is meant to be started (manual, alert, case)
        target_tag: Optional case/alert tag the playbook targets
        is_active: Whether the playbook can be run
        steps: Template steps ordered by step_order
    """

    __tablename__ = "playbooks"

    title: Mapped[str] = mapped_column(nullable=False, index=True)
    description: Mapped[str] = mapped_column(nullable=False, default="")
    trigger_type: Mapped[str] = mapped_column(default=TriggerType.MANUAL.value)
    target_tag: Mapped[Optional[str]] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, index=True)

    steps: Mapped[list["PlaybookStep"]] = relationship(
        "PlaybookStep",
        back_populates="playbook",
        cascade="all, delete-orphan",
        order_by="PlaybookStep.step_order",
        lazy="selectin",
    )


class PlaybookStep(BaseModel):
    """A single step of a playbook template.

    Attributes:
        id: Unique identifier (UUID string)
        playbook_id: Foreign key to PlaybookTemplate
        step_order: 1-based position, unique within the playbook
        type: manual, automation, approval, condition or wait_for_input
        name: Step name
        description: Step description
        action_id: Registry action invoked by automation steps
        config: Templated JSON (inputs, condition, true_step/false_step, schema)
    """

    __tablename__ = "playbook_steps"
    __table_args__ = (
        UniqueConstraint("playbook_id", "step_order", name="uq_playbook_steps_order"),
    )

    playbook_id: Mapped[str] = mapped_column(
        ForeignKey("playbooks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_order: Mapped[int] = mapped_column(nullable=False)
    type: Mapped[str] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(nullable=False, default="")
    action_id: Mapped[Optional[str]] = mapped_column(nullable=True)
    config: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    playbook: Mapped["PlaybookTemplate"] = relationship(
        "PlaybookTemplate", back_populates="steps", lazy="noload"
    )

    @property
    def branch_targets(self) -> dict:
        """true_step / false_step overrides carried in config, if any."""
        config = self.config or {}
        return {
            key: config[key]
            for key in ("true_step", "false_step")
            if config.get(key) not in (None, "")
        }
