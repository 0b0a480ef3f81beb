"""Playbook template service: CRUD with full-replace step updates."""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import StepType, TriggerType
from core.exceptions import NotFoundError, ValidationError
from db.models.playbook import PlaybookStep, PlaybookTemplate
from services.base import BaseService

logger = logging.getLogger(__name__)

_VALID_STEP_TYPES = {t.value for t in StepType}


class PlaybookService(BaseService[PlaybookTemplate]):
    """Service for playbook template management."""

    def __init__(self, db: AsyncSession):
        super().__init__(PlaybookTemplate, db)

    async def list_playbooks(
        self,
        tenant_id: str,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[PlaybookTemplate], int]:
        """List a tenant's playbooks, newest first."""
        return await self.list(tenant_id=tenant_id, offset=offset, limit=limit)

    async def get_playbook(self, tenant_id: str, playbook_id: str) -> PlaybookTemplate:
        """Get a playbook with its ordered steps.

        Raises:
            NotFoundError: If the playbook does not exist for the tenant
        """
        playbook = await self.get_by_id_and_tenant(playbook_id, tenant_id)
        if not playbook:
            raise NotFoundError(f"Playbook {playbook_id} not found")
        return playbook

    async def create_playbook(
        self,
        tenant_id: str,
        title: str,
        description: str = "",
        trigger_type: str = TriggerType.MANUAL.value,
        target_tag: Optional[str] = None,
        is_active: bool = True,
        steps: Optional[list[dict[str, Any]]] = None,
    ) -> PlaybookTemplate:
        """Create a playbook; steps are numbered by array position starting at 1."""
        playbook = await self.create({
            "tenant_id": tenant_id,
            "title": title,
            "description": description or "",
            "trigger_type": trigger_type or TriggerType.MANUAL.value,
            "target_tag": target_tag,
            "is_active": is_active,
        })
        await self._insert_steps(playbook.id, steps or [])
        logger.info(f"Playbook {playbook.id} created for tenant {tenant_id} with {len(steps or [])} steps")
        return await self._reload(tenant_id, playbook.id)

    async def update_playbook(
        self,
        tenant_id: str,
        playbook_id: str,
        data: dict[str, Any],
    ) -> PlaybookTemplate:
        """Update scalar fields; a supplied `steps` list replaces every step.

        Replacement deletes all existing template steps and inserts the new
        set renumbered by position. Executions already seeded from the old
        steps keep their rows but lose their template binding.
        """
        data = dict(data)
        steps = data.pop("steps", None)

        playbook = await self.update(playbook_id, tenant_id, data)
        if not playbook:
            raise NotFoundError(f"Playbook {playbook_id} not found")

        if steps is not None:
            await self.db.execute(
                delete(PlaybookStep).where(PlaybookStep.playbook_id == playbook_id)
            )
            await self.db.flush()
            await self._insert_steps(playbook_id, steps)
            logger.info(f"Playbook {playbook_id} steps replaced ({len(steps)} steps)")

        return await self._reload(tenant_id, playbook_id)

    async def delete_playbook(self, tenant_id: str, playbook_id: str) -> None:
        """Soft-delete a playbook.

        Raises:
            NotFoundError: If the playbook does not exist for the tenant
        """
        if not await self.soft_delete(playbook_id, tenant_id):
            raise NotFoundError(f"Playbook {playbook_id} not found")
        logger.info(f"Playbook {playbook_id} deleted for tenant {tenant_id}")

    async def get_step(self, tenant_id: str, template_step_id: str) -> Optional[PlaybookStep]:
        """A template step by id, including steps of soft-deleted playbooks."""
        result = await self.db.execute(
            select(PlaybookStep)
            .join(PlaybookTemplate, PlaybookStep.playbook_id == PlaybookTemplate.id)
            .where(
                PlaybookTemplate.tenant_id == tenant_id,
                PlaybookStep.id == template_step_id,
                PlaybookStep.is_deleted == False,
            )
        )
        return result.scalar_one_or_none()

    async def get_step_by_order(
        self,
        tenant_id: str,
        playbook_id: str,
        step_order: int,
    ) -> Optional[PlaybookStep]:
        """Template step at a given order, or None past the end of the chain."""
        result = await self.db.execute(
            select(PlaybookStep)
            .join(PlaybookTemplate, PlaybookStep.playbook_id == PlaybookTemplate.id)
            .where(
                PlaybookTemplate.tenant_id == tenant_id,
                PlaybookStep.playbook_id == playbook_id,
                PlaybookStep.step_order == step_order,
                PlaybookStep.is_deleted == False,
            )
        )
        return result.scalar_one_or_none()

    async def _insert_steps(self, playbook_id: str, steps: list[dict[str, Any]]) -> None:
        for position, step in enumerate(steps, start=1):
            step_type = step.get("type")
            if step_type not in _VALID_STEP_TYPES:
                raise ValidationError(f"Unknown step type: {step_type!r}")
            self.db.add(PlaybookStep(
                playbook_id=playbook_id,
                step_order=position,
                type=step_type,
                name=step.get("name") or f"Step {position}",
                description=step.get("description") or "",
                action_id=step.get("action_id"),
                config=step.get("config") or {},
            ))
        await self.db.flush()

    async def _reload(self, tenant_id: str, playbook_id: str) -> PlaybookTemplate:
        # selectin relationship must be re-read after steps change
        result = await self.db.execute(
            select(PlaybookTemplate)
            .where(
                PlaybookTemplate.id == playbook_id,
                PlaybookTemplate.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
