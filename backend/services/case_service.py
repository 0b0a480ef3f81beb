"""Read-only access to cases and alerts for building playbook context."""

from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError
from db.models.case import Alert, Case
from services.base import BaseService


class CaseService(BaseService[Case]):
    """Loads a case with its alerts, scoped to a tenant."""

    def __init__(self, db: AsyncSession):
        super().__init__(Case, db)

    async def get_case(self, tenant_id: str, case_id: str) -> Case:
        case = await self.get_by_id_and_tenant(case_id, tenant_id)
        if not case:
            raise NotFoundError(f"Case {case_id} not found")
        return case

    async def get_alerts(self, tenant_id: str, case_id: str) -> Sequence[Alert]:
        """Alerts attached to a case, oldest first."""
        result = await self.db.execute(
            select(Alert)
            .where(
                Alert.tenant_id == tenant_id,
                Alert.case_id == case_id,
                Alert.is_deleted == False,
            )
            .order_by(Alert.created_at.asc(), Alert.id.asc())
        )
        return result.scalars().all()

    async def build_context(self, tenant_id: str, case_id: str) -> dict[str, Any]:
        """Variable context exposed to step configs and conditions.

        Returns:
            {"case": {...}, "alerts": [{...}, ...], "alert": first alert or None}
        """
        case = await self.get_case(tenant_id, case_id)
        alerts = [alert.to_context() for alert in await self.get_alerts(tenant_id, case_id)]
        primary: Optional[dict] = alerts[0] if alerts else None
        return {
            "case": case.to_context(),
            "alerts": alerts,
            "alert": primary,
        }
