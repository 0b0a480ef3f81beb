"""Base CRUD service with soft-delete aware, tenant-scoped queries.

All service classes inherit from this. Every read and write carries an
explicit tenant_id predicate; nothing is cached across tenants.
"""

from typing import Any, Generic, Optional, Sequence, Type, TypeVar
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.base import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseService(Generic[ModelType]):
    """Generic CRUD service for any tenant-owned SQLAlchemy model.

    Usage:
        class ApprovalService(BaseService[ApprovalRequest]):
            def __init__(self, db: AsyncSession):
                super().__init__(ApprovalRequest, db)
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    # ─── Read ──────────────────────────────────────────────

    async def get_by_id_and_tenant(
        self,
        id: str,
        tenant_id: str,
        include_deleted: bool = False,
    ) -> Optional[ModelType]:
        """Get a single record scoped to a tenant."""
        query = select(self.model).where(
            self.model.id == id,
            self.model.tenant_id == tenant_id,
        )
        if not include_deleted:
            query = query.where(self.model.is_deleted == False)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list(
        self,
        tenant_id: str,
        offset: int = 0,
        limit: int = 50,
        order_by: str = "created_at",
        order_desc: bool = True,
        include_deleted: bool = False,
        filters: dict[str, Any] = None,
    ) -> tuple[Sequence[ModelType], int]:
        """List a tenant's records with pagination, filtering, and sorting.

        Returns:
            Tuple of (items, total_count)
        """
        query = select(self.model).where(self.model.tenant_id == tenant_id)
        count_query = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.tenant_id == tenant_id)
        )

        if not include_deleted:
            query = query.where(self.model.is_deleted == False)
            count_query = count_query.where(self.model.is_deleted == False)

        if filters:
            for field, value in filters.items():
                if hasattr(self.model, field):
                    col = getattr(self.model, field)
                    if isinstance(value, list):
                        query = query.where(col.in_(value))
                        count_query = count_query.where(col.in_(value))
                    else:
                        query = query.where(col == value)
                        count_query = count_query.where(col == value)

        if hasattr(self.model, order_by):
            col = getattr(self.model, order_by)
            query = query.order_by(col.desc() if order_desc else col.asc())

        query = query.offset(offset).limit(limit)

        result = await self.db.execute(query)
        items = result.scalars().all()

        count_result = await self.db.execute(count_query)
        total = count_result.scalar() or 0

        return items, total

    # ─── Create ────────────────────────────────────────────

    async def create(self, data: dict[str, Any]) -> ModelType:
        """Create a new record.

        Args:
            data: Dict of field values (must include tenant_id)

        Returns:
            Created model instance
        """
        if "id" not in data:
            data["id"] = str(uuid4())

        instance = self.model(**data)
        self.db.add(instance)
        await self.db.flush()
        return instance

    # ─── Update ────────────────────────────────────────────

    async def update(
        self,
        id: str,
        tenant_id: str,
        data: dict[str, Any],
    ) -> Optional[ModelType]:
        """Update a tenant's record by ID.

        None values are skipped. Returns None if the record does not exist.
        """
        instance = await self.get_by_id_and_tenant(id, tenant_id)
        if not instance:
            return None

        for key, value in data.items():
            if value is not None and hasattr(instance, key):
                setattr(instance, key, value)

        await self.db.flush()
        return instance

    # ─── Delete ────────────────────────────────────────────

    async def soft_delete(self, id: str, tenant_id: str) -> bool:
        """Soft-delete a record (set is_deleted=True).

        Returns:
            True if deleted, False if not found
        """
        instance = await self.get_by_id_and_tenant(id, tenant_id)
        if not instance:
            return False

        instance.soft_delete()
        await self.db.flush()
        return True
