# backend/otohub/db/repositories/tenant_scoped.py
"""
Tenant-scoped data access.

Every method takes the effective tenant id as its first argument and merges
it into the statement: filters for reads, updates and deletes; payloads for
creates and updates. A caller-supplied ``tenant_id`` is always overwritten.

Only tables listed in TENANT_SCOPED_TABLES may be accessed this way. Tables
that intentionally span tenants (dealer groups, stock transfers) go through
the unscoped BaseRepository with authorization checks at the call site.
"""
import logging
from typing import Any, ClassVar, Dict, FrozenSet, Generic, Iterable, List, Optional, Type

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from otohub.core.constants import PROTECTED_FIELDS
from otohub.db.base import utcnow
from otohub.db.repositories.base import ModelType, apply_filters

logger = logging.getLogger(__name__)

TENANT_SCOPED_TABLES: FrozenSet[str] = frozenset({
    "users",
    "branches",
    "vehicles",
    "customers",
    "notifications",
    "system_invoices",
})

_TENANT_KEYS = ("tenant_id", "tenantId")


class TenantIsolationError(Exception):
    """Raised when a repository is declared for a table outside the scoped allowlist."""
    pass


def scope_filters(tenant_id: str, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Merge the tenant constraint into a filter, overriding any caller value."""
    if not tenant_id:
        raise TenantIsolationError("tenant_id is required for scoped access")
    scoped = {k: v for k, v in (filters or {}).items() if k not in _TENANT_KEYS}
    scoped["tenant_id"] = tenant_id
    return scoped


def stamp_payload(tenant_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Force tenant_id on a write payload, overriding any caller value."""
    if not tenant_id:
        raise TenantIsolationError("tenant_id is required for scoped access")
    forged = {data[k] for k in _TENANT_KEYS if k in data and data[k] != tenant_id}
    if forged:
        logger.warning(
            "Overriding caller-supplied tenant id on write",
            extra={"tenant_id": tenant_id, "supplied_tenant_ids": sorted(map(str, forged))},
        )
    stamped = {k: v for k, v in data.items() if k not in _TENANT_KEYS}
    stamped["tenant_id"] = tenant_id
    return stamped


def sanitize_input(data: Dict[str, Any], protected: Iterable[str] = PROTECTED_FIELDS) -> Dict[str, Any]:
    """Strip system-managed fields from a client payload."""
    protected = frozenset(protected)
    stripped = sorted(k for k in data if k in protected)
    if stripped:
        logger.warning("Stripped protected fields from input", extra={"fields": stripped})
    return {k: v for k, v in data.items() if k not in protected}


class TenantScopedRepository(Generic[ModelType]):
    """
    Repository over a tenant-owned table.

    Subclasses set ``model``; declaring one for a table outside the allowlist
    or without a tenant_id column fails at import time.
    """

    model: ClassVar[Type[Any]]

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        model = getattr(cls, "model", None)
        if model is None:
            return
        table = getattr(model, "__tablename__", None)
        if table not in TENANT_SCOPED_TABLES:
            raise TenantIsolationError(f"{table} is not a tenant-scoped table")
        if "tenant_id" not in model.__table__.columns:
            raise TenantIsolationError(f"{table} has no tenant_id column")

    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def soft_deletes(self) -> bool:
        return "deleted_at" in self.model.__table__.columns

    def _select(self, tenant_id: str, filters: Optional[Dict[str, Any]], include_deleted: bool):
        query = apply_filters(select(self.model), self.model, scope_filters(tenant_id, filters))
        if self.soft_deletes and not include_deleted:
            query = query.where(self.model.deleted_at.is_(None))
        return query

    # Reads

    async def find_many(
        self,
        tenant_id: str,
        filters: Optional[Dict[str, Any]] = None,
        skip: int = 0,
        limit: int = 100,
        include_deleted: bool = False,
    ) -> List[ModelType]:
        query = self._select(tenant_id, filters, include_deleted)
        query = query.order_by(self.model.created_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_first(
        self,
        tenant_id: str,
        filters: Optional[Dict[str, Any]] = None,
        include_deleted: bool = False,
    ) -> Optional[ModelType]:
        result = await self.session.execute(self._select(tenant_id, filters, include_deleted).limit(1))
        return result.scalars().first()

    async def get(self, tenant_id: str, id: Any, include_deleted: bool = False) -> Optional[ModelType]:
        return await self.find_first(tenant_id, {"id": id}, include_deleted=include_deleted)

    async def count(
        self,
        tenant_id: str,
        filters: Optional[Dict[str, Any]] = None,
        include_deleted: bool = False,
    ) -> int:
        query = apply_filters(
            select(func.count()).select_from(self.model), self.model, scope_filters(tenant_id, filters)
        )
        if self.soft_deletes and not include_deleted:
            query = query.where(self.model.deleted_at.is_(None))
        result = await self.session.execute(query)
        return result.scalar() or 0

    # Writes

    async def create(self, tenant_id: str, data: Dict[str, Any]) -> ModelType:
        db_obj = self.model(**stamp_payload(tenant_id, data))
        self.session.add(db_obj)
        await self.session.flush()
        return db_obj

    async def create_many(self, tenant_id: str, rows: Iterable[Dict[str, Any]]) -> List[ModelType]:
        objs = [self.model(**stamp_payload(tenant_id, row)) for row in rows]
        self.session.add_all(objs)
        await self.session.flush()
        return objs

    async def update(self, tenant_id: str, id: Any, data: Dict[str, Any]) -> Optional[ModelType]:
        db_obj = await self.get(tenant_id, id)
        if db_obj is None:
            return None
        for key, value in stamp_payload(tenant_id, data).items():
            setattr(db_obj, key, value)
        await self.session.flush()
        return db_obj

    async def update_many(self, tenant_id: str, filters: Dict[str, Any], data: Dict[str, Any]) -> int:
        stmt = apply_filters(update(self.model), self.model, scope_filters(tenant_id, filters))
        result = await self.session.execute(
            stmt.values(**stamp_payload(tenant_id, data)).execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def upsert(
        self,
        tenant_id: str,
        filters: Dict[str, Any],
        create: Dict[str, Any],
        update: Dict[str, Any],
    ) -> ModelType:
        existing = await self.find_first(tenant_id, filters, include_deleted=True)
        if existing is None:
            return await self.create(tenant_id, create)
        for key, value in stamp_payload(tenant_id, update).items():
            setattr(existing, key, value)
        await self.session.flush()
        return existing

    async def delete(self, tenant_id: str, id: Any) -> bool:
        return await self.delete_many(tenant_id, {"id": id}) > 0

    async def delete_many(self, tenant_id: str, filters: Optional[Dict[str, Any]] = None) -> int:
        stmt = apply_filters(delete(self.model), self.model, scope_filters(tenant_id, filters))
        result = await self.session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount

    async def soft_delete(self, tenant_id: str, id: Any) -> bool:
        if not self.soft_deletes:
            return await self.delete(tenant_id, id)
        db_obj = await self.get(tenant_id, id)
        if db_obj is None:
            return False
        db_obj.deleted_at = utcnow()
        await self.session.flush()
        return True
