# backend/otohub/services/inventory.py
"""
Tenant-owned resources (vehicles, customers, branches, staff).

Creation checks the plan limit and inserts in one transaction, with the
tenant row locked by the evaluator, so limits hold under concurrent creates
on PostgreSQL.
"""
from typing import Any, Dict, List, Optional, Type
import logging

from otohub.core.constants import Feature
from otohub.core.errors import ResourceNotFound
from otohub.db.database import Database
from otohub.db.repositories.inventory_repository import (
    BranchRepository,
    CustomerRepository,
    VehicleRepository,
)
from otohub.db.repositories.tenant_scoped import TenantScopedRepository, sanitize_input
from otohub.db.repositories.user_repository import UserRepository
from otohub.services.feature_limits import FeatureLimitEvaluator

logger = logging.getLogger(__name__)


class ScopedResourceService:
    """CRUD for one tenant-owned table, always through the scoped repository"""

    repository_class: Type[TenantScopedRepository]
    feature: Optional[Feature] = None

    def __init__(self, database: Database, limits: FeatureLimitEvaluator):
        self.database = database
        self.limits = limits

    async def list(self, tenant_id: str, skip: int = 0, limit: int = 100, filters: Optional[Dict[str, Any]] = None) -> List[Any]:
        async with self.database.session() as session:
            return await self.repository_class(session).find_many(tenant_id, filters, skip=skip, limit=limit)

    async def get(self, tenant_id: str, id: str) -> Any:
        async with self.database.session() as session:
            obj = await self.repository_class(session).get(tenant_id, id)
        if obj is None:
            raise ResourceNotFound()
        return obj

    async def count(self, tenant_id: str) -> int:
        async with self.database.session() as session:
            return await self.repository_class(session).count(tenant_id)

    async def create(self, tenant_id: str, data: Dict[str, Any]) -> Any:
        payload = sanitize_input(data)
        async with self.database.session() as session:
            async with session.begin():
                if self.feature is not None:
                    await self.limits.assert_can_create(tenant_id, self.feature, session=session)
                obj = await self.repository_class(session).create(tenant_id, payload)
        logger.info(f"Created {obj.__tablename__} {obj.id}", extra={"tenant_id": tenant_id})
        return obj

    async def update(self, tenant_id: str, id: str, data: Dict[str, Any]) -> Any:
        payload = sanitize_input(data)
        async with self.database.session() as session:
            async with session.begin():
                obj = await self.repository_class(session).update(tenant_id, id, payload)
        if obj is None:
            raise ResourceNotFound()
        return obj

    async def delete(self, tenant_id: str, id: str) -> None:
        async with self.database.session() as session:
            async with session.begin():
                removed = await self.repository_class(session).soft_delete(tenant_id, id)
        if not removed:
            raise ResourceNotFound()


class VehicleService(ScopedResourceService):
    repository_class = VehicleRepository
    feature = Feature.VEHICLES


class CustomerService(ScopedResourceService):
    repository_class = CustomerRepository
    feature = Feature.CUSTOMERS


class BranchService(ScopedResourceService):
    repository_class = BranchRepository
    feature = Feature.BRANCHES


class StaffService(ScopedResourceService):
    repository_class = UserRepository
    feature = Feature.USERS

    async def complete_onboarding(self, tenant_id: str, user_id: str):
        async with self.database.session() as session:
            async with session.begin():
                user = await UserRepository(session).update(tenant_id, user_id, {"onboarding_completed": True})
        if user is None:
            raise ResourceNotFound("User not found")
        return user
