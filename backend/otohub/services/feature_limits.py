"""
Feature Limit Evaluator

Checks a tenant's plan before a resource is created or a gated feature is
used. Plans resolve through the tenant's plan FK, then the legacy tier slug;
if neither resolves every limit is 0 and every flag is off.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Tuple
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from otohub.core.constants import UNLIMITED, Feature
from otohub.core.errors import FeatureDisabled, LimitReached, TenantNotFound
from otohub.db.database import Database
from otohub.db.models.dealer_group import DealerGroup, DealerGroupMember
from otohub.db.models.plan import Plan
from otohub.db.models.tenant import Tenant
from otohub.db.repositories.inventory_repository import (
    BranchRepository,
    CustomerRepository,
    VehicleRepository,
)
from otohub.db.repositories.plan_repository import PlanRepository
from otohub.db.repositories.tenant_repository import TenantRepository
from otohub.db.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

QUANTITATIVE_FEATURES = frozenset({
    Feature.VEHICLES,
    Feature.USERS,
    Feature.BRANCHES,
    Feature.CUSTOMERS,
    Feature.DEALER_GROUP,
})


def plan_limit(plan: Optional[Plan], feature: Feature) -> int:
    """Quantitative limit for a feature; 0 when the plan is unknown."""
    if plan is None:
        return 0
    if feature == Feature.VEHICLES:
        return plan.max_vehicles
    if feature == Feature.USERS:
        return plan.max_users
    if feature == Feature.BRANCHES:
        return plan.max_branches
    if feature == Feature.CUSTOMERS:
        return int((plan.features or {}).get("max_customers", 0))
    if feature == Feature.DEALER_GROUP:
        return plan.max_group_members
    return 0


def plan_flag(plan: Optional[Plan], feature: Feature) -> bool:
    """Boolean flag for a feature; disabled when absent or the plan is unknown."""
    if plan is None:
        return False
    if feature == Feature.DEALER_GROUP:
        return bool(plan.can_create_group)
    return (plan.features or {}).get(feature.value.lower()) is True


class FeatureLimitEvaluator:
    """
    Plan limit and feature flag checks.

    Pass ``session`` to run the check inside the caller's transaction; the
    tenant row is then locked so concurrent creates for the same tenant are
    serialised until the caller commits.
    """

    def __init__(self, database: Database):
        self.database = database

    @asynccontextmanager
    async def _session(self, session: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return
        async with self.database.session() as own:
            yield own

    async def resolve_plan(self, session: AsyncSession, tenant: Tenant) -> Optional[Plan]:
        if tenant.plan_id and tenant.plan is not None:
            return tenant.plan

        if tenant.plan_tier:
            slug = tenant.plan_tier.lower()
            plan = await PlanRepository(session).get_by_slug(slug)
            if plan is not None:
                logger.warning(
                    f"Resolved plan through legacy tier slug '{slug}'",
                    extra={"tenant_id": tenant.id},
                )
                return plan

        logger.error(
            "Could not resolve plan for tenant, failing closed",
            extra={"tenant_id": tenant.id, "plan_tier": tenant.plan_tier},
        )
        return None

    async def _load(self, session: AsyncSession, tenant_id: str, lock: bool) -> Tuple[Tenant, Optional[Plan]]:
        repo = TenantRepository(session)
        tenant = await (repo.get_for_update(tenant_id) if lock else repo.get_by_id(tenant_id))
        if tenant is None or tenant.deleted_at is not None:
            raise TenantNotFound()
        return tenant, await self.resolve_plan(session, tenant)

    async def current_count(self, session: AsyncSession, tenant_id: str, feature: Feature) -> int:
        """Live count for a quantitative feature, excluding soft-deleted rows."""
        if feature == Feature.VEHICLES:
            return await VehicleRepository(session).count(tenant_id)
        if feature == Feature.CUSTOMERS:
            return await CustomerRepository(session).count(tenant_id)
        if feature == Feature.USERS:
            return await UserRepository(session).count(tenant_id)
        if feature == Feature.BRANCHES:
            return await BranchRepository(session).count(tenant_id)
        if feature == Feature.DEALER_GROUP:
            # Members across every group this tenant owns
            result = await session.execute(
                select(func.count(DealerGroupMember.id))
                .join(DealerGroup, DealerGroup.id == DealerGroupMember.group_id)
                .where(DealerGroup.owner_tenant_id == tenant_id)
            )
            return result.scalar() or 0
        raise ValueError(f"{feature.value} is not a quantitative feature")

    async def assert_can_create(
        self,
        tenant_id: str,
        feature: Feature,
        session: Optional[AsyncSession] = None,
    ) -> None:
        """Raise LimitReached unless one more ``feature`` fits the plan."""
        feature = Feature(feature)
        async with self._session(session) as s:
            _, plan = await self._load(s, tenant_id, lock=session is not None)
            limit = plan_limit(plan, feature)
            if limit == UNLIMITED:
                return
            current = await self.current_count(s, tenant_id, feature)

        if current >= limit:
            logger.warning(
                f"Plan limit reached for {feature.value} ({current}/{limit})",
                extra={"tenant_id": tenant_id},
            )
            raise LimitReached(feature.value, limit, current)

    async def assert_feature_enabled(
        self,
        tenant_id: str,
        feature: Feature,
        session: Optional[AsyncSession] = None,
    ) -> None:
        """Raise FeatureDisabled unless the plan turns ``feature`` on."""
        feature = Feature(feature)
        async with self._session(session) as s:
            _, plan = await self._load(s, tenant_id, lock=False)

        if not plan_flag(plan, feature):
            raise FeatureDisabled(feature.value)

    async def usage(self, tenant_id: str) -> Dict[str, Dict[str, Any]]:
        """Limit and live count for every quantitative feature."""
        async with self.database.session() as s:
            _, plan = await self._load(s, tenant_id, lock=False)
            summary = {}
            for feature in sorted(QUANTITATIVE_FEATURES, key=lambda f: f.value):
                summary[feature.value] = {
                    "limit": plan_limit(plan, feature),
                    "current": await self.current_count(s, tenant_id, feature),
                }
        return summary
