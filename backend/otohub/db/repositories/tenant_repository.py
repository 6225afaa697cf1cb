# backend/otohub/db/repositories/tenant_repository.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from otohub.core.constants import PlanTier, SubscriptionStatus
from otohub.db.models.tenant import Tenant
from otohub.db.models.tenant_status_history import TenantStatusHistory
from otohub.db.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Repository for Tenant operations. Tenants are the scope root, so this is unscoped."""

    def __init__(self, session: AsyncSession):
        super().__init__(Tenant, session)

    async def get_by_id(self, tenant_id: str, include_deleted: bool = False) -> Optional[Tenant]:
        """Get tenant by ID"""
        query = select(Tenant).where(Tenant.id == tenant_id)
        if not include_deleted:
            query = query.where(Tenant.deleted_at.is_(None))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Optional[Tenant]:
        result = await self.session.execute(select(Tenant).where(Tenant.slug == slug))
        return result.scalar_one_or_none()

    async def list_tenants(
        self,
        skip: int = 0,
        limit: int = 100,
        status: Optional[str] = None,
        include_deleted: bool = False,
    ) -> List[Tenant]:
        query = select(Tenant)
        if status:
            query = query.where(Tenant.subscription_status == status)
        if not include_deleted:
            query = query.where(Tenant.deleted_at.is_(None))
        result = await self.session.execute(query.order_by(Tenant.created_at.desc()).offset(skip).limit(limit))
        return list(result.scalars().all())

    async def list_lapsed_unscheduled(self, now: datetime) -> List[Tenant]:
        """Tenants whose trial or paid period has lapsed and have no deletion date yet"""
        paid_lapsed = and_(
            Tenant.subscription_ends_at.is_not(None),
            Tenant.subscription_ends_at < now,
            Tenant.subscription_status.in_([
                SubscriptionStatus.SUSPENDED.value,
                SubscriptionStatus.CANCELLED.value,
            ]),
        )
        trial_lapsed = and_(
            Tenant.trial_ends_at.is_not(None),
            Tenant.trial_ends_at < now,
            or_(
                Tenant.plan_tier == PlanTier.DEMO.value,
                Tenant.subscription_status == SubscriptionStatus.TRIAL.value,
            ),
        )
        result = await self.session.execute(
            select(Tenant)
            .where(Tenant.deleted_at.is_(None))
            .where(Tenant.scheduled_deletion_at.is_(None))
            .where(or_(paid_lapsed, trial_lapsed))
            .order_by(Tenant.id)
        )
        return list(result.scalars().all())

    async def list_due_for_deletion(self, now: datetime) -> List[Tenant]:
        result = await self.session.execute(
            select(Tenant)
            .where(Tenant.deleted_at.is_(None))
            .where(Tenant.scheduled_deletion_at.is_not(None))
            .where(Tenant.scheduled_deletion_at < now)
            .order_by(Tenant.id)
        )
        return list(result.scalars().all())

    async def list_overdue(self, cutoff: datetime) -> List[Tenant]:
        """ACTIVE paid tenants whose next billing date is older than cutoff"""
        result = await self.session.execute(
            select(Tenant)
            .where(Tenant.deleted_at.is_(None))
            .where(Tenant.subscription_status == SubscriptionStatus.ACTIVE.value)
            .where(Tenant.plan_tier != PlanTier.DEMO.value)
            .where(Tenant.next_billing_date.is_not(None))
            .where(Tenant.next_billing_date < cutoff)
            .order_by(Tenant.id)
        )
        return list(result.scalars().all())


class TenantStatusHistoryRepository:
    """Append-only access to the status audit trail"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(
        self,
        tenant_id: str,
        old_status: str,
        new_status: str,
        reason: Optional[str],
        triggered_by: str,
        reference_id: Optional[str] = None,
    ) -> TenantStatusHistory:
        row = TenantStatusHistory(
            tenant_id=tenant_id,
            old_status=old_status,
            new_status=new_status,
            reason=reason,
            triggered_by=triggered_by,
            reference_id=reference_id,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_for_tenant(self, tenant_id: str, limit: int = 100) -> List[TenantStatusHistory]:
        result = await self.session.execute(
            select(TenantStatusHistory)
            .where(TenantStatusHistory.tenant_id == tenant_id)
            .order_by(TenantStatusHistory.created_at.desc(), TenantStatusHistory.id)
            .limit(limit)
        )
        return list(result.scalars().all())
