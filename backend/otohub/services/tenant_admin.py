"""
Tenant Administration

Operator-only flows: provisioning, manual suspension and activation, status
history and the cascading hard delete. Everything that touches the
subscription status goes through the state machine, apart from the initial
status a tenant is born with.
"""
from datetime import timedelta
from typing import Any, Dict, List, Optional
import logging
import re
import uuid

from sqlalchemy import delete, or_, select

from otohub.core.config import Settings
from otohub.core.constants import (
    DAYS_PER_BILLING_MONTH,
    PlanTier,
    Role,
    SubscriptionStatus,
    SuspensionType,
    TriggeredBy,
)
from otohub.core.errors import InvalidOperation, TenantNotFound
from otohub.db.base import utcnow
from otohub.db.database import Database
from otohub.db.models import (
    Branch,
    Customer,
    DealerGroup,
    DealerGroupMember,
    Notification,
    StockTransfer,
    SystemInvoice,
    Tenant,
    TenantStatusHistory,
    User,
    Vehicle,
)
from otohub.db.repositories.plan_repository import PlanRepository
from otohub.db.repositories.tenant_repository import TenantRepository, TenantStatusHistoryRepository
from otohub.db.repositories.user_repository import UserRepository
from otohub.services.subscription_state import ALLOWED_TRANSITIONS, SubscriptionStateMachine

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "tenant"


class TenantAdminService:
    def __init__(self, database: Database, state_machine: SubscriptionStateMachine, settings: Settings):
        self.database = database
        self.state_machine = state_machine
        self.settings = settings

    async def create_tenant(
        self,
        name: str,
        owner_email: str,
        owner_name: Optional[str] = None,
        plan_slug: str = "demo",
        billing_months: int = 1,
    ) -> Dict[str, Any]:
        """
        Provision a tenant and its OWNER user.

        Demo tenants start in TRIAL with a trial window; paid plans start
        ACTIVE with a prepaid period. The initial history row records the
        starting status.
        """
        now = utcnow()
        async with self.database.session() as session:
            async with session.begin():
                plan = await PlanRepository(session).get_by_slug(plan_slug.lower())
                if plan is None:
                    raise InvalidOperation(f"Unknown plan {plan_slug}")

                tenants = TenantRepository(session)
                slug = slugify(name)
                if await tenants.get_by_slug(slug) is not None:
                    slug = f"{slug}-{uuid.uuid4().hex[:6]}"

                data = {
                    "name": name,
                    "slug": slug,
                    "plan_tier": plan.slug.upper(),
                    "plan_id": plan.id,
                    "monthly_bill": plan.price,
                }
                if plan.slug.upper() == PlanTier.DEMO.value:
                    data.update({
                        "subscription_status": SubscriptionStatus.TRIAL.value,
                        "trial_ends_at": now + timedelta(days=self.settings.TRIAL_DAYS),
                    })
                else:
                    ends_at = now + timedelta(days=DAYS_PER_BILLING_MONTH * billing_months)
                    data.update({
                        "subscription_status": SubscriptionStatus.ACTIVE.value,
                        "subscription_started_at": now,
                        "subscription_ends_at": ends_at,
                        "next_billing_date": ends_at,
                    })
                tenant = await tenants.create(data)

                await TenantStatusHistoryRepository(session).append(
                    tenant_id=tenant.id,
                    old_status=tenant.subscription_status,
                    new_status=tenant.subscription_status,
                    reason="Tenant Creation",
                    triggered_by=TriggeredBy.SUPERADMIN.value,
                )

                owner = await UserRepository(session).create(tenant.id, {
                    "email": owner_email,
                    "full_name": owner_name,
                    "role": Role.OWNER.value,
                    "email_verified": True,
                })

        logger.info(f"Tenant {tenant.slug} created on plan {plan.slug}", extra={"tenant_id": tenant.id})
        return {"tenant": tenant, "owner": owner}

    async def get_tenant(self, tenant_id: str) -> Tenant:
        async with self.database.session() as session:
            tenant = await TenantRepository(session).get_by_id(tenant_id, include_deleted=True)
        if tenant is None:
            raise TenantNotFound()
        return tenant

    async def list_tenants(self, skip: int = 0, limit: int = 100, status: Optional[str] = None) -> List[Tenant]:
        async with self.database.session() as session:
            return await TenantRepository(session).list_tenants(skip=skip, limit=limit, status=status)

    async def suspend_tenant(self, tenant_id: str, reason: str = "Suspended by administrator") -> Tenant:
        return await self.state_machine.transition(
            tenant_id,
            SubscriptionStatus.SUSPENDED,
            reason,
            TriggeredBy.SUPERADMIN,
            suspension_type=SuspensionType.HARD,
        )

    async def activate_tenant(self, tenant_id: str, reason: str = "Activated by administrator") -> Tenant:
        return await self.state_machine.transition(
            tenant_id,
            SubscriptionStatus.ACTIVE,
            reason,
            TriggeredBy.SUPERADMIN,
        )

    async def set_status(
        self,
        tenant_id: str,
        status: SubscriptionStatus,
        reason: str,
        suspension_type: Optional[SuspensionType] = None,
    ) -> Tenant:
        status = SubscriptionStatus(status)
        if status not in ALLOWED_TRANSITIONS:
            raise InvalidOperation(f"{status.value} is not a settable status")
        return await self.state_machine.transition(
            tenant_id,
            status,
            reason,
            TriggeredBy.SUPERADMIN,
            suspension_type=suspension_type,
        )

    async def status_history(self, tenant_id: str, limit: int = 100) -> List[TenantStatusHistory]:
        async with self.database.session() as session:
            return await TenantStatusHistoryRepository(session).list_for_tenant(tenant_id, limit=limit)

    async def hard_delete_tenant(self, tenant_id: str) -> Dict[str, int]:
        """
        Physically remove a tenant and everything it owns in one transaction.

        Cross-tenant rows that reference the tenant (group memberships,
        transfers in either direction, groups it owns) go too.
        """
        removed: Dict[str, int] = {}
        async with self.database.session() as session:
            async with session.begin():
                tenant = await TenantRepository(session).get_for_update(tenant_id)
                if tenant is None:
                    raise TenantNotFound()

                owned_groups = select(DealerGroup.id).where(DealerGroup.owner_tenant_id == tenant_id)
                owned_vehicles = select(Vehicle.id).where(Vehicle.tenant_id == tenant_id)

                steps = [
                    ("stock_transfers", delete(StockTransfer).where(or_(
                        StockTransfer.source_tenant_id == tenant_id,
                        StockTransfer.target_tenant_id == tenant_id,
                        StockTransfer.vehicle_id.in_(owned_vehicles),
                    ))),
                    ("dealer_group_members", delete(DealerGroupMember).where(or_(
                        DealerGroupMember.member_tenant_id == tenant_id,
                        DealerGroupMember.group_id.in_(owned_groups),
                    ))),
                    ("dealer_groups", delete(DealerGroup).where(DealerGroup.owner_tenant_id == tenant_id)),
                    ("notifications", delete(Notification).where(Notification.tenant_id == tenant_id)),
                    ("system_invoices", delete(SystemInvoice).where(SystemInvoice.tenant_id == tenant_id)),
                    ("tenant_status_history", delete(TenantStatusHistory).where(TenantStatusHistory.tenant_id == tenant_id)),
                    ("vehicles", delete(Vehicle).where(Vehicle.tenant_id == tenant_id)),
                    ("customers", delete(Customer).where(Customer.tenant_id == tenant_id)),
                    ("users", delete(User).where(User.tenant_id == tenant_id)),
                    ("branches", delete(Branch).where(Branch.tenant_id == tenant_id)),
                    ("tenants", delete(Tenant).where(Tenant.id == tenant_id)),
                ]
                for table, stmt in steps:
                    result = await session.execute(stmt.execution_options(synchronize_session=False))
                    removed[table] = result.rowcount

        logger.warning("Tenant hard deleted", extra={"tenant_id": tenant_id, "removed": removed})
        return removed
