"""
Billing Service

Tenant-facing subscription flows: status reads with transient markers,
trial start, upgrade invoices, payment proof upload and operator payment
verification, plus the daily overdue job. Status changes always go through
the SubscriptionStateMachine.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import logging
import math

from sqlalchemy import func, select

from otohub.core.config import Settings
from otohub.core.constants import (
    BILLING_PERIODS,
    DAYS_PER_BILLING_MONTH,
    PLAN_ORDER,
    InvoiceStatus,
    PlanTier,
    SubscriptionStatus,
    SuspensionType,
    TriggeredBy,
)
from otohub.core.errors import InvalidOperation, ResourceNotFound, TenantNotFound
from otohub.db.base import utcnow
from otohub.db.database import Database
from otohub.db.models.invoice import SystemInvoice
from otohub.db.models.plan import Plan
from otohub.db.repositories.base import BaseRepository
from otohub.db.repositories.inventory_repository import InvoiceRepository
from otohub.db.repositories.plan_repository import PlanRepository
from otohub.db.repositories.tenant_repository import TenantRepository
from otohub.services.feature_limits import FeatureLimitEvaluator
from otohub.services.subscription_state import SubscriptionStateMachine, resolve_access

logger = logging.getLogger(__name__)

OPEN_INVOICE_STATUSES = [InvoiceStatus.PENDING.value, InvoiceStatus.VERIFYING.value]


def _days_until(moment: Optional[datetime], now: datetime) -> Optional[int]:
    if moment is None:
        return None
    return max(0, math.ceil((moment - now).total_seconds() / 86400))


def derive_status_marker(tenant, now: datetime, has_open_invoice: bool = False) -> SubscriptionStatus:
    """
    Status as shown to the tenant.

    Lapsed trials and lapsed paid periods surface as EXPIRED or
    PENDING_RENEWAL, and a GRACE tenant with an open invoice as
    PENDING_PAYMENT. These markers are never stored.
    """
    stored = SubscriptionStatus(tenant.subscription_status)
    if stored in (SubscriptionStatus.SUSPENDED, SubscriptionStatus.CANCELLED):
        return stored

    if tenant.plan_tier == PlanTier.DEMO.value and tenant.trial_ends_at and tenant.trial_ends_at < now:
        return SubscriptionStatus.EXPIRED

    if tenant.subscription_ends_at and tenant.subscription_ends_at < now:
        return SubscriptionStatus.PENDING_RENEWAL if tenant.auto_renew else SubscriptionStatus.EXPIRED

    if stored == SubscriptionStatus.GRACE and has_open_invoice:
        return SubscriptionStatus.PENDING_PAYMENT

    return stored


def billing_amount(price: int, months: int) -> Dict[str, int]:
    if months not in BILLING_PERIODS:
        raise InvalidOperation(f"Billing period must be one of {sorted(BILLING_PERIODS)} months")
    discount_percent = BILLING_PERIODS[months]
    total_before = price * months
    discount = round(total_before * discount_percent / 100)
    return {
        "months": months,
        "discount_percent": discount_percent,
        "total_before_discount": total_before,
        "discount_amount": discount,
        "total": total_before - discount,
    }


class BillingService:
    def __init__(
        self,
        database: Database,
        state_machine: SubscriptionStateMachine,
        limits: FeatureLimitEvaluator,
        settings: Settings,
    ):
        self.database = database
        self.state_machine = state_machine
        self.limits = limits
        self.settings = settings

    async def list_plans(self) -> List[Plan]:
        async with self.database.session() as session:
            return await PlanRepository(session).list_active()

    async def check_subscription_status(self, tenant_id: str) -> Dict[str, Any]:
        now = utcnow()
        async with self.database.session() as session:
            tenant = await TenantRepository(session).get_by_id(tenant_id)
            if tenant is None:
                raise TenantNotFound()
            open_invoices = await InvoiceRepository(session).count(tenant_id, {"status": OPEN_INVOICE_STATUSES})

        marker = derive_status_marker(tenant, now, has_open_invoice=open_invoices > 0)
        ends_at = tenant.trial_ends_at if tenant.subscription_status == SubscriptionStatus.TRIAL.value else tenant.subscription_ends_at

        return {
            "tenant_id": tenant.id,
            "status": marker.value,
            "stored_status": tenant.subscription_status,
            "suspension_type": tenant.suspension_type,
            "access_level": resolve_access(tenant.subscription_status, tenant.suspension_type).value,
            "plan_tier": tenant.plan_tier,
            "trial_ends_at": tenant.trial_ends_at,
            "subscription_ends_at": tenant.subscription_ends_at,
            "scheduled_deletion_at": tenant.scheduled_deletion_at,
            "days_remaining": _days_until(ends_at, now),
            "usage": await self.limits.usage(tenant_id),
        }

    async def start_trial(self, tenant_id: str):
        """
        (Re)stamp the demo trial window. Only tenants already in TRIAL qualify,
        since no transition leads back into TRIAL.
        """
        now = utcnow()
        async with self.database.session() as session:
            async with session.begin():
                demo = await PlanRepository(session).get_by_slug(PlanTier.DEMO.value.lower())
                tenant, event = await self.state_machine.apply(
                    session,
                    tenant_id,
                    SubscriptionStatus.TRIAL,
                    "Trial started",
                    TriggeredBy.SYSTEM,
                    extra_changes={
                        "plan_tier": PlanTier.DEMO.value,
                        "plan": demo,
                        "plan_id": demo.id if demo else None,
                        "trial_ends_at": now + timedelta(days=self.settings.TRIAL_DAYS),
                        "monthly_bill": 0,
                    },
                )
        if event is not None:
            await self.state_machine.fire([event])
        return tenant

    async def _next_invoice_number(self, session, now: datetime) -> str:
        prefix = f"INV-{now.year}-"
        result = await session.execute(
            select(func.count(SystemInvoice.id)).where(SystemInvoice.invoice_number.like(f"{prefix}%"))
        )
        return f"{prefix}{(result.scalar() or 0) + 1:04d}"

    async def request_upgrade(self, tenant_id: str, plan_slug: str, months: int = 1) -> SystemInvoice:
        """
        Issue an upgrade invoice and move the tenant into GRACE until it is paid.

        Only a higher tier can be bought, and only with no other open invoice.
        """
        try:
            target = PlanTier(plan_slug.upper())
        except ValueError:
            raise InvalidOperation(f"Unknown plan {plan_slug}")
        if target == PlanTier.DEMO:
            raise InvalidOperation("The demo plan cannot be purchased")

        now = utcnow()
        events = []
        async with self.database.session() as session:
            async with session.begin():
                tenant = await TenantRepository(session).get_for_update(tenant_id)
                if tenant is None or tenant.deleted_at is not None:
                    raise TenantNotFound()
                if tenant.subscription_status == SubscriptionStatus.CANCELLED.value:
                    raise InvalidOperation("Cancelled subscriptions cannot be renewed")

                current = PlanTier(tenant.plan_tier) if tenant.plan_tier in PlanTier.__members__ else PlanTier.DEMO
                if PLAN_ORDER.index(target) <= PLAN_ORDER.index(current):
                    raise InvalidOperation(f"Cannot move from {current.value} to {target.value}, only upgrades are allowed")

                invoices = InvoiceRepository(session)
                if await invoices.count(tenant_id, {"status": OPEN_INVOICE_STATUSES}):
                    raise InvalidOperation("An unpaid invoice already exists. Please settle it first")

                plan = await PlanRepository(session).get_by_slug(target.value.lower())
                if plan is None:
                    raise InvalidOperation(f"Plan {target.value} is not available")

                amount = billing_amount(plan.price, months)
                invoice = await invoices.create(tenant_id, {
                    "invoice_number": await self._next_invoice_number(session, now),
                    "amount": amount["total"],
                    "status": InvoiceStatus.PENDING.value,
                    "plan_tier": target.value,
                    "months": months,
                    "discount_percent": amount["discount_percent"],
                    "items": {"from_plan": current.value, "to_plan": target.value, **amount},
                    "due_date": now + timedelta(days=self.settings.INVOICE_DUE_DAYS),
                })

                if tenant.subscription_status in (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIAL.value):
                    _, event = await self.state_machine.apply(
                        session,
                        tenant_id,
                        SubscriptionStatus.GRACE,
                        f"Upgrade requested to {plan.name} ({months} month(s))",
                        TriggeredBy.BILLING,
                        reference_id=invoice.id,
                        extra_changes={"scheduled_deletion_at": None},
                    )
                    if event is not None:
                        events.append(event)
                else:
                    tenant.scheduled_deletion_at = None

        await self.state_machine.fire(events)
        logger.info(f"Invoice {invoice.invoice_number} issued", extra={"tenant_id": tenant_id})
        return invoice

    async def list_invoices(self, tenant_id: str) -> List[SystemInvoice]:
        async with self.database.session() as session:
            return await InvoiceRepository(session).find_many(tenant_id)

    async def upload_payment_proof(self, tenant_id: str, invoice_id: str, proof_url: str) -> SystemInvoice:
        async with self.database.session() as session:
            async with session.begin():
                invoices = InvoiceRepository(session)
                invoice = await invoices.get(tenant_id, invoice_id)
                if invoice is None:
                    raise ResourceNotFound("Invoice not found")
                if invoice.status not in (InvoiceStatus.PENDING.value, InvoiceStatus.REJECTED.value):
                    raise InvalidOperation("Invoice is already processed or under verification")
                invoice = await invoices.update(tenant_id, invoice_id, {
                    "status": InvoiceStatus.VERIFYING.value,
                    "payment_proof": proof_url,
                })
        return invoice

    async def verify_payment(self, invoice_id: str, approved: bool, verified_by: Optional[str] = None) -> SystemInvoice:
        """
        Operator decision on an invoice.

        Approval switches the plan, extends the paid period by 30 days per
        month purchased, clears any scheduled deletion and activates the
        tenant, all in one transaction.
        """
        now = utcnow()
        events = []
        async with self.database.session() as session:
            async with session.begin():
                invoice = await BaseRepository(SystemInvoice, session).get_for_update(invoice_id)
                if invoice is None:
                    raise ResourceNotFound("Invoice not found")
                if invoice.status == InvoiceStatus.PAID.value:
                    raise InvalidOperation("Invoice has already been approved")
                if invoice.status == InvoiceStatus.CANCELLED.value:
                    raise InvalidOperation("Invoice has been cancelled")

                invoice.verified_by = verified_by
                if not approved:
                    invoice.status = InvoiceStatus.REJECTED.value
                else:
                    invoice.status = InvoiceStatus.PAID.value
                    invoice.paid_at = now
                    plan = await PlanRepository(session).get_by_slug(invoice.plan_tier.lower())
                    ends_at = now + timedelta(days=DAYS_PER_BILLING_MONTH * invoice.months)
                    changes = {
                        "plan_tier": invoice.plan_tier,
                        "subscription_started_at": now,
                        "subscription_ends_at": ends_at,
                        "next_billing_date": ends_at,
                        "scheduled_deletion_at": None,
                        "trial_ends_at": None,
                    }
                    if plan is not None:
                        changes.update({"plan": plan, "plan_id": plan.id, "monthly_bill": plan.price})

                    _, event = await self.state_machine.apply(
                        session,
                        invoice.tenant_id,
                        SubscriptionStatus.ACTIVE,
                        f"Payment verified for invoice {invoice.invoice_number} ({invoice.months} month(s))",
                        TriggeredBy.SUPERADMIN,
                        reference_id=invoice.id,
                        extra_changes=changes,
                    )
                    if event is not None:
                        events.append(event)
                await session.flush()

        await self.state_machine.fire(events)
        logger.info(
            f"Invoice {invoice.invoice_number} {'approved' if approved else 'rejected'}",
            extra={"tenant_id": invoice.tenant_id, "user_id": verified_by},
        )
        return invoice

    async def auto_suspend_overdue(self) -> Dict[str, int]:
        """Soft-suspend ACTIVE paid tenants whose billing date is long past."""
        now = utcnow()
        cutoff = now - timedelta(days=self.settings.OVERDUE_SUSPEND_DAYS)
        async with self.database.session() as session:
            overdue = [t.id for t in await TenantRepository(session).list_overdue(cutoff)]

        stats = {"checked": len(overdue), "suspended": 0, "failed": 0}
        for tenant_id in overdue:
            try:
                await self.state_machine.transition(
                    tenant_id,
                    SubscriptionStatus.SUSPENDED,
                    f"Payment overdue more than {self.settings.OVERDUE_SUSPEND_DAYS} days",
                    TriggeredBy.BILLING,
                    suspension_type=SuspensionType.SOFT,
                )
                stats["suspended"] += 1
            except Exception:
                stats["failed"] += 1
                logger.exception("Failed to suspend overdue tenant", extra={"tenant_id": tenant_id})

        logger.info("Overdue billing run finished", extra=stats)
        return stats
