# tests/test_billing.py
"""
Billing lifecycle
Tests: upgrade invoices, payment verification, status markers, overdue suspension
"""
from datetime import timedelta

import pytest

from otohub.core.constants import (
    Feature,
    InvoiceStatus,
    PLAN_TIERS,
    PlanTier,
    SubscriptionStatus,
    SuspensionType,
)
from otohub.core.errors import IllegalTransition, InvalidOperation
from otohub.db.base import utcnow
from otohub.services.billing_service import billing_amount, derive_status_marker

S = SubscriptionStatus


class _TenantRow:
    def __init__(self, **columns):
        defaults = {
            "plan_tier": PlanTier.BASIC.value,
            "subscription_status": S.ACTIVE.value,
            "trial_ends_at": None,
            "subscription_ends_at": None,
            "auto_renew": False,
        }
        defaults.update(columns)
        self.__dict__.update(defaults)


class TestStatusMarkers:

    def test_lapsed_demo_trial_is_expired(self):
        now = utcnow()
        row = _TenantRow(plan_tier=PlanTier.DEMO.value, subscription_status=S.TRIAL.value,
                         trial_ends_at=now - timedelta(hours=1))

        assert derive_status_marker(row, now) == S.EXPIRED

    def test_lapsed_paid_period(self):
        now = utcnow()
        ended = now - timedelta(days=1)

        assert derive_status_marker(_TenantRow(subscription_ends_at=ended), now) == S.EXPIRED
        assert derive_status_marker(_TenantRow(subscription_ends_at=ended, auto_renew=True), now) == S.PENDING_RENEWAL

    def test_grace_with_open_invoice_is_pending_payment(self):
        now = utcnow()
        row = _TenantRow(subscription_status=S.GRACE.value, subscription_ends_at=now + timedelta(days=3))

        assert derive_status_marker(row, now, has_open_invoice=True) == S.PENDING_PAYMENT
        assert derive_status_marker(row, now) == S.GRACE

    def test_suspended_and_cancelled_are_reported_as_stored(self):
        now = utcnow()
        ended = now - timedelta(days=1)

        assert derive_status_marker(_TenantRow(subscription_status=S.SUSPENDED.value, subscription_ends_at=ended), now) == S.SUSPENDED
        assert derive_status_marker(_TenantRow(subscription_status=S.CANCELLED.value, subscription_ends_at=ended), now) == S.CANCELLED


class TestBillingAmount:

    def test_period_discounts(self):
        assert billing_amount(100000, 1)["total"] == 100000
        assert billing_amount(100000, 6)["total"] == 540000
        yearly = billing_amount(100000, 12)
        assert yearly["discount_percent"] == 20
        assert yearly["total"] == 960000

    def test_unsupported_period(self):
        with pytest.raises(InvalidOperation):
            billing_amount(100000, 2)


@pytest.mark.asyncio
class TestUpgradeFlow:

    async def test_upgrade_request_issues_invoice_and_enters_grace(self, services, tenant):
        invoice = await services.billing.request_upgrade(tenant.id, "basic", months=1)

        assert invoice.status == InvoiceStatus.PENDING.value
        assert invoice.amount == PLAN_TIERS[PlanTier.BASIC]["price"]
        assert invoice.invoice_number.startswith(f"INV-{utcnow().year}-")
        assert invoice.tenant_id == tenant.id

        stored = await services.admin.get_tenant(tenant.id)
        assert stored.subscription_status == S.GRACE.value
        history = await services.admin.status_history(tenant.id)
        assert history[0].reference_id == invoice.id

        status = await services.billing.check_subscription_status(tenant.id)
        assert status["status"] == S.PENDING_PAYMENT.value
        assert status["access_level"] == "READ_ONLY"

    async def test_second_open_invoice_is_refused(self, services, tenant):
        await services.billing.request_upgrade(tenant.id, "basic")

        with pytest.raises(InvalidOperation):
            await services.billing.request_upgrade(tenant.id, "pro")

    async def test_downgrade_same_tier_and_demo_purchase_are_refused(self, services, make_tenant):
        pro = await make_tenant(plan="pro")

        with pytest.raises(InvalidOperation):
            await services.billing.request_upgrade(pro.id, "basic")
        with pytest.raises(InvalidOperation):
            await services.billing.request_upgrade(pro.id, "pro")
        with pytest.raises(InvalidOperation):
            await services.billing.request_upgrade(pro.id, "demo")

    async def test_approved_payment_activates_new_plan(self, services, tenant):
        invoice = await services.billing.request_upgrade(tenant.id, "pro", months=6)
        await services.billing.upload_payment_proof(tenant.id, invoice.id, "https://files.example.com/proof.jpg")

        verified = await services.billing.verify_payment(invoice.id, approved=True, verified_by="admin-1")

        assert verified.status == InvoiceStatus.PAID.value
        stored = await services.admin.get_tenant(tenant.id)
        assert stored.subscription_status == S.ACTIVE.value
        assert stored.plan_tier == PlanTier.PRO.value
        assert stored.scheduled_deletion_at is None
        assert stored.subscription_ends_at > utcnow() + timedelta(days=179)

        usage = await services.limits.usage(tenant.id)
        assert usage[Feature.VEHICLES.value]["limit"] == PLAN_TIERS[PlanTier.PRO]["max_vehicles"]

        history = await services.admin.status_history(tenant.id)
        assert {(h.new_status, h.reference_id) for h in history} == {
            (S.GRACE.value, invoice.id),
            (S.ACTIVE.value, invoice.id),
        }

    async def test_rejected_payment_keeps_grace(self, services, tenant):
        invoice = await services.billing.request_upgrade(tenant.id, "basic")

        rejected = await services.billing.verify_payment(invoice.id, approved=False)

        assert rejected.status == InvoiceStatus.REJECTED.value
        stored = await services.admin.get_tenant(tenant.id)
        assert stored.subscription_status == S.GRACE.value

        resubmitted = await services.billing.upload_payment_proof(tenant.id, invoice.id, "https://proof/2")
        assert resubmitted.status == InvoiceStatus.VERIFYING.value

        with pytest.raises(InvalidOperation):
            await services.billing.upload_payment_proof(tenant.id, invoice.id, "https://proof/3")

    async def test_invoice_cannot_be_approved_twice(self, services, tenant):
        invoice = await services.billing.request_upgrade(tenant.id, "basic")
        await services.billing.verify_payment(invoice.id, approved=True)

        with pytest.raises(InvalidOperation):
            await services.billing.verify_payment(invoice.id, approved=True)

    async def test_payment_lifts_a_hard_suspension(self, services, make_tenant):
        tenant = await make_tenant(
            plan="basic",
            status=S.SUSPENDED,
            suspension_type=SuspensionType.HARD.value,
            scheduled_deletion_at=utcnow() + timedelta(days=100),
        )

        invoice = await services.billing.request_upgrade(tenant.id, "pro")
        pending = await services.admin.get_tenant(tenant.id)
        assert pending.subscription_status == S.SUSPENDED.value
        assert pending.scheduled_deletion_at is None

        await services.billing.verify_payment(invoice.id, approved=True)
        stored = await services.admin.get_tenant(tenant.id)
        assert stored.subscription_status == S.ACTIVE.value
        assert stored.suspension_type is None


@pytest.mark.asyncio
class TestOverdueSuspension:

    async def test_overdue_paid_tenants_are_soft_suspended(self, services, make_tenant):
        now = utcnow()
        overdue = await make_tenant(plan="basic", next_billing_date=now - timedelta(days=31))
        current = await make_tenant(plan="basic", next_billing_date=now - timedelta(days=5))

        stats = await services.billing.auto_suspend_overdue()

        assert stats == {"checked": 1, "suspended": 1, "failed": 0}
        stored = await services.admin.get_tenant(overdue.id)
        assert stored.subscription_status == S.SUSPENDED.value
        assert stored.suspension_type == SuspensionType.SOFT.value
        untouched = await services.admin.get_tenant(current.id)
        assert untouched.subscription_status == S.ACTIVE.value


@pytest.mark.asyncio
class TestTrialWindow:

    async def test_trial_is_restamped_without_history(self, services, make_tenant):
        tenant = await make_tenant(plan="demo", status=S.TRIAL, trial_ends_at=utcnow() + timedelta(days=1))

        restarted = await services.billing.start_trial(tenant.id)

        assert restarted.subscription_status == S.TRIAL.value
        assert restarted.plan_tier == PlanTier.DEMO.value
        assert restarted.trial_ends_at > utcnow() + timedelta(days=13)
        assert await services.admin.status_history(tenant.id) == []

    async def test_paid_tenant_cannot_go_back_to_trial(self, services, make_tenant):
        tenant = await make_tenant(plan="basic")

        with pytest.raises(IllegalTransition):
            await services.billing.start_trial(tenant.id)

        stored = await services.admin.get_tenant(tenant.id)
        assert stored.subscription_status == S.ACTIVE.value
        assert stored.plan_tier == PlanTier.BASIC.value
