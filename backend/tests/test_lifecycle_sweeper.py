# tests/test_lifecycle_sweeper.py
"""
Lifecycle sweeper
Tests: deletion scheduling, scheduled soft delete, idempotent reruns
"""
from datetime import timedelta

import pytest

from otohub.core.constants import AccessLevel, PlanTier, SubscriptionStatus, SuspensionType
from otohub.db.base import utcnow
from otohub.services.lifecycle_sweeper import DELETE_REASON, SCHEDULE_REASON, lapse_date

S = SubscriptionStatus
GRACE_DAYS = 180


class _TenantRow:
    def __init__(self, **columns):
        defaults = {
            "plan_tier": PlanTier.BASIC.value,
            "subscription_status": S.ACTIVE.value,
            "trial_ends_at": None,
            "subscription_ends_at": None,
        }
        defaults.update(columns)
        self.__dict__.update(defaults)


class TestLapseDate:

    def test_lapsed_trial(self):
        now = utcnow()
        row = _TenantRow(subscription_status=S.TRIAL.value, trial_ends_at=now - timedelta(days=1))

        assert lapse_date(row, now) == row.trial_ends_at

    def test_demo_plan_counts_as_trial_whatever_the_status(self):
        now = utcnow()
        row = _TenantRow(plan_tier=PlanTier.DEMO.value, trial_ends_at=now - timedelta(days=1))

        assert lapse_date(row, now) == row.trial_ends_at

    def test_lapsed_paid_period_needs_suspended_or_cancelled(self):
        now = utcnow()
        ended = now - timedelta(days=3)

        assert lapse_date(_TenantRow(subscription_ends_at=ended), now) is None
        assert lapse_date(_TenantRow(subscription_status=S.SUSPENDED.value, subscription_ends_at=ended), now) == ended
        assert lapse_date(_TenantRow(subscription_status=S.CANCELLED.value, subscription_ends_at=ended), now) == ended

    def test_future_expiry_is_not_lapsed(self):
        now = utcnow()
        row = _TenantRow(subscription_status=S.TRIAL.value, trial_ends_at=now + timedelta(days=1))

        assert lapse_date(row, now) is None


@pytest.mark.asyncio
class TestLifecycleSweeper:

    async def test_lapsed_trial_is_hard_suspended_and_scheduled(self, services, hooks, make_tenant):
        now = utcnow()
        tenant = await make_tenant(
            status=S.TRIAL, plan="demo", trial_ends_at=now - timedelta(days=2), subscription_ends_at=None,
        )

        stats = await services.sweeper.run(now)

        assert stats["scheduled"] == 1
        assert stats["deleted"] == 0
        assert stats["failed"] == 0
        stored = await services.admin.get_tenant(tenant.id)
        assert stored.subscription_status == S.SUSPENDED.value
        assert stored.suspension_type == SuspensionType.HARD.value
        assert stored.scheduled_deletion_at == stored.trial_ends_at + timedelta(days=GRACE_DAYS)

        history = await services.admin.status_history(tenant.id)
        assert sorted((h.old_status, h.new_status) for h in history) == [
            (S.GRACE.value, S.SUSPENDED.value),
            (S.TRIAL.value, S.GRACE.value),
        ]
        assert {h.reason for h in history} == {SCHEDULE_REASON}
        assert len(hooks.events) == 2

    async def test_second_run_changes_nothing(self, services, hooks, make_tenant):
        now = utcnow()
        tenant = await make_tenant(
            status=S.TRIAL, plan="demo", trial_ends_at=now - timedelta(days=2), subscription_ends_at=None,
        )
        await services.sweeper.run(now)
        first_state = await services.admin.get_tenant(tenant.id)
        history_count = len(await services.admin.status_history(tenant.id))
        events_count = len(hooks.events)

        stats = await services.sweeper.run(now)

        assert (stats["scheduled"], stats["deleted"], stats["failed"]) == (0, 0, 0)
        second_state = await services.admin.get_tenant(tenant.id)
        assert second_state.scheduled_deletion_at == first_state.scheduled_deletion_at
        assert len(await services.admin.status_history(tenant.id)) == history_count
        assert len(hooks.events) == events_count

    async def test_soft_suspended_paid_tenant_is_escalated(self, services, make_tenant):
        now = utcnow()
        ended = now - timedelta(days=40)
        tenant = await make_tenant(
            plan="basic", status=S.SUSPENDED, suspension_type=SuspensionType.SOFT.value, subscription_ends_at=ended,
        )

        await services.sweeper.run(now)

        stored = await services.admin.get_tenant(tenant.id)
        assert stored.suspension_type == SuspensionType.HARD.value
        assert stored.scheduled_deletion_at == ended + timedelta(days=GRACE_DAYS)

    async def test_cancelled_tenant_only_gets_a_deletion_date(self, services, hooks, make_tenant):
        now = utcnow()
        ended = now - timedelta(days=10)
        tenant = await make_tenant(plan="basic", status=S.CANCELLED, subscription_ends_at=ended)

        stats = await services.sweeper.run(now)

        assert stats["scheduled"] == 1
        stored = await services.admin.get_tenant(tenant.id)
        assert stored.subscription_status == S.CANCELLED.value
        assert stored.scheduled_deletion_at == ended + timedelta(days=GRACE_DAYS)
        assert await services.admin.status_history(tenant.id) == []
        assert hooks.events == []

    async def test_tenant_past_deletion_date_is_soft_deleted(self, services, make_tenant):
        now = utcnow()
        tenant = await make_tenant(
            plan="basic",
            status=S.SUSPENDED,
            suspension_type=SuspensionType.HARD.value,
            subscription_ends_at=now - timedelta(days=200),
            scheduled_deletion_at=now - timedelta(days=1),
        )

        stats = await services.sweeper.run(now)

        assert stats["deleted"] == 1
        stored = await services.admin.get_tenant(tenant.id)
        assert stored.subscription_status == S.CANCELLED.value
        assert stored.deleted_at == now
        history = await services.admin.status_history(tenant.id)
        assert [(h.new_status, h.reason) for h in history] == [(S.CANCELLED.value, DELETE_REASON)]
        assert await services.state_machine.access_level(tenant.id) == AccessLevel.BLOCK

        rerun = await services.sweeper.run(now)
        assert rerun["deleted"] == 0

    async def test_full_lifecycle_from_trial_to_deletion(self, services, make_tenant):
        start = utcnow()
        tenant = await make_tenant(
            status=S.TRIAL, plan="demo", trial_ends_at=start - timedelta(days=1), subscription_ends_at=None,
        )

        await services.sweeper.run(start)
        later = start + timedelta(days=GRACE_DAYS + 1)
        stats = await services.sweeper.run(later)

        assert stats["deleted"] == 1
        stored = await services.admin.get_tenant(tenant.id)
        assert stored.deleted_at is not None
        assert stored.subscription_status == S.CANCELLED.value

    async def test_healthy_tenants_are_untouched(self, services, tenant, make_tenant):
        now = utcnow()
        trial = await make_tenant(status=S.TRIAL, plan="demo", trial_ends_at=now + timedelta(days=5))

        stats = await services.sweeper.run(now)

        assert (stats["scheduled"], stats["deleted"]) == (0, 0)
        for tenant_id in (tenant.id, trial.id):
            stored = await services.admin.get_tenant(tenant_id)
            assert stored.scheduled_deletion_at is None
            assert stored.deleted_at is None
