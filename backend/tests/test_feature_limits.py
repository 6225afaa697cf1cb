# tests/test_feature_limits.py
"""
Plan limits and feature flags
Tests: boundary behaviour, soft deletes, unlimited plans, fail-closed plan resolution
"""
import pytest

from otohub.core.constants import UNLIMITED, Feature, PLAN_TIERS, PlanTier
from otohub.core.errors import FeatureDisabled, LimitReached
from otohub.services.feature_limits import plan_flag, plan_limit

DEMO_VEHICLES = PLAN_TIERS[PlanTier.DEMO]["max_vehicles"]


class _Plan:
    """Plain stand-in carrying the plan columns"""

    def __init__(self, **columns):
        self.__dict__.update(columns)


class TestPlanLookups:

    def test_limits_come_from_plan_columns(self):
        plan = _Plan(**PLAN_TIERS[PlanTier.PRO])

        assert plan_limit(plan, Feature.VEHICLES) == 200
        assert plan_limit(plan, Feature.USERS) == 10
        assert plan_limit(plan, Feature.BRANCHES) == 3
        assert plan_limit(plan, Feature.CUSTOMERS) == 1000

    def test_unknown_plan_means_zero_and_disabled(self):
        assert plan_limit(None, Feature.VEHICLES) == 0
        assert plan_flag(None, Feature.PDF_EXPORT) is False

    def test_flags_must_be_explicitly_true(self):
        plan = _Plan(can_create_group=False, features={"pdf_export": True, "api_access": "yes"})

        assert plan_flag(plan, Feature.PDF_EXPORT) is True
        assert plan_flag(plan, Feature.API_ACCESS) is False
        assert plan_flag(plan, Feature.ADVANCED_ANALYTICS) is False

    def test_group_flag_reads_can_create_group(self):
        assert plan_flag(_Plan(**PLAN_TIERS[PlanTier.UNLIMITED]), Feature.DEALER_GROUP) is True
        assert plan_flag(_Plan(**PLAN_TIERS[PlanTier.PRO]), Feature.DEALER_GROUP) is False


@pytest.mark.asyncio
class TestLimitEnforcement:

    async def test_limit_boundary_and_recovery_after_delete(self, services, tenant):
        created = []
        for i in range(DEMO_VEHICLES):
            created.append(await services.vehicles.create(tenant.id, {"make": "Toyota", "model": f"Unit {i}"}))

        with pytest.raises(LimitReached) as exc_info:
            await services.vehicles.create(tenant.id, {"make": "Toyota", "model": "One too many"})

        error = exc_info.value
        assert error.status_code == 402
        assert error.details == {"feature": "VEHICLES", "limit": DEMO_VEHICLES, "current": DEMO_VEHICLES}
        assert await services.vehicles.count(tenant.id) == DEMO_VEHICLES

        await services.vehicles.delete(tenant.id, created[0].id)
        await services.vehicles.create(tenant.id, {"make": "Toyota", "model": "Replacement"})
        assert await services.vehicles.count(tenant.id) == DEMO_VEHICLES

    async def test_limits_are_per_tenant(self, services, make_tenant):
        full = await make_tenant(name="Full Dealer")
        other = await make_tenant(name="Other Dealer")
        for i in range(DEMO_VEHICLES):
            await services.vehicles.create(full.id, {"make": "Honda", "model": f"Unit {i}"})

        await services.vehicles.create(other.id, {"make": "Honda", "model": "Fresh"})

    async def test_unlimited_plan_never_blocks(self, services, make_tenant):
        tenant = await make_tenant(plan="unlimited")

        for i in range(DEMO_VEHICLES + 3):
            await services.vehicles.create(tenant.id, {"make": "Suzuki", "model": f"Unit {i}"})

        usage = await services.limits.usage(tenant.id)
        assert usage["VEHICLES"] == {"limit": UNLIMITED, "current": DEMO_VEHICLES + 3}

    async def test_user_limit_counts_existing_owner(self, services, tenant, make_user):
        await make_user(tenant)

        with pytest.raises(LimitReached):
            await services.limits.assert_can_create(tenant.id, Feature.USERS)

    async def test_unresolvable_plan_fails_closed(self, services, make_tenant):
        tenant = await make_tenant(plan=None, plan_tier="GOLD")

        with pytest.raises(LimitReached) as exc_info:
            await services.vehicles.create(tenant.id, {"make": "Kia", "model": "Picanto"})
        assert exc_info.value.limit == 0

        with pytest.raises(FeatureDisabled):
            await services.limits.assert_feature_enabled(tenant.id, Feature.PDF_EXPORT)

    async def test_legacy_tier_slug_resolves_plan(self, services, make_tenant):
        tenant = await make_tenant(plan=None, plan_tier="BASIC")

        usage = await services.limits.usage(tenant.id)

        assert usage["VEHICLES"]["limit"] == PLAN_TIERS[PlanTier.BASIC]["max_vehicles"]
        await services.limits.assert_feature_enabled(tenant.id, Feature.DATA_EXPORT)

    async def test_feature_flags_follow_plan(self, services, make_tenant):
        demo = await make_tenant(plan="demo")
        unlimited = await make_tenant(plan="unlimited")

        with pytest.raises(FeatureDisabled) as exc_info:
            await services.limits.assert_feature_enabled(demo.id, Feature.API_ACCESS)
        assert exc_info.value.code == "FEATURE_DISABLED"

        await services.limits.assert_feature_enabled(demo.id, Feature.PDF_EXPORT)
        await services.limits.assert_feature_enabled(unlimited.id, Feature.API_ACCESS)
        await services.limits.assert_feature_enabled(unlimited.id, Feature.DEALER_GROUP)

    async def test_customer_limit_comes_from_feature_map(self, services, tenant):
        usage = await services.limits.usage(tenant.id)

        assert usage["CUSTOMERS"]["limit"] == PLAN_TIERS[PlanTier.DEMO]["features"]["max_customers"]
