# tests/test_dealer_groups.py
"""
Dealer groups and stock transfers
Tests: group gating, membership rules, cross-tenant vehicle moves
"""
import pytest

from otohub.core.constants import TransferStatus, VehicleStatus
from otohub.core.errors import FeatureDisabled, InsufficientRole, InvalidOperation, LimitReached


@pytest.fixture
async def group_setup(services, make_tenant):
    """An unlimited-plan group owner with one basic-plan member"""
    owner = await make_tenant(name="Group Owner", plan="unlimited")
    member = await make_tenant(name="Group Member", plan="basic")
    group = await services.dealer_groups.create_group(owner.id, "Jaya Group")
    await services.dealer_groups.add_member(owner.id, group.id, member.id)
    return owner, member, group


@pytest.mark.asyncio
class TestDealerGroups:

    async def test_group_creation_needs_the_feature(self, services, make_tenant):
        tenant = await make_tenant(plan="pro")

        with pytest.raises(FeatureDisabled):
            await services.dealer_groups.create_group(tenant.id, "Not Allowed")

    async def test_one_group_per_owner(self, services, group_setup):
        owner, _, _ = group_setup

        with pytest.raises(InvalidOperation):
            await services.dealer_groups.create_group(owner.id, "Second Group")

    async def test_membership_is_visible_to_both_sides(self, services, group_setup):
        owner, member, group = group_setup

        assert [g.id for g in await services.dealer_groups.list_groups(member.id)] == [group.id]
        members = await services.dealer_groups.list_members(member.id, group.id)
        assert {m.member_tenant_id for m in members} == {owner.id, member.id}

    async def test_only_the_owner_manages_members(self, services, group_setup, make_tenant):
        _, member, group = group_setup
        outsider = await make_tenant(name="Outsider")

        with pytest.raises(InsufficientRole):
            await services.dealer_groups.add_member(member.id, group.id, outsider.id)

    async def test_duplicate_member_is_refused(self, services, group_setup):
        owner, member, group = group_setup

        with pytest.raises(InvalidOperation):
            await services.dealer_groups.add_member(owner.id, group.id, member.id)

    async def test_owner_usage_counts_members(self, services, group_setup):
        owner, _, _ = group_setup

        usage = await services.limits.usage(owner.id)

        assert usage["DEALER_GROUP"] == {"limit": 20, "current": 2}


@pytest.mark.asyncio
class TestStockTransfers:

    async def test_transfer_moves_vehicle_on_approval(self, services, group_setup):
        owner, member, _ = group_setup
        vehicle = await services.vehicles.create(owner.id, {"make": "Toyota", "model": "Hilux"})

        transfer = await services.stock_transfers.request_transfer(owner.id, vehicle.id, member.id)
        booked = await services.vehicles.get(owner.id, vehicle.id)
        assert booked.status == VehicleStatus.BOOKED.value

        with pytest.raises(InsufficientRole):
            await services.stock_transfers.approve_transfer(owner.id, transfer.id)

        approved = await services.stock_transfers.approve_transfer(member.id, transfer.id)

        assert approved.status == TransferStatus.APPROVED.value
        assert await services.vehicles.count(owner.id) == 0
        moved = await services.vehicles.get(member.id, vehicle.id)
        assert moved.status == VehicleStatus.AVAILABLE.value

    async def test_second_pending_transfer_is_refused(self, services, group_setup):
        owner, member, _ = group_setup
        vehicle = await services.vehicles.create(owner.id, {"make": "Toyota", "model": "Hiace"})
        await services.stock_transfers.request_transfer(owner.id, vehicle.id, member.id)

        with pytest.raises(InvalidOperation):
            await services.stock_transfers.request_transfer(owner.id, vehicle.id, member.id)

    async def test_transfer_outside_group_is_refused(self, services, group_setup, make_tenant):
        owner, _, _ = group_setup
        outsider = await make_tenant(name="Outsider")
        vehicle = await services.vehicles.create(owner.id, {"make": "Isuzu", "model": "Panther"})

        with pytest.raises(InvalidOperation):
            await services.stock_transfers.request_transfer(owner.id, vehicle.id, outsider.id)

    async def test_cannot_transfer_someone_elses_vehicle(self, services, group_setup):
        owner, member, _ = group_setup
        vehicle = await services.vehicles.create(member.id, {"make": "Nissan", "model": "Livina"})

        with pytest.raises(InvalidOperation):
            await services.stock_transfers.request_transfer(owner.id, vehicle.id, member.id)

    async def test_cancel_releases_the_vehicle(self, services, group_setup):
        owner, member, _ = group_setup
        vehicle = await services.vehicles.create(owner.id, {"make": "Suzuki", "model": "Ertiga"})
        transfer = await services.stock_transfers.request_transfer(owner.id, vehicle.id, member.id)

        with pytest.raises(InsufficientRole):
            await services.stock_transfers.cancel_transfer(member.id, transfer.id)
        cancelled = await services.stock_transfers.cancel_transfer(owner.id, transfer.id)

        assert cancelled.status == TransferStatus.CANCELLED.value
        released = await services.vehicles.get(owner.id, vehicle.id)
        assert released.status == VehicleStatus.AVAILABLE.value

    async def test_recipient_limit_is_checked_on_approval(self, services, make_tenant):
        owner = await make_tenant(name="Group Owner", plan="unlimited")
        demo = await make_tenant(name="Small Member", plan="demo")
        group = await services.dealer_groups.create_group(owner.id, "Mixed Group")
        await services.dealer_groups.add_member(owner.id, group.id, demo.id)
        for i in range(5):
            await services.vehicles.create(demo.id, {"make": "Daihatsu", "model": f"Unit {i}"})
        vehicle = await services.vehicles.create(owner.id, {"make": "Toyota", "model": "Camry"})
        transfer = await services.stock_transfers.request_transfer(owner.id, vehicle.id, demo.id)

        with pytest.raises(LimitReached):
            await services.stock_transfers.approve_transfer(demo.id, transfer.id)

        still_pending = await services.stock_transfers.list_transfers(demo.id, status=TransferStatus.PENDING.value)
        assert [t.id for t in still_pending] == [transfer.id]
        assert (await services.vehicles.get(owner.id, vehicle.id)).tenant_id == owner.id
