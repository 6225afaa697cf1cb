# tests/test_query_scoping.py
"""
Tenant-scoped data access
Tests: filter merging, forged tenant ids, cross-tenant isolation, allowlist
"""
import pytest

from otohub.db.models import DealerGroup
from otohub.db.repositories.inventory_repository import CustomerRepository, VehicleRepository
from otohub.db.repositories.tenant_scoped import (
    TenantIsolationError,
    TenantScopedRepository,
    sanitize_input,
    scope_filters,
    stamp_payload,
)


class TestScopeHelpers:

    def test_scope_filters_forces_tenant(self):
        scoped = scope_filters("tenant-a", {"tenant_id": "tenant-b", "tenantId": "tenant-c", "make": "Toyota"})

        assert scoped == {"tenant_id": "tenant-a", "make": "Toyota"}

    def test_scope_filters_with_no_filter(self):
        assert scope_filters("tenant-a") == {"tenant_id": "tenant-a"}

    def test_scope_filters_requires_tenant(self):
        with pytest.raises(TenantIsolationError):
            scope_filters("", {"make": "Toyota"})

    def test_stamp_payload_overrides_forged_tenant(self):
        stamped = stamp_payload("tenant-a", {"tenant_id": "tenant-b", "make": "Honda"})

        assert stamped == {"tenant_id": "tenant-a", "make": "Honda"}

    def test_sanitize_input_strips_system_fields(self):
        cleaned = sanitize_input({
            "id": "forged",
            "tenantId": "tenant-b",
            "tenant_id": "tenant-b",
            "createdAt": "2020-01-01",
            "deleted_at": None,
            "make": "Suzuki",
        })

        assert cleaned == {"make": "Suzuki"}

    def test_repository_for_unscoped_table_is_refused(self):
        with pytest.raises(TenantIsolationError):
            class GroupRepository(TenantScopedRepository[DealerGroup]):
                model = DealerGroup


@pytest.mark.asyncio
class TestScopedRepository:

    async def test_forged_tenant_id_on_create_is_overwritten(self, database, make_tenant):
        tenant_a = await make_tenant(name="Dealer A")
        tenant_b = await make_tenant(name="Dealer B")

        async with database.session() as session:
            async with session.begin():
                vehicle = await VehicleRepository(session).create(
                    tenant_a.id, {"make": "Toyota", "model": "Avanza", "tenant_id": tenant_b.id},
                )

        assert vehicle.tenant_id == tenant_a.id
        async with database.session() as session:
            repo = VehicleRepository(session)
            assert await repo.count(tenant_b.id) == 0
            assert await repo.count(tenant_a.id) == 1

    async def test_reads_never_cross_tenants(self, database, make_tenant):
        tenant_a = await make_tenant(name="Dealer A")
        tenant_b = await make_tenant(name="Dealer B")

        async with database.session() as session:
            async with session.begin():
                repo = VehicleRepository(session)
                mine = await repo.create(tenant_a.id, {"make": "Toyota", "model": "Rush"})
                await repo.create(tenant_b.id, {"make": "Honda", "model": "Brio"})

        async with database.session() as session:
            repo = VehicleRepository(session)
            listed = await repo.find_many(tenant_a.id, {"tenant_id": tenant_b.id})
            assert [v.id for v in listed] == [mine.id]
            assert await repo.get(tenant_b.id, mine.id) is None
            assert await repo.find_first(tenant_b.id, {"id": mine.id}) is None

    async def test_writes_never_cross_tenants(self, database, make_tenant):
        tenant_a = await make_tenant(name="Dealer A")
        tenant_b = await make_tenant(name="Dealer B")

        async with database.session() as session:
            async with session.begin():
                vehicle = await VehicleRepository(session).create(tenant_a.id, {"make": "Toyota", "model": "Yaris"})

        async with database.session() as session:
            async with session.begin():
                repo = VehicleRepository(session)
                assert await repo.update(tenant_b.id, vehicle.id, {"price": 1}) is None
                assert await repo.update_many(tenant_b.id, {"id": vehicle.id}, {"price": 1}) == 0
                assert await repo.delete_many(tenant_b.id, {"id": vehicle.id}) == 0
                assert await repo.soft_delete(tenant_b.id, vehicle.id) is False

        async with database.session() as session:
            stored = await VehicleRepository(session).get(tenant_a.id, vehicle.id)
        assert stored is not None
        assert stored.price == 0
        assert stored.deleted_at is None

    async def test_update_cannot_move_a_row_to_another_tenant(self, database, make_tenant):
        tenant_a = await make_tenant(name="Dealer A")
        tenant_b = await make_tenant(name="Dealer B")

        async with database.session() as session:
            async with session.begin():
                repo = VehicleRepository(session)
                vehicle = await repo.create(tenant_a.id, {"make": "Toyota", "model": "Vios"})
                updated = await repo.update(tenant_a.id, vehicle.id, {"tenant_id": tenant_b.id, "price": 5})

        assert updated.tenant_id == tenant_a.id
        assert updated.price == 5

    async def test_count_excludes_soft_deleted(self, database, tenant):
        async with database.session() as session:
            async with session.begin():
                repo = VehicleRepository(session)
                first = await repo.create(tenant.id, {"make": "Daihatsu", "model": "Ayla"})
                await repo.create(tenant.id, {"make": "Daihatsu", "model": "Xenia"})
                assert await repo.soft_delete(tenant.id, first.id)

        async with database.session() as session:
            repo = VehicleRepository(session)
            assert await repo.count(tenant.id) == 1
            assert await repo.count(tenant.id, include_deleted=True) == 2
            assert await repo.get(tenant.id, first.id) is None

    async def test_upsert_and_create_many_stay_in_scope(self, database, make_tenant):
        tenant_a = await make_tenant(name="Dealer A")
        tenant_b = await make_tenant(name="Dealer B")

        async with database.session() as session:
            async with session.begin():
                repo = CustomerRepository(session)
                rows = await repo.create_many(tenant_a.id, [
                    {"name": "Budi", "tenant_id": tenant_b.id},
                    {"name": "Sari"},
                ])
                assert {c.tenant_id for c in rows} == {tenant_a.id}

                created = await repo.upsert(tenant_b.id, {"name": "Budi"}, create={"name": "Budi"}, update={"phone": "1"})
                assert created.tenant_id == tenant_b.id
                assert created.id not in {c.id for c in rows}

                updated = await repo.upsert(tenant_a.id, {"name": "Budi"}, create={"name": "Budi"}, update={"phone": "2"})
                assert updated.id == rows[0].id
                assert updated.phone == "2"