"""
Dealer Groups

Groups span tenants, so this service uses the unscoped repositories and
checks ownership and membership explicitly.
"""
from typing import List
import logging

from sqlalchemy import or_, select

from otohub.core.constants import Feature
from otohub.core.errors import InsufficientRole, InvalidOperation, ResourceNotFound, TenantNotFound
from otohub.db.database import Database
from otohub.db.models.dealer_group import DealerGroup, DealerGroupMember
from otohub.db.repositories.base import BaseRepository
from otohub.db.repositories.tenant_repository import TenantRepository
from otohub.services.feature_limits import FeatureLimitEvaluator

logger = logging.getLogger(__name__)


class DealerGroupService:
    def __init__(self, database: Database, limits: FeatureLimitEvaluator):
        self.database = database
        self.limits = limits

    async def create_group(self, tenant_id: str, name: str) -> DealerGroup:
        """Create a group owned by ``tenant_id``; the owner is its first member."""
        async with self.database.session() as session:
            async with session.begin():
                await self.limits.assert_feature_enabled(tenant_id, Feature.DEALER_GROUP, session=session)
                existing = await session.execute(
                    select(DealerGroup.id).where(DealerGroup.owner_tenant_id == tenant_id)
                )
                if existing.first() is not None:
                    raise InvalidOperation("This tenant already owns a dealer group")

                group = await BaseRepository(DealerGroup, session).create({
                    "name": name,
                    "owner_tenant_id": tenant_id,
                })
                await BaseRepository(DealerGroupMember, session).create({
                    "group_id": group.id,
                    "member_tenant_id": tenant_id,
                })
        logger.info(f"Dealer group {group.id} created", extra={"tenant_id": tenant_id})
        return group

    async def list_groups(self, tenant_id: str) -> List[DealerGroup]:
        async with self.database.session() as session:
            member_of = select(DealerGroupMember.group_id).where(DealerGroupMember.member_tenant_id == tenant_id)
            result = await session.execute(
                select(DealerGroup)
                .where(or_(DealerGroup.owner_tenant_id == tenant_id, DealerGroup.id.in_(member_of)))
                .order_by(DealerGroup.created_at)
            )
            return list(result.scalars().all())

    async def list_members(self, tenant_id: str, group_id: str) -> List[DealerGroupMember]:
        async with self.database.session() as session:
            if not await self._is_member(session, group_id, tenant_id):
                raise ResourceNotFound("Group not found")
            result = await session.execute(
                select(DealerGroupMember).where(DealerGroupMember.group_id == group_id)
            )
            return list(result.scalars().all())

    async def add_member(self, owner_tenant_id: str, group_id: str, member_tenant_id: str) -> DealerGroupMember:
        async with self.database.session() as session:
            async with session.begin():
                group = await self._owned_group(session, owner_tenant_id, group_id)
                member = await TenantRepository(session).get_by_id(member_tenant_id)
                if member is None:
                    raise TenantNotFound()
                if await self._is_member(session, group.id, member_tenant_id):
                    raise InvalidOperation("Tenant is already a member of this group")

                await self.limits.assert_can_create(owner_tenant_id, Feature.DEALER_GROUP, session=session)
                membership = await BaseRepository(DealerGroupMember, session).create({
                    "group_id": group.id,
                    "member_tenant_id": member_tenant_id,
                })
        logger.info(
            f"Tenant {member_tenant_id} joined dealer group {group_id}",
            extra={"tenant_id": owner_tenant_id},
        )
        return membership

    async def remove_member(self, owner_tenant_id: str, group_id: str, member_tenant_id: str) -> None:
        if member_tenant_id == owner_tenant_id:
            raise InvalidOperation("The group owner cannot leave its own group")
        async with self.database.session() as session:
            async with session.begin():
                group = await self._owned_group(session, owner_tenant_id, group_id)
                result = await session.execute(
                    select(DealerGroupMember)
                    .where(DealerGroupMember.group_id == group.id)
                    .where(DealerGroupMember.member_tenant_id == member_tenant_id)
                )
                membership = result.scalar_one_or_none()
                if membership is None:
                    raise ResourceNotFound("Tenant is not a member of this group")
                await session.delete(membership)

    async def share_group(self, session, tenant_a: str, tenant_b: str) -> bool:
        """True when both tenants belong to at least one common group."""
        groups_a = select(DealerGroupMember.group_id).where(DealerGroupMember.member_tenant_id == tenant_a)
        result = await session.execute(
            select(DealerGroupMember.id)
            .where(DealerGroupMember.member_tenant_id == tenant_b)
            .where(DealerGroupMember.group_id.in_(groups_a))
            .limit(1)
        )
        return result.first() is not None

    async def _owned_group(self, session, owner_tenant_id: str, group_id: str) -> DealerGroup:
        group = await BaseRepository(DealerGroup, session).get(group_id)
        if group is None:
            raise ResourceNotFound("Group not found")
        if group.owner_tenant_id != owner_tenant_id:
            raise InsufficientRole("Only the group owner can manage members")
        return group

    async def _is_member(self, session, group_id: str, tenant_id: str) -> bool:
        result = await session.execute(
            select(DealerGroupMember.id)
            .where(DealerGroupMember.group_id == group_id)
            .where(DealerGroupMember.member_tenant_id == tenant_id)
        )
        return result.first() is not None
