# backend/otohub/api/v1/dealer_groups.py
from typing import List

from fastapi import APIRouter, Depends, status

from otohub.api.dependencies import get_services, get_tenant_id, require_role
from otohub.core.constants import Role
from otohub.schemas.dealer import Group, GroupCreate, Member, MemberAdd
from otohub.services.container import ServiceContainer

router = APIRouter()

owner_only = [Depends(require_role(Role.OWNER))]


@router.post("", response_model=Group, status_code=status.HTTP_201_CREATED, dependencies=owner_only)
async def create_group(
    group_in: GroupCreate,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.dealer_groups.create_group(tenant_id, group_in.name)


@router.get("", response_model=List[Group])
async def list_groups(
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.dealer_groups.list_groups(tenant_id)


@router.get("/{group_id}/members", response_model=List[Member])
async def list_members(
    group_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.dealer_groups.list_members(tenant_id, group_id)


@router.post("/{group_id}/members", response_model=Member, status_code=status.HTTP_201_CREATED, dependencies=owner_only)
async def add_member(
    group_id: str,
    member_in: MemberAdd,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.dealer_groups.add_member(tenant_id, group_id, member_in.tenant_id)


@router.delete("/{group_id}/members/{member_tenant_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=owner_only)
async def remove_member(
    group_id: str,
    member_tenant_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    await services.dealer_groups.remove_member(tenant_id, group_id, member_tenant_id)
