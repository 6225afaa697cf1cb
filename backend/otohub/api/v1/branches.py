# backend/otohub/api/v1/branches.py
from typing import List

from fastapi import APIRouter, Depends, status

from otohub.api.dependencies import get_services, get_tenant_id, require_role
from otohub.core.constants import Role
from otohub.schemas.inventory import Branch, BranchCreate
from otohub.services.container import ServiceContainer

router = APIRouter()


@router.get("", response_model=List[Branch])
async def list_branches(
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.branches.list(tenant_id)


@router.post(
    "",
    response_model=Branch,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role(Role.OWNER, Role.SUPERADMIN))],
)
async def create_branch(
    branch_in: BranchCreate,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.branches.create(tenant_id, branch_in.model_dump(exclude_unset=True))
