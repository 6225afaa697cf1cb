# backend/otohub/api/v1/users.py
from typing import List

from fastapi import APIRouter, Depends, status

from otohub.api.dependencies import get_services, get_tenant_id, require_role
from otohub.core.constants import Role
from otohub.core.errors import InvalidOperation
from otohub.schemas.user import User, UserCreate
from otohub.services.container import ServiceContainer

router = APIRouter()

ASSIGNABLE_ROLES = (Role.STAFF, Role.MANAGER)


@router.get("", response_model=List[User])
async def list_users(
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.staff.list(tenant_id)


@router.post(
    "",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role(Role.OWNER, Role.MANAGER, Role.SUPERADMIN))],
)
async def create_user(
    user_in: UserCreate,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    """Invite a staff member; counts against the plan's user limit"""
    if user_in.role not in ASSIGNABLE_ROLES:
        raise InvalidOperation(f"Role {user_in.role.value} cannot be assigned here")
    data = user_in.model_dump(exclude_unset=True)
    data["role"] = user_in.role.value
    return await services.staff.create(tenant_id, data)
