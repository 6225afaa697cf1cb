# backend/otohub/api/dependencies.py
from fastapi import Depends, Request

from otohub.core.constants import Role
from otohub.core.errors import AuthenticationRequired, InsufficientRole, NoTenantAssociated
from otohub.core.pipeline import RequestContext
from otohub.core.security import Principal
from otohub.services.container import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


async def authorize_request(request: Request) -> RequestContext:
    """Router-level dependency: run the access pipeline once per request"""
    return await get_services(request).pipeline.authorize(request)


async def get_request_context(context: RequestContext = Depends(authorize_request)) -> RequestContext:
    return context


async def get_principal(context: RequestContext = Depends(authorize_request)) -> Principal:
    if context.principal is None:
        raise AuthenticationRequired()
    return context.principal


async def get_tenant_id(context: RequestContext = Depends(authorize_request)) -> str:
    """Effective tenant id; a superadmin must pick one with X-Tenant-ID"""
    if context.tenant_id is None:
        raise NoTenantAssociated("This endpoint needs a tenant. Superadmins must send X-Tenant-ID")
    return context.tenant_id


def require_role(*roles: Role):
    """Dependency to check the principal's role"""
    allowed = frozenset(roles)

    async def role_checker(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in allowed:
            raise InsufficientRole(f"Requires one of: {', '.join(sorted(r.value for r in allowed))}")
        return principal

    return role_checker
