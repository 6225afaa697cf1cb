# backend/otohub/api/v1/admin.py
"""Platform operator routes (SUPERADMIN only)"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status

from otohub.api.dependencies import get_principal, get_services, require_role
from otohub.core.constants import Role
from otohub.core.security import Principal
from otohub.schemas.billing import Invoice, PaymentVerification
from otohub.schemas.tenant import StatusChange, StatusHistory, SuspendRequest, Tenant, TenantCreate
from otohub.schemas.user import User
from otohub.services.container import ServiceContainer

router = APIRouter(dependencies=[Depends(require_role(Role.SUPERADMIN))])


@router.post("/tenants", status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant_in: TenantCreate,
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    created = await services.admin.create_tenant(
        tenant_in.name,
        tenant_in.owner_email,
        owner_name=tenant_in.owner_name,
        plan_slug=tenant_in.plan,
        billing_months=tenant_in.billing_months,
    )
    return {
        "tenant": Tenant.model_validate(created["tenant"]),
        "owner": User.model_validate(created["owner"]),
    }


@router.get("/tenants", response_model=List[Tenant])
async def list_tenants(
    skip: int = 0,
    limit: int = 100,
    status: Optional[str] = None,
    services: ServiceContainer = Depends(get_services),
):
    return await services.admin.list_tenants(skip=skip, limit=limit, status=status)


@router.get("/tenants/{tenant_id}", response_model=Tenant)
async def get_tenant(tenant_id: str, services: ServiceContainer = Depends(get_services)):
    return await services.admin.get_tenant(tenant_id)


@router.post("/tenants/{tenant_id}/suspend", response_model=Tenant)
async def suspend_tenant(
    tenant_id: str,
    body: Optional[SuspendRequest] = None,
    services: ServiceContainer = Depends(get_services),
):
    return await services.admin.suspend_tenant(tenant_id, (body or SuspendRequest()).reason)


@router.post("/tenants/{tenant_id}/activate", response_model=Tenant)
async def activate_tenant(tenant_id: str, services: ServiceContainer = Depends(get_services)):
    return await services.admin.activate_tenant(tenant_id)


@router.post("/tenants/{tenant_id}/status", response_model=Tenant)
async def set_tenant_status(
    tenant_id: str,
    change: StatusChange,
    services: ServiceContainer = Depends(get_services),
):
    return await services.admin.set_status(tenant_id, change.status, change.reason, change.suspension_type)


@router.post("/tenants/{tenant_id}/trial", response_model=Tenant)
async def restart_trial(tenant_id: str, services: ServiceContainer = Depends(get_services)):
    """Re-stamp the demo trial window of a tenant still in TRIAL"""
    return await services.billing.start_trial(tenant_id)


@router.get("/tenants/{tenant_id}/history", response_model=List[StatusHistory])
async def tenant_status_history(tenant_id: str, services: ServiceContainer = Depends(get_services)):
    return await services.admin.status_history(tenant_id)


@router.delete("/tenants/{tenant_id}")
async def hard_delete_tenant(tenant_id: str, services: ServiceContainer = Depends(get_services)) -> Dict[str, Any]:
    """Physically delete a tenant and every row it owns"""
    return {"removed": await services.admin.hard_delete_tenant(tenant_id)}


@router.post("/invoices/{invoice_id}/verify", response_model=Invoice)
async def verify_payment(
    invoice_id: str,
    verification: PaymentVerification,
    principal: Principal = Depends(get_principal),
    services: ServiceContainer = Depends(get_services),
):
    return await services.billing.verify_payment(invoice_id, verification.approved, verified_by=principal.subject_id)


@router.post("/lifecycle/sweep")
async def run_lifecycle_sweep(services: ServiceContainer = Depends(get_services)) -> Dict[str, Any]:
    return await services.sweeper.run()


@router.post("/billing/suspend-overdue")
async def suspend_overdue(services: ServiceContainer = Depends(get_services)) -> Dict[str, Any]:
    return await services.billing.auto_suspend_overdue()
