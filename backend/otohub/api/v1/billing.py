# backend/otohub/api/v1/billing.py
"""Billing routes. Reachable whatever the subscription access level, so a blocked tenant can pay."""
from typing import List

from fastapi import APIRouter, Depends, status

from otohub.api.dependencies import get_services, get_tenant_id, require_role
from otohub.core.constants import Role
from otohub.schemas.billing import Invoice, PaymentProof, Plan, SubscriptionStatusOut, UpgradeRequest
from otohub.services.container import ServiceContainer

router = APIRouter()


@router.get("/plans", response_model=List[Plan])
async def list_plans(services: ServiceContainer = Depends(get_services)):
    return await services.billing.list_plans()


@router.get("/status", response_model=SubscriptionStatusOut)
async def subscription_status(
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.billing.check_subscription_status(tenant_id)


@router.post(
    "/upgrade",
    response_model=Invoice,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role(Role.OWNER, Role.SUPERADMIN))],
)
async def request_upgrade(
    upgrade_in: UpgradeRequest,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.billing.request_upgrade(tenant_id, upgrade_in.plan, upgrade_in.months)


@router.get("/invoices", response_model=List[Invoice])
async def list_invoices(
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.billing.list_invoices(tenant_id)


@router.post(
    "/invoices/{invoice_id}/proof",
    response_model=Invoice,
    dependencies=[Depends(require_role(Role.OWNER, Role.SUPERADMIN))],
)
async def upload_payment_proof(
    invoice_id: str,
    proof_in: PaymentProof,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.billing.upload_payment_proof(tenant_id, invoice_id, proof_in.proof_url)
