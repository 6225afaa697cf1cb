# backend/otohub/api/v1/stock_transfers.py
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from otohub.api.dependencies import get_principal, get_services, get_tenant_id, require_role
from otohub.core.constants import Role
from otohub.core.security import Principal
from otohub.schemas.dealer import Transfer, TransferCreate, TransferDecision
from otohub.services.container import ServiceContainer

router = APIRouter()

managers = [Depends(require_role(Role.OWNER, Role.MANAGER))]


@router.post("", response_model=Transfer, status_code=status.HTTP_201_CREATED, dependencies=managers)
async def request_transfer(
    transfer_in: TransferCreate,
    tenant_id: str = Depends(get_tenant_id),
    principal: Principal = Depends(get_principal),
    services: ServiceContainer = Depends(get_services),
):
    return await services.stock_transfers.request_transfer(
        tenant_id,
        transfer_in.vehicle_id,
        transfer_in.target_tenant_id,
        requested_by=principal.subject_id,
        note=transfer_in.note,
    )


@router.get("", response_model=List[Transfer])
async def list_transfers(
    status: Optional[str] = None,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.stock_transfers.list_transfers(tenant_id, status=status)


@router.post("/{transfer_id}/approve", response_model=Transfer, dependencies=managers)
async def approve_transfer(
    transfer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.stock_transfers.approve_transfer(tenant_id, transfer_id)


@router.post("/{transfer_id}/reject", response_model=Transfer, dependencies=managers)
async def reject_transfer(
    transfer_id: str,
    decision: Optional[TransferDecision] = None,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.stock_transfers.reject_transfer(tenant_id, transfer_id, note=decision.note if decision else None)


@router.post("/{transfer_id}/cancel", response_model=Transfer, dependencies=managers)
async def cancel_transfer(
    transfer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.stock_transfers.cancel_transfer(tenant_id, transfer_id)
