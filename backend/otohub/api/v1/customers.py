# backend/otohub/api/v1/customers.py
from typing import List

from fastapi import APIRouter, Depends, status

from otohub.api.dependencies import get_services, get_tenant_id
from otohub.schemas.inventory import Customer, CustomerCreate
from otohub.services.container import ServiceContainer

router = APIRouter()


@router.get("", response_model=List[Customer])
async def list_customers(
    skip: int = 0,
    limit: int = 100,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.customers.list(tenant_id, skip=skip, limit=limit)


@router.post("", response_model=Customer, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_in: CustomerCreate,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.customers.create(tenant_id, customer_in.model_dump(exclude_unset=True))


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    await services.customers.delete(tenant_id, customer_id)
