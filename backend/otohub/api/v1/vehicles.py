# backend/otohub/api/v1/vehicles.py
from typing import List

from fastapi import APIRouter, Depends, status

from otohub.api.dependencies import get_services, get_tenant_id
from otohub.schemas.inventory import Vehicle, VehicleCreate, VehicleUpdate
from otohub.services.container import ServiceContainer

router = APIRouter()


@router.get("", response_model=List[Vehicle])
async def list_vehicles(
    skip: int = 0,
    limit: int = 100,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.vehicles.list(tenant_id, skip=skip, limit=limit)


@router.post("", response_model=Vehicle, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_in: VehicleCreate,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    """Create a vehicle; the plan's vehicle limit is checked in the same transaction"""
    return await services.vehicles.create(tenant_id, vehicle_in.model_dump(exclude_unset=True))


@router.get("/{vehicle_id}", response_model=Vehicle)
async def get_vehicle(
    vehicle_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.vehicles.get(tenant_id, vehicle_id)


@router.patch("/{vehicle_id}", response_model=Vehicle)
async def update_vehicle(
    vehicle_id: str,
    vehicle_in: VehicleUpdate,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    return await services.vehicles.update(tenant_id, vehicle_id, vehicle_in.model_dump(exclude_unset=True))


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    vehicle_id: str,
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    await services.vehicles.delete(tenant_id, vehicle_id)
