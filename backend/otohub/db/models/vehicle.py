# backend/otohub/db/models/vehicle.py
from sqlalchemy import Column, String, Integer, BigInteger, ForeignKey

from otohub.core.constants import VehicleStatus
from otohub.db.base import BaseModel, SoftDeleteMixin, new_id


class Vehicle(SoftDeleteMixin, BaseModel):
    """Inventory unit owned by a tenant"""
    __tablename__ = "vehicles"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    branch_id = Column(String(36), ForeignKey("branches.id"), nullable=True)

    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=True)
    plate_number = Column(String(20), nullable=True)
    price = Column(BigInteger, default=0, nullable=False)
    status = Column(String(20), default=VehicleStatus.AVAILABLE.value, nullable=False)
