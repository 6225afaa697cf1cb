# backend/otohub/db/models/customer.py
from sqlalchemy import Column, String, ForeignKey

from otohub.db.base import BaseModel, SoftDeleteMixin, new_id


class Customer(SoftDeleteMixin, BaseModel):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
