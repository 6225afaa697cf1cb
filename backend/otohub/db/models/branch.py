# backend/otohub/db/models/branch.py
from sqlalchemy import Column, String, ForeignKey

from otohub.db.base import BaseModel, new_id


class Branch(BaseModel):
    __tablename__ = "branches"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
