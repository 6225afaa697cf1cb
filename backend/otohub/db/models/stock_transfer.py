# backend/otohub/db/models/stock_transfer.py
from sqlalchemy import Column, String, DateTime, ForeignKey, Text

from otohub.core.constants import TransferStatus
from otohub.db.base import BaseModel, new_id


class StockTransfer(BaseModel):
    """Vehicle handover between two tenants of the same dealer group"""
    __tablename__ = "stock_transfers"

    id = Column(String(36), primary_key=True, default=new_id)
    vehicle_id = Column(String(36), ForeignKey("vehicles.id"), nullable=False, index=True)
    source_tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    target_tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    status = Column(String(20), default=TransferStatus.PENDING.value, nullable=False)
    requested_by = Column(String(36), nullable=True)
    note = Column(Text, nullable=True)
    decided_at = Column(DateTime, nullable=True)
