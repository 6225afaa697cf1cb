# backend/otohub/db/models/invoice.py
from sqlalchemy import Column, String, Integer, BigInteger, DateTime, ForeignKey, JSON

from otohub.core.constants import InvoiceStatus
from otohub.db.base import BaseModel, new_id


class SystemInvoice(BaseModel):
    """Platform subscription invoice issued to a tenant"""
    __tablename__ = "system_invoices"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    invoice_number = Column(String(30), unique=True, nullable=False)
    amount = Column(BigInteger, nullable=False)
    status = Column(String(20), default=InvoiceStatus.PENDING.value, nullable=False, index=True)

    plan_tier = Column(String(20), nullable=False)
    months = Column(Integer, default=1, nullable=False)
    discount_percent = Column(Integer, default=0, nullable=False)
    items = Column(JSON, default=dict, nullable=False)

    due_date = Column(DateTime, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    payment_proof = Column(String(500), nullable=True)
    verified_by = Column(String(36), nullable=True)
