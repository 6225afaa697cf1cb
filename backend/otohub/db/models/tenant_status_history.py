# backend/otohub/db/models/tenant_status_history.py
from sqlalchemy import Column, String, DateTime, ForeignKey, Text

from otohub.db.base import Base, new_id, utcnow


class TenantStatusHistory(Base):
    """Append-only audit trail of subscription status transitions"""
    __tablename__ = "tenant_status_history"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    old_status = Column(String(30), nullable=False)
    new_status = Column(String(30), nullable=False)
    reason = Column(Text, nullable=True)
    triggered_by = Column(String(20), nullable=False)
    reference_id = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
