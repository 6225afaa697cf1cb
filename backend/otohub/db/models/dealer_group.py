# backend/otohub/db/models/dealer_group.py
from sqlalchemy import Column, String, ForeignKey, UniqueConstraint

from otohub.db.base import BaseModel, new_id


class DealerGroup(BaseModel):
    """Group of tenants that may share inventory. Spans tenants."""
    __tablename__ = "dealer_groups"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    owner_tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)


class DealerGroupMember(BaseModel):
    __tablename__ = "dealer_group_members"
    __table_args__ = (UniqueConstraint("group_id", "member_tenant_id", name="uq_group_member"),)

    id = Column(String(36), primary_key=True, default=new_id)
    group_id = Column(String(36), ForeignKey("dealer_groups.id"), nullable=False, index=True)
    member_tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
