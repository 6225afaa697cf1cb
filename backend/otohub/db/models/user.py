# backend/otohub/db/models/user.py
from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime

from otohub.core.constants import Role
from otohub.db.base import BaseModel, new_id


class User(BaseModel):
    """Dealership staff member, or a platform operator when tenant_id is null"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)

    # Tenant relationship, nullable only for SUPERADMIN / ADMIN_STAFF
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=True, index=True)
    branch_id = Column(String(36), ForeignKey("branches.id"), nullable=True)
    role = Column(String(20), default=Role.STAFF.value, nullable=False)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime, nullable=True)
