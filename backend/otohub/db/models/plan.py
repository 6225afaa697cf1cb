# backend/otohub/db/models/plan.py
from sqlalchemy import Column, String, Integer, Boolean, JSON

from otohub.db.base import BaseModel, new_id


class Plan(BaseModel):
    """Subscription plan. Limits use -1 as the unlimited sentinel."""
    __tablename__ = "plans"

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Integer, default=0, nullable=False)

    # First-class limits
    max_vehicles = Column(Integer, default=0, nullable=False)
    max_users = Column(Integer, default=0, nullable=False)
    max_branches = Column(Integer, default=0, nullable=False)
    max_group_members = Column(Integer, default=0, nullable=False)
    can_create_group = Column(Boolean, default=False, nullable=False)

    # Secondary limits and boolean flags
    features = Column(JSON, default=dict, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
