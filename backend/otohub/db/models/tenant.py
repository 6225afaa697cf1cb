# backend/otohub/db/models/tenant.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from otohub.core.constants import PlanTier, SubscriptionStatus
from otohub.db.base import BaseModel, SoftDeleteMixin, new_id


class Tenant(SoftDeleteMixin, BaseModel):
    """
    Dealership account.

    ``subscription_status`` and ``suspension_type`` are written only by
    SubscriptionStateMachine so that every change has a history row.
    """
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)

    # Plan: direct FK, with the legacy tier slug kept as a fallback
    plan_tier = Column(String(20), default=PlanTier.DEMO.value, nullable=False)
    plan_id = Column(String(36), ForeignKey("plans.id"), nullable=True)

    # Subscription lifecycle
    subscription_status = Column(String(30), default=SubscriptionStatus.TRIAL.value, nullable=False, index=True)
    suspension_type = Column(String(10), nullable=True)
    monthly_bill = Column(Integer, default=0, nullable=False)
    auto_renew = Column(Boolean, default=False, nullable=False)
    trial_ends_at = Column(DateTime, nullable=True)
    subscription_started_at = Column(DateTime, nullable=True)
    subscription_ends_at = Column(DateTime, nullable=True)
    next_billing_date = Column(DateTime, nullable=True)
    scheduled_deletion_at = Column(DateTime, nullable=True, index=True)

    # Relationships
    plan = relationship("Plan", lazy="selectin")
