# backend/otohub/schemas/billing.py
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime


class Plan(BaseModel):
    id: str
    slug: str
    name: str
    price: int
    max_vehicles: int
    max_users: int
    max_branches: int
    max_group_members: int
    can_create_group: bool
    features: Dict[str, Any]

    class Config:
        from_attributes = True


class UpgradeRequest(BaseModel):
    plan: str
    months: int = 1


class PaymentProof(BaseModel):
    proof_url: str = Field(..., min_length=5, max_length=500)


class PaymentVerification(BaseModel):
    approved: bool


class Invoice(BaseModel):
    id: str
    tenant_id: str
    invoice_number: str
    amount: int
    status: str
    plan_tier: str
    months: int
    discount_percent: int
    items: Dict[str, Any]
    due_date: datetime
    paid_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SubscriptionStatusOut(BaseModel):
    tenant_id: str
    status: str
    stored_status: str
    suspension_type: Optional[str] = None
    access_level: str
    plan_tier: str
    trial_ends_at: Optional[datetime] = None
    subscription_ends_at: Optional[datetime] = None
    scheduled_deletion_at: Optional[datetime] = None
    days_remaining: Optional[int] = None
    usage: Dict[str, Dict[str, int]]
