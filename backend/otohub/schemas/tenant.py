# backend/otohub/schemas/tenant.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from otohub.core.constants import SubscriptionStatus, SuspensionType


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    owner_email: EmailStr
    owner_name: Optional[str] = None
    plan: str = "demo"
    billing_months: int = Field(1, ge=1, le=12)


class TenantInDB(BaseModel):
    id: str
    name: str
    slug: str
    plan_tier: str
    plan_id: Optional[str] = None
    subscription_status: str
    suspension_type: Optional[str] = None
    trial_ends_at: Optional[datetime] = None
    subscription_ends_at: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    scheduled_deletion_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class Tenant(TenantInDB):
    pass


class StatusChange(BaseModel):
    status: SubscriptionStatus
    reason: str = Field(..., min_length=3)
    suspension_type: Optional[SuspensionType] = None


class SuspendRequest(BaseModel):
    reason: str = "Suspended by administrator"


class StatusHistory(BaseModel):
    id: str
    tenant_id: str
    old_status: str
    new_status: str
    reason: Optional[str] = None
    triggered_by: str
    reference_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
