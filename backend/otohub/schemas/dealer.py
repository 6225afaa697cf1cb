# backend/otohub/schemas/dealer.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)


class Group(BaseModel):
    id: str
    name: str
    owner_tenant_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class MemberAdd(BaseModel):
    tenant_id: str


class Member(BaseModel):
    id: str
    group_id: str
    member_tenant_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class TransferCreate(BaseModel):
    vehicle_id: str
    target_tenant_id: str
    note: Optional[str] = None


class TransferDecision(BaseModel):
    note: Optional[str] = None


class Transfer(BaseModel):
    id: str
    vehicle_id: str
    source_tenant_id: str
    target_tenant_id: str
    status: str
    note: Optional[str] = None
    decided_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
