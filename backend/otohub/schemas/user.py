# backend/otohub/schemas/user.py
from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime

from otohub.core.constants import Role


class UserCreate(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None
    role: Role = Role.STAFF
    branch_id: Optional[str] = None


class UserInDB(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    tenant_id: Optional[str] = None
    role: str
    is_active: bool
    email_verified: bool
    onboarding_completed: bool
    created_at: datetime

    class Config:
        from_attributes = True


class User(UserInDB):
    pass


class PrincipalOut(BaseModel):
    subject_id: str
    email: str
    role: Role
    tenant_id: Optional[str] = None
    email_verified: bool
    onboarding_completed: bool


class MeResponse(BaseModel):
    principal: PrincipalOut
    effective_tenant_id: Optional[str] = None
    access_level: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
