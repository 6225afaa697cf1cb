# backend/otohub/schemas/inventory.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class VehicleCreate(BaseModel):
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    plate_number: Optional[str] = None
    price: int = Field(0, ge=0)
    branch_id: Optional[str] = None


class VehicleUpdate(BaseModel):
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1900, le=2100)
    plate_number: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    status: Optional[str] = None
    branch_id: Optional[str] = None


class Vehicle(BaseModel):
    id: str
    tenant_id: str
    branch_id: Optional[str] = None
    make: str
    model: str
    year: Optional[int] = None
    plate_number: Optional[str] = None
    price: int
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None


class Customer(BaseModel):
    id: str
    tenant_id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BranchCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = None
    phone: Optional[str] = None


class Branch(BaseModel):
    id: str
    tenant_id: str
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
