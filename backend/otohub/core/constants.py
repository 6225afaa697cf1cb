# backend/otohub/core/constants.py
from enum import Enum
from typing import Dict, Any, FrozenSet, List


class Role(str, Enum):
    STAFF = "STAFF"
    MANAGER = "MANAGER"
    OWNER = "OWNER"
    ADMIN_STAFF = "ADMIN_STAFF"
    SUPERADMIN = "SUPERADMIN"


class SubscriptionStatus(str, Enum):
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    GRACE = "GRACE"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"
    # Transient markers surfaced by status reads, never stored through a transition
    EXPIRED = "EXPIRED"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PENDING_RENEWAL = "PENDING_RENEWAL"


class SuspensionType(str, Enum):
    SOFT = "SOFT"
    HARD = "HARD"


class AccessLevel(str, Enum):
    FULL = "FULL"
    READ_ONLY = "READ_ONLY"
    BILLING_ONLY = "BILLING_ONLY"
    BLOCK = "BLOCK"


class TriggeredBy(str, Enum):
    SYSTEM = "SYSTEM"
    BILLING = "BILLING"
    SUPERADMIN = "SUPERADMIN"


class Feature(str, Enum):
    # Quantitative limits
    VEHICLES = "VEHICLES"
    USERS = "USERS"
    BRANCHES = "BRANCHES"
    CUSTOMERS = "CUSTOMERS"
    DEALER_GROUP = "DEALER_GROUP"
    # Boolean flags kept in the plan feature map
    PDF_EXPORT = "PDF_EXPORT"
    API_ACCESS = "API_ACCESS"
    DATA_EXPORT = "DATA_EXPORT"
    BLACKLIST_ACCESS = "BLACKLIST_ACCESS"
    ADVANCED_ANALYTICS = "ADVANCED_ANALYTICS"


class PlanTier(str, Enum):
    DEMO = "DEMO"
    BASIC = "BASIC"
    PRO = "PRO"
    UNLIMITED = "UNLIMITED"


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    VERIFYING = "VERIFYING"
    PAID = "PAID"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class TransferStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class VehicleStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    SOLD = "SOLD"


UNLIMITED = -1

# Fields callers may never write, in both wire and column spelling
PROTECTED_FIELDS: FrozenSet[str] = frozenset({
    "id",
    "tenant_id",
    "tenantId",
    "created_at",
    "createdAt",
    "updated_at",
    "updatedAt",
    "deleted_at",
    "deletedAt",
})

READ_METHODS: FrozenSet[str] = frozenset({"GET", "HEAD", "OPTIONS"})

PLAN_ORDER: List[PlanTier] = [PlanTier.DEMO, PlanTier.BASIC, PlanTier.PRO, PlanTier.UNLIMITED]

# Billing periods in months -> discount percent
BILLING_PERIODS: Dict[int, int] = {1: 0, 6: 10, 12: 20}

DAYS_PER_BILLING_MONTH = 30


# Plan catalogue seeded into the plans table
PLAN_TIERS: Dict[PlanTier, Dict[str, Any]] = {
    PlanTier.DEMO: {
        "slug": "demo",
        "name": "Demo",
        "price": 0,
        "max_vehicles": 5,
        "max_users": 1,
        "max_branches": 1,
        "max_group_members": 0,
        "can_create_group": False,
        "features": {
            "max_customers": 20,
            "pdf_export": True,
            "data_export": False,
            "blacklist_access": False,
            "advanced_analytics": False,
            "api_access": False,
        },
    },
    PlanTier.BASIC: {
        "slug": "basic",
        "name": "Basic",
        "price": 299000,
        "max_vehicles": 50,
        "max_users": 3,
        "max_branches": 1,
        "max_group_members": 0,
        "can_create_group": False,
        "features": {
            "max_customers": 200,
            "pdf_export": True,
            "data_export": True,
            "blacklist_access": True,
            "advanced_analytics": False,
            "api_access": False,
        },
    },
    PlanTier.PRO: {
        "slug": "pro",
        "name": "Pro",
        "price": 599000,
        "max_vehicles": 200,
        "max_users": 10,
        "max_branches": 3,
        "max_group_members": 0,
        "can_create_group": False,
        "features": {
            "max_customers": 1000,
            "pdf_export": True,
            "data_export": True,
            "blacklist_access": True,
            "advanced_analytics": True,
            "api_access": False,
        },
    },
    PlanTier.UNLIMITED: {
        "slug": "unlimited",
        "name": "Unlimited",
        "price": 1499000,
        "max_vehicles": UNLIMITED,
        "max_users": UNLIMITED,
        "max_branches": UNLIMITED,
        "max_group_members": 20,
        "can_create_group": True,
        "features": {
            "max_customers": UNLIMITED,
            "pdf_export": True,
            "data_export": True,
            "blacklist_access": True,
            "advanced_analytics": True,
            "api_access": True,
        },
    },
}
