# backend/otohub/db/models/__init__.py
from otohub.db.models.plan import Plan
from otohub.db.models.tenant import Tenant
from otohub.db.models.tenant_status_history import TenantStatusHistory
from otohub.db.models.user import User
from otohub.db.models.branch import Branch
from otohub.db.models.vehicle import Vehicle
from otohub.db.models.customer import Customer
from otohub.db.models.notification import Notification
from otohub.db.models.invoice import SystemInvoice
from otohub.db.models.dealer_group import DealerGroup, DealerGroupMember
from otohub.db.models.stock_transfer import StockTransfer

__all__ = [
    "Plan",
    "Tenant",
    "TenantStatusHistory",
    "User",
    "Branch",
    "Vehicle",
    "Customer",
    "Notification",
    "SystemInvoice",
    "DealerGroup",
    "DealerGroupMember",
    "StockTransfer",
]
