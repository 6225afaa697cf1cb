# backend/otohub/db/repositories/inventory_repository.py
from otohub.db.models.branch import Branch
from otohub.db.models.customer import Customer
from otohub.db.models.notification import Notification
from otohub.db.models.vehicle import Vehicle
from otohub.db.models.invoice import SystemInvoice
from otohub.db.repositories.tenant_scoped import TenantScopedRepository


class VehicleRepository(TenantScopedRepository[Vehicle]):
    model = Vehicle


class CustomerRepository(TenantScopedRepository[Customer]):
    model = Customer


class BranchRepository(TenantScopedRepository[Branch]):
    model = Branch


class NotificationRepository(TenantScopedRepository[Notification]):
    model = Notification


class InvoiceRepository(TenantScopedRepository[SystemInvoice]):
    model = SystemInvoice
