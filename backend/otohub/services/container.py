# backend/otohub/services/container.py
from dataclasses import dataclass
from typing import Optional

from otohub.core.config import Settings
from otohub.core.hooks import PostCommitHooks
from otohub.core.pipeline import AccessPipeline
from otohub.core.route_policies import RoutePolicyTable
from otohub.db.database import Database
from otohub.services.billing_service import BillingService
from otohub.services.dealer_groups import DealerGroupService
from otohub.services.feature_limits import FeatureLimitEvaluator
from otohub.services.inventory import BranchService, CustomerService, StaffService, VehicleService
from otohub.services.lifecycle_sweeper import LifecycleSweeper
from otohub.services.notifications import default_hooks
from otohub.services.stock_transfers import StockTransferService
from otohub.services.subscription_state import SubscriptionStateMachine
from otohub.services.tenant_admin import TenantAdminService


@dataclass
class ServiceContainer:
    """Everything a request handler needs, wired once at startup"""

    settings: Settings
    database: Database
    policies: RoutePolicyTable
    state_machine: SubscriptionStateMachine
    limits: FeatureLimitEvaluator
    pipeline: AccessPipeline
    billing: BillingService
    admin: TenantAdminService
    vehicles: VehicleService
    customers: CustomerService
    branches: BranchService
    staff: StaffService
    dealer_groups: DealerGroupService
    stock_transfers: StockTransferService
    sweeper: LifecycleSweeper


def build_services(
    settings: Settings,
    database: Database,
    policies: RoutePolicyTable,
    hooks: Optional[PostCommitHooks] = None,
) -> ServiceContainer:
    state_machine = SubscriptionStateMachine(database, hooks if hooks is not None else default_hooks(database))
    limits = FeatureLimitEvaluator(database)
    dealer_groups = DealerGroupService(database, limits)
    return ServiceContainer(
        settings=settings,
        database=database,
        policies=policies,
        state_machine=state_machine,
        limits=limits,
        pipeline=AccessPipeline(settings, policies, state_machine),
        billing=BillingService(database, state_machine, limits, settings),
        admin=TenantAdminService(database, state_machine, settings),
        vehicles=VehicleService(database, limits),
        customers=CustomerService(database, limits),
        branches=BranchService(database, limits),
        staff=StaffService(database, limits),
        dealer_groups=dealer_groups,
        stock_transfers=StockTransferService(database, limits, dealer_groups),
        sweeper=LifecycleSweeper(database, state_machine, settings),
    )
