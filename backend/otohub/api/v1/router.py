# backend/otohub/api/v1/router.py
from fastapi import APIRouter, Depends

from otohub.api.dependencies import authorize_request
from otohub.api.v1 import admin, auth, billing, branches, customers, dealer_groups, stock_transfers, users, vehicles
from otohub.core.route_policies import RoutePolicyTable

api_router = APIRouter(dependencies=[Depends(authorize_request)])

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(vehicles.router, prefix="/vehicles", tags=["vehicles"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(branches.router, prefix="/branches", tags=["branches"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
api_router.include_router(dealer_groups.router, prefix="/dealer-groups", tags=["dealer-groups"])
api_router.include_router(stock_transfers.router, prefix="/stock-transfers", tags=["stock-transfers"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])


def build_route_policies(prefix: str) -> RoutePolicyTable:
    """Routes that relax the default authenticated + verified + onboarded policy"""
    policies = RoutePolicyTable()
    policies.register(f"{prefix}/billing/plans", methods=["GET"], public=True)
    policies.register(f"{prefix}/auth/me", methods=["GET"], allow_unverified=True, allow_unonboarded=True)
    policies.register(f"{prefix}/auth/onboarding", methods=["POST"], allow_unonboarded=True)
    return policies
