# backend/otohub/core/pipeline.py
"""
Access Decision Pipeline

Runs the per-request authorization chain in a fixed order:

    Principal -> User state -> Tenant context -> Subscription access level

The resulting RequestContext is computed once and stored on
``request.state.context``; later dependencies read it and never recompute
the tenant from request data. Feature limits run afterwards, inside the
handler's unit of work.
"""
from dataclasses import dataclass
from typing import Optional
import logging

from fastapi import Request

from otohub.core.config import Settings
from otohub.core.constants import AccessLevel
from otohub.core.errors import OtohubError
from otohub.core.route_policies import RoutePolicy, RoutePolicyTable
from otohub.core.security import Principal, decode_principal, extract_credential
from otohub.core.tenant import TENANT_HEADER, resolve_tenant_context
from otohub.core.user_state import check_user_state
from otohub.services.subscription_state import SubscriptionStateMachine, enforce_access

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    principal: Optional[Principal]
    tenant_id: Optional[str]
    access_level: AccessLevel
    policy: RoutePolicy

    @property
    def is_public(self) -> bool:
        return self.principal is None


class AccessPipeline:
    def __init__(self, settings: Settings, policies: RoutePolicyTable, state_machine: SubscriptionStateMachine):
        self.settings = settings
        self.policies = policies
        self.state_machine = state_machine

    def _relative_path(self, path: str) -> str:
        prefix = self.settings.API_V1_STR.rstrip("/")
        if prefix and path.startswith(prefix):
            return path[len(prefix):] or "/"
        return path

    async def authorize(self, request: Request) -> RequestContext:
        cached = getattr(request.state, "context", None)
        if cached is not None:
            return cached

        policy = self.policies.lookup(request.method, request.url.path)
        if policy.public:
            context = RequestContext(principal=None, tenant_id=None, access_level=AccessLevel.FULL, policy=policy)
            request.state.context = context
            return context

        principal = decode_principal(
            extract_credential(request, self.settings.AUTH_COOKIE_NAME),
            self.settings,
        )
        check_user_state(principal, policy.allow_unverified, policy.allow_unonboarded)
        tenant_id = resolve_tenant_context(principal, request.headers.get(TENANT_HEADER))

        if principal.is_superadmin or tenant_id is None:
            access_level = AccessLevel.FULL
        else:
            access_level = await self.state_machine.access_level(tenant_id)
            try:
                enforce_access(
                    access_level,
                    request.method,
                    self._relative_path(request.url.path),
                    self.settings.BILLING_WHITELIST_PATHS,
                )
            except OtohubError as exc:
                logger.warning(
                    f"Subscription gate rejected {request.method} {request.url.path}: {exc.code}",
                    extra={"tenant_id": tenant_id, "user_id": principal.subject_id, "access_level": access_level.value},
                )
                raise

        context = RequestContext(principal=principal, tenant_id=tenant_id, access_level=access_level, policy=policy)
        request.state.context = context
        return context
