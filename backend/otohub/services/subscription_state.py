"""
Subscription State Machine

Owns every write to a tenant's subscription_status / suspension_type and
derives the AccessLevel that gates requests. A transition is one atomic
unit: lock the tenant row, validate, write the status, append the history
row. Side effects run as post-commit hooks once the unit is durable.
"""
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from otohub.core.constants import (
    READ_METHODS,
    AccessLevel,
    SubscriptionStatus,
    SuspensionType,
    TriggeredBy,
)
from otohub.core.errors import (
    IllegalTransition,
    ReadOnlyViolation,
    SubscriptionBlocked,
    TenantNotFound,
)
from otohub.core.hooks import PostCommitHooks, TransitionEvent
from otohub.db.database import Database
from otohub.db.models.tenant import Tenant
from otohub.db.repositories.tenant_repository import (
    TenantRepository,
    TenantStatusHistoryRepository,
)

logger = logging.getLogger(__name__)

S = SubscriptionStatus

ALLOWED_TRANSITIONS: Dict[SubscriptionStatus, FrozenSet[SubscriptionStatus]] = {
    S.ACTIVE: frozenset({S.GRACE, S.CANCELLED, S.SUSPENDED}),
    S.TRIAL: frozenset({S.GRACE, S.CANCELLED, S.ACTIVE}),
    S.GRACE: frozenset({S.SUSPENDED, S.ACTIVE, S.CANCELLED}),
    S.SUSPENDED: frozenset({S.ACTIVE, S.CANCELLED}),
    S.CANCELLED: frozenset(),
}

# Fields that only a transition may write
STATE_FIELDS = frozenset({"subscription_status", "suspension_type"})

StatusLike = Union[SubscriptionStatus, str, None]


def _coerce_status(value: StatusLike) -> Optional[SubscriptionStatus]:
    if value is None or isinstance(value, SubscriptionStatus):
        return value
    try:
        return SubscriptionStatus(value)
    except ValueError:
        return None


def validate_transition(from_status: StatusLike, to_status: StatusLike) -> None:
    """
    Raise IllegalTransition unless from -> to is an edge of the graph.

    Self-transitions are always valid. CANCELLED is terminal.
    """
    current = _coerce_status(from_status)
    target = _coerce_status(to_status)

    if current is not None and current == target:
        return

    if current is None or target is None or target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise IllegalTransition(str(getattr(from_status, "value", from_status)), str(getattr(to_status, "value", to_status)))


def resolve_access(status: StatusLike, suspension_type: Union[SuspensionType, str, None] = None) -> AccessLevel:
    """Map (status, suspension type) to an AccessLevel. Unknown statuses fail closed."""
    current = _coerce_status(status)
    suspension = getattr(suspension_type, "value", suspension_type)

    if current in (S.ACTIVE, S.TRIAL):
        return AccessLevel.FULL
    if current == S.GRACE:
        return AccessLevel.READ_ONLY
    if current == S.SUSPENDED:
        if suspension == SuspensionType.HARD.value:
            return AccessLevel.BLOCK
        return AccessLevel.BILLING_ONLY
    return AccessLevel.BLOCK


def is_whitelisted(path: str, whitelist: Iterable[str]) -> bool:
    for prefix in whitelist:
        prefix = prefix.rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def enforce_access(level: AccessLevel, method: str, path: str, whitelist: Iterable[str]) -> None:
    """
    Apply an AccessLevel to one request.

    ``path`` is relative to the API prefix. Whitelisted billing paths are
    always reachable so a blocked tenant can pay its way out. BILLING_ONLY
    is enforced exactly like READ_ONLY.
    """
    if level == AccessLevel.FULL or is_whitelisted(path, whitelist):
        return

    if level == AccessLevel.BLOCK:
        raise SubscriptionBlocked()

    if level in (AccessLevel.READ_ONLY, AccessLevel.BILLING_ONLY):
        if method.upper() in READ_METHODS:
            return
        raise ReadOnlyViolation()

    raise SubscriptionBlocked()


class SubscriptionStateMachine:
    """
    Performs validated, audited subscription status transitions.

    ``transition`` runs its own transaction. ``apply`` joins a caller's
    transaction so several changes (a plan switch plus the status move, or
    two chained transitions) commit together; the caller then passes the
    returned events to ``fire``.
    """

    def __init__(self, database: Database, hooks: Optional[PostCommitHooks] = None):
        self.database = database
        self.hooks = hooks or PostCommitHooks()

    async def transition(
        self,
        tenant_id: str,
        to_status: SubscriptionStatus,
        reason: str,
        triggered_by: TriggeredBy,
        reference_id: Optional[str] = None,
        suspension_type: Optional[SuspensionType] = None,
        extra_changes: Optional[Dict[str, Any]] = None,
    ) -> Tenant:
        async with self.database.session() as session:
            async with session.begin():
                tenant, event = await self.apply(
                    session,
                    tenant_id,
                    to_status,
                    reason,
                    triggered_by,
                    reference_id=reference_id,
                    suspension_type=suspension_type,
                    extra_changes=extra_changes,
                )

        if event is not None:
            await self.fire([event])
        return tenant

    async def apply(
        self,
        session: AsyncSession,
        tenant_id: str,
        to_status: SubscriptionStatus,
        reason: str,
        triggered_by: TriggeredBy,
        reference_id: Optional[str] = None,
        suspension_type: Optional[SuspensionType] = None,
        extra_changes: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Tenant, Optional[TransitionEvent]]:
        """
        Transition inside an open transaction.

        Returns the tenant and the event to fire after commit, or None for
        a self-transition, which writes no history row.
        """
        extra_changes = dict(extra_changes or {})
        if STATE_FIELDS & extra_changes.keys():
            raise ValueError("subscription state fields can only change through a transition")

        to_status = SubscriptionStatus(to_status)
        tenant = await TenantRepository(session).get_for_update(tenant_id)
        if tenant is None:
            raise TenantNotFound()

        old_status = tenant.subscription_status
        validate_transition(old_status, to_status)

        if to_status == S.SUSPENDED and suspension_type is None and old_status == S.SUSPENDED.value:
            new_suspension = tenant.suspension_type
        elif to_status == S.SUSPENDED:
            new_suspension = SuspensionType(suspension_type or SuspensionType.SOFT).value
        else:
            new_suspension = None

        for key, value in extra_changes.items():
            setattr(tenant, key, value)

        # Same status and same suspension type: nothing to record
        if old_status == to_status.value and tenant.suspension_type == new_suspension:
            await session.flush()
            return tenant, None

        tenant.subscription_status = to_status.value
        tenant.suspension_type = new_suspension
        triggered_by = TriggeredBy(triggered_by)

        await TenantStatusHistoryRepository(session).append(
            tenant_id=tenant.id,
            old_status=old_status,
            new_status=to_status.value,
            reason=reason,
            triggered_by=triggered_by.value,
            reference_id=reference_id,
        )

        logger.info(
            f"Tenant status {old_status} -> {to_status.value} by {triggered_by.value}",
            extra={"tenant_id": tenant.id, "reason": reason, "reference_id": reference_id},
        )

        return tenant, TransitionEvent(
            tenant_id=tenant.id,
            old_status=old_status,
            new_status=to_status.value,
            reason=reason,
            triggered_by=triggered_by.value,
            reference_id=reference_id,
            suspension_type=new_suspension,
        )

    async def fire(self, events: List[TransitionEvent]) -> None:
        for event in events:
            await self.hooks.run(event)

    async def access_level(self, tenant_id: str) -> AccessLevel:
        """Current AccessLevel for a tenant; missing or deleted tenants are BLOCK."""
        async with self.database.session() as session:
            tenant = await TenantRepository(session).get_by_id(tenant_id)
        if tenant is None:
            return AccessLevel.BLOCK
        return resolve_access(tenant.subscription_status, tenant.suspension_type)
