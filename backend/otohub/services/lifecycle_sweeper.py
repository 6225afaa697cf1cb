"""
Lifecycle Sweeper

Daily two-phase pass over tenants:

1. Lapsed trials and lapsed paid subscriptions with no deletion date are
   hard-suspended and get ``scheduled_deletion_at = expiry + grace``.
2. Tenants past their deletion date are cancelled and soft-deleted.

Both phases select on ``scheduled_deletion_at IS NULL`` / ``deleted_at IS NULL``
and re-check under the row lock, so a second run over processed data
changes nothing. A failure on one tenant is logged and the sweep moves on.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import logging

from otohub.core.config import Settings
from otohub.core.constants import PlanTier, SubscriptionStatus, SuspensionType, TriggeredBy
from otohub.core.hooks import TransitionEvent
from otohub.db.base import utcnow
from otohub.db.database import Database
from otohub.db.models.tenant import Tenant
from otohub.db.repositories.tenant_repository import TenantRepository
from otohub.services.subscription_state import SubscriptionStateMachine

logger = logging.getLogger(__name__)

S = SubscriptionStatus

SCHEDULE_REASON = "Expired > Scheduled for Deletion"
DELETE_REASON = "Auto Soft Delete (Scheduled)"


class SweepStats:
    """Counters for one sweeper run"""

    def __init__(self):
        self.scheduled = 0
        self.deleted = 0
        self.failed = 0
        self.started_at = utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheduled": self.scheduled,
            "deleted": self.deleted,
            "failed": self.failed,
            "started_at": self.started_at.isoformat(),
        }


def lapse_date(tenant: Tenant, now: datetime) -> Optional[datetime]:
    """The expiry that makes a tenant eligible for scheduling, if any."""
    paid_lapsed = (
        tenant.subscription_ends_at is not None
        and tenant.subscription_ends_at < now
        and tenant.subscription_status in (S.SUSPENDED.value, S.CANCELLED.value)
    )
    if paid_lapsed:
        return tenant.subscription_ends_at
    on_trial = tenant.plan_tier == PlanTier.DEMO.value or tenant.subscription_status == S.TRIAL.value
    if on_trial and tenant.trial_ends_at is not None and tenant.trial_ends_at < now:
        return tenant.trial_ends_at
    return None


class LifecycleSweeper:
    def __init__(self, database: Database, state_machine: SubscriptionStateMachine, settings: Settings):
        self.database = database
        self.state_machine = state_machine
        self.grace = timedelta(days=settings.DELETION_GRACE_DAYS)

    async def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        stats = SweepStats()

        async with self.database.session() as session:
            lapsed = [t.id for t in await TenantRepository(session).list_lapsed_unscheduled(now)]
        for tenant_id in lapsed:
            try:
                if await self._schedule(tenant_id, now):
                    stats.scheduled += 1
            except Exception:
                stats.failed += 1
                logger.exception("Failed to schedule tenant for deletion", extra={"tenant_id": tenant_id})

        async with self.database.session() as session:
            due = [t.id for t in await TenantRepository(session).list_due_for_deletion(now)]
        for tenant_id in due:
            try:
                if await self._soft_delete(tenant_id, now):
                    stats.deleted += 1
            except Exception:
                stats.failed += 1
                logger.exception("Failed to soft delete tenant", extra={"tenant_id": tenant_id})

        logger.info("Lifecycle sweep finished", extra=stats.to_dict())
        return stats.to_dict()

    async def _schedule(self, tenant_id: str, now: datetime) -> bool:
        events: List[TransitionEvent] = []
        async with self.database.session() as session:
            async with session.begin():
                tenant = await TenantRepository(session).get_for_update(tenant_id)
                if tenant is None or tenant.deleted_at is not None or tenant.scheduled_deletion_at is not None:
                    return False
                expiry = lapse_date(tenant, now)
                if expiry is None:
                    return False

                changes = {"scheduled_deletion_at": expiry + self.grace}
                status = tenant.subscription_status

                if status == S.CANCELLED.value:
                    # Terminal: only the deletion date is stamped
                    await self.state_machine.apply(
                        session, tenant_id, S.CANCELLED, SCHEDULE_REASON, TriggeredBy.SYSTEM,
                        extra_changes=changes,
                    )
                else:
                    if status in (S.TRIAL.value, S.ACTIVE.value):
                        # No direct edge to SUSPENDED from TRIAL; route through GRACE
                        _, event = await self.state_machine.apply(
                            session, tenant_id, S.GRACE, SCHEDULE_REASON, TriggeredBy.SYSTEM,
                        )
                        events.append(event)
                    _, event = await self.state_machine.apply(
                        session, tenant_id, S.SUSPENDED, SCHEDULE_REASON, TriggeredBy.SYSTEM,
                        suspension_type=SuspensionType.HARD,
                        extra_changes=changes,
                    )
                    events.append(event)

        await self.state_machine.fire([e for e in events if e is not None])
        logger.info(
            f"Tenant scheduled for deletion at {changes['scheduled_deletion_at'].isoformat()}",
            extra={"tenant_id": tenant_id},
        )
        return True

    async def _soft_delete(self, tenant_id: str, now: datetime) -> bool:
        async with self.database.session() as session:
            async with session.begin():
                tenant = await TenantRepository(session).get_for_update(tenant_id)
                if (
                    tenant is None
                    or tenant.deleted_at is not None
                    or tenant.scheduled_deletion_at is None
                    or tenant.scheduled_deletion_at >= now
                ):
                    return False
                _, event = await self.state_machine.apply(
                    session, tenant_id, S.CANCELLED, DELETE_REASON, TriggeredBy.SYSTEM,
                    extra_changes={"deleted_at": now},
                )

        if event is not None:
            await self.state_machine.fire([event])
        logger.info("Tenant soft deleted", extra={"tenant_id": tenant_id})
        return True
