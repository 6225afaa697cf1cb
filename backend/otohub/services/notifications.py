# backend/otohub/services/notifications.py
"""Default post-commit hooks for subscription transitions."""
import logging

from otohub.core.constants import SubscriptionStatus
from otohub.core.hooks import PostCommitHooks, TransitionEvent
from otohub.db.database import Database
from otohub.db.repositories.inventory_repository import NotificationRepository
from otohub.db.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    SubscriptionStatus.ACTIVE.value: ("Subscription active", "Your subscription is active. Thank you!"),
    SubscriptionStatus.GRACE.value: (
        "Payment pending",
        "Your account is in read-only mode until the pending invoice is paid.",
    ),
    SubscriptionStatus.SUSPENDED.value: (
        "Account suspended",
        "Your account has been suspended. Visit billing to restore access.",
    ),
    SubscriptionStatus.CANCELLED.value: ("Subscription cancelled", "Your subscription has been cancelled."),
}


def make_owner_notifier(database: Database):
    """Hook that writes an in-app notification for the tenant owner."""

    async def notify_tenant_owner(event: TransitionEvent) -> None:
        title, message = STATUS_MESSAGES.get(
            event.new_status,
            ("Subscription updated", f"Your subscription status is now {event.new_status}."),
        )
        async with database.session() as session:
            async with session.begin():
                owner = await UserRepository(session).find_owner(event.tenant_id)
                await NotificationRepository(session).create(
                    event.tenant_id,
                    {
                        "user_id": owner.id if owner else None,
                        "title": title,
                        "message": message,
                        "type": "BILLING",
                    },
                )

    return notify_tenant_owner


async def log_transition(event: TransitionEvent) -> None:
    logger.info(
        f"Subscription changed {event.old_status} -> {event.new_status}",
        extra={"tenant_id": event.tenant_id, "triggered_by": event.triggered_by, "reference_id": event.reference_id},
    )


def default_hooks(database: Database) -> PostCommitHooks:
    hooks = PostCommitHooks()
    hooks.register(log_transition)
    hooks.register(make_owner_notifier(database))
    return hooks
