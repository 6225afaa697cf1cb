# backend/otohub/workers/lifecycle_tasks.py
import asyncio
from typing import Any, Dict

from celery import Task
from celery.schedules import crontab

from otohub.core.config import settings
from otohub.core.logging import logger
from otohub.db.database import Database
from otohub.services.billing_service import BillingService
from otohub.services.feature_limits import FeatureLimitEvaluator
from otohub.services.lifecycle_sweeper import LifecycleSweeper
from otohub.services.notifications import default_hooks
from otohub.services.subscription_state import SubscriptionStateMachine
from otohub.workers.celery_app import celery_app


class LifecycleTask(Task):
    """Custom task class for scheduled lifecycle jobs"""

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        """Handle task failure"""
        logger.error(f"Lifecycle task {task_id} failed: {exc}", exc_info=True)


async def _sweep_async() -> Dict[str, Any]:
    database = Database.from_settings(settings)
    try:
        machine = SubscriptionStateMachine(database, default_hooks(database))
        return await LifecycleSweeper(database, machine, settings).run()
    finally:
        await database.dispose()


async def _overdue_async() -> Dict[str, Any]:
    database = Database.from_settings(settings)
    try:
        machine = SubscriptionStateMachine(database, default_hooks(database))
        billing = BillingService(database, machine, FeatureLimitEvaluator(database), settings)
        return await billing.auto_suspend_overdue()
    finally:
        await database.dispose()


@celery_app.task(bind=True, base=LifecycleTask, name="lifecycle.sweep")
def run_lifecycle_sweep(self) -> Dict[str, Any]:
    """Schedule lapsed tenants for deletion and soft-delete overdue ones"""
    return asyncio.run(_sweep_async())


@celery_app.task(bind=True, base=LifecycleTask, name="billing.suspend_overdue")
def suspend_overdue_tenants(self) -> Dict[str, Any]:
    """Soft-suspend tenants whose billing date is long past"""
    return asyncio.run(_overdue_async())


@celery_app.on_after_configure.connect
def setup_lifecycle_tasks(sender, **kwargs):
    sender.add_periodic_task(
        crontab(hour=settings.SWEEPER_HOUR, minute=0),
        run_lifecycle_sweep.s(),
        name="daily_lifecycle_sweep",
    )
    sender.add_periodic_task(
        crontab(hour=settings.BILLING_JOB_HOUR, minute=0),
        suspend_overdue_tenants.s(),
        name="daily_overdue_suspension",
    )
