# backend/otohub/services/plans.py
import logging
from typing import List

from otohub.core.constants import PLAN_TIERS
from otohub.db.database import Database
from otohub.db.models.plan import Plan
from otohub.db.repositories.plan_repository import PlanRepository

logger = logging.getLogger(__name__)


async def seed_default_plans(database: Database) -> List[Plan]:
    """Insert or refresh the built-in plan catalogue; safe to run on every start."""
    seeded = []
    async with database.session() as session:
        async with session.begin():
            repo = PlanRepository(session)
            for tier in PLAN_TIERS.values():
                plan = await repo.get_by_slug(tier["slug"])
                if plan is None:
                    plan = await repo.create(dict(tier))
                    logger.info(f"Seeded plan {tier['slug']}")
                else:
                    for key, value in tier.items():
                        setattr(plan, key, value)
                seeded.append(plan)
    return seeded
