# backend/otohub/db/repositories/plan_repository.py
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otohub.db.models.plan import Plan
from otohub.db.repositories.base import BaseRepository


class PlanRepository(BaseRepository[Plan]):
    def __init__(self, session: AsyncSession):
        super().__init__(Plan, session)

    async def get_by_slug(self, slug: str) -> Optional[Plan]:
        result = await self.session.execute(select(Plan).where(Plan.slug == slug))
        return result.scalar_one_or_none()

    async def list_active(self) -> List[Plan]:
        result = await self.session.execute(
            select(Plan).where(Plan.is_active.is_(True)).order_by(Plan.price)
        )
        return list(result.scalars().all())
