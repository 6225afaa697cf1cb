# backend/otohub/db/repositories/user_repository.py
from typing import Optional

from sqlalchemy import select

from otohub.core.constants import Role
from otohub.db.models.user import User
from otohub.db.repositories.tenant_scoped import TenantScopedRepository


class UserRepository(TenantScopedRepository[User]):
    model = User

    async def find_owner(self, tenant_id: str) -> Optional[User]:
        return await self.find_first(tenant_id, {"role": Role.OWNER.value})

    async def get_by_email(self, email: str) -> Optional[User]:
        """Unscoped lookup used at sign-in, before a tenant is known"""
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()
