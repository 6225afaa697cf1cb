# backend/otohub/db/repositories/base.py
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

ModelType = TypeVar("ModelType")


def apply_filters(query, model, filters: Optional[Dict[str, Any]]):
    """Translate a {column: value} dict into WHERE clauses.

    Lists and tuples become IN, None becomes IS NULL.
    """
    for key, value in (filters or {}).items():
        column = getattr(model, key)
        if isinstance(value, (list, tuple, set, frozenset)):
            query = query.where(column.in_(list(value)))
        elif value is None:
            query = query.where(column.is_(None))
        else:
            query = query.where(column == value)
    return query


class BaseRepository(Generic[ModelType]):
    """
    Unscoped repository with common CRUD operations.

    Used for platform-level tables (tenants, plans) and for the explicit
    cross-tenant paths. Repositories only flush; the caller owns the
    transaction.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def get(self, id: Any) -> Optional[ModelType]:
        """Get by ID"""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, id: Any) -> Optional[ModelType]:
        """Get by ID holding a row lock until the transaction ends"""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def create(self, obj_in: dict) -> ModelType:
        """Create new record"""
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        await self.session.flush()
        return db_obj

    async def update(self, id: Any, obj_in: dict) -> Optional[ModelType]:
        """Update record"""
        db_obj = await self.get(id)
        if db_obj is None:
            return None
        for key, value in obj_in.items():
            setattr(db_obj, key, value)
        await self.session.flush()
        return db_obj

    async def delete(self, id: Any) -> bool:
        """Delete record"""
        result = await self.session.execute(
            delete(self.model).where(self.model.id == id)
        )
        return result.rowcount > 0
