# backend/secdash/db/repositories/base.py
from typing import Any, Callable, Dict, Generic, Optional, Tuple, Type, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations"""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def get(self, id: Any) -> Optional[ModelType]:
        """Get by primary key"""
        return await self.session.get(self.model, id)

    async def get_by(self, field: str, value: Any) -> Optional[ModelType]:
        """Get the first record whose ``field`` equals ``value``"""
        result = await self.session.execute(
            select(self.model).where(getattr(self.model, field) == value).limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, obj_in: dict) -> ModelType:
        """Create new record"""
        db_obj = self.model(**obj_in)
        self.session.add(db_obj)
        await self.session.commit()
        await self.session.refresh(db_obj)
        return db_obj

    async def update(self, id: Any, obj_in: dict) -> Optional[ModelType]:
        """Update record"""
        pk = self._pk_column()
        await self.session.execute(
            update(self.model).where(pk == id).values(**obj_in)
        )
        await self.session.commit()
        return await self.get(id)

    async def upsert(
        self,
        key_field: str,
        key: Any,
        values: Dict[str, Any],
        merge: Optional[Callable[[ModelType, Dict[str, Any]], Dict[str, Any]]] = None
    ) -> Tuple[ModelType, bool]:
        """
        Insert or update the record identified by ``key_field == key``.

        ``merge`` lets the caller derive the update from the stored record.
        Returns ``(record, created)``. The session is committed; callers roll
        back on failure.
        """
        existing = await self.get_by(key_field, key)
        if existing is None:
            db_obj = self.model(**{key_field: key, **values})
            self.session.add(db_obj)
            await self.session.commit()
            return db_obj, True

        if merge is not None:
            values = merge(existing, values)
        for name, value in values.items():
            setattr(existing, name, value)
        await self.session.commit()
        return existing, False

    def _pk_column(self):
        return self.model.__mapper__.primary_key[0]
