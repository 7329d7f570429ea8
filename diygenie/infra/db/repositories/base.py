"""
Base repository class with common CRUD operations.

This is the storage interface the policy layer talks to: get / insert /
update / upsert / count / delete, with `update` returning None for an unknown id.
"""
from typing import Any, Generic, Optional, Type, TypeVar
from uuid import uuid4

from sqlalchemy import delete, func, inspect, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from diygenie.infra.db.base import Base

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository providing common CRUD operations.

    Inherit from this class and specify the model type:
        class ProjectRepository(BaseRepository[Project]):
            def __init__(self, session: AsyncSession, user_id: Optional[str] = None):
                super().__init__(Project, session, user_id)

    When user_id is provided, all queries will be scoped to that user's rows.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession, user_id: Optional[str] = None):
        self.model = model
        self.session = session
        self.user_id = user_id
        self.pk = inspect(model).primary_key[0]

    def _apply_user_filter(self, stmt):
        """Apply user_id filter if set and model has user_id column."""
        if self.user_id is not None and hasattr(self.model, "user_id"):
            return stmt.where(self.model.user_id == self.user_id)
        return stmt

    def _apply_filters(self, stmt, filters: dict[str, Any]):
        for name, value in filters.items():
            stmt = stmt.where(getattr(self.model, name) == value)
        return self._apply_user_filter(stmt)

    async def create(self, **kwargs) -> ModelType:
        """Create a new record."""
        if self.pk.key == "id" and "id" not in kwargs:
            kwargs["id"] = str(uuid4())

        # Automatically set user_id if repository is scoped to a user
        if self.user_id is not None and hasattr(self.model, "user_id") and "user_id" not in kwargs:
            kwargs["user_id"] = self.user_id

        obj = self.model(**kwargs)
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """Get a record by primary key (scoped to user if user_id is set)."""
        stmt = (
            select(self.model)
            .where(self.pk == id)
            .execution_options(populate_existing=True)
        )
        stmt = self._apply_user_filter(stmt)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_one_by(self, **filters) -> Optional[ModelType]:
        """Get the first record matching all equality filters."""
        stmt = self._apply_filters(select(self.model), filters).execution_options(populate_existing=True)
        result = await self.session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def update(self, id: str, *conditions, **kwargs) -> Optional[ModelType]:
        """
        Update a record by primary key in a single statement.

        Extra SQL `conditions` make the update conditional (e.g. on the current
        status). Returns None when no row matched.
        """
        stmt = (
            update(self.model)
            .where(self.pk == id, *conditions)
            .values(**kwargs)
            .execution_options(synchronize_session=False)
        )
        if self.user_id is not None and hasattr(self.model, "user_id"):
            stmt = stmt.where(self.model.user_id == self.user_id)
        result = await self.session.execute(stmt)
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get_by_id(id)

    async def upsert(self, key_fields: dict[str, Any], **fields) -> ModelType:
        """
        Insert a record or update the one matching `key_fields`.

        A duplicate-key error from a concurrent insert is resolved by updating
        the row that won the race.
        """
        existing = await self.get_one_by(**key_fields)
        if existing is None:
            try:
                return await self.create(**key_fields, **fields)
            except IntegrityError:
                await self.session.rollback()
                existing = await self.get_one_by(**key_fields)
                if existing is None:
                    raise
        if not fields:
            return existing
        pk_value = getattr(existing, self.pk.key)
        updated = await self.update(pk_value, **fields)
        return updated if updated is not None else existing

    async def delete(self, id: str) -> bool:
        """Delete a record by primary key (scoped to user if user_id is set). Returns True if deleted."""
        stmt = delete(self.model).where(self.pk == id)
        if self.user_id is not None and hasattr(self.model, "user_id"):
            stmt = stmt.where(self.model.user_id == self.user_id)
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

    async def count(self, **filters) -> int:
        """Count records matching equality filters (scoped to user if user_id is set)."""
        stmt = select(func.count()).select_from(self.model)
        stmt = self._apply_filters(stmt, filters)
        result = await self.session.execute(stmt)
        return result.scalar_one()
