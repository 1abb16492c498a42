"""
Base Repository for Zomieks

Generic async repository implementing CRUD operations over one SQLModel
table. Concrete repositories add the queries their aggregate needs.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, TypeVar, Generic, List, Optional, Type, Union

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


# Type variable for generic repository
ModelType = TypeVar("ModelType", bound=SQLModel)


class IReadRepository(ABC, Generic[ModelType]):
    """Interface for read operations."""

    @abstractmethod
    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """Get a single record by ID."""
        pass


class IWriteRepository(ABC, Generic[ModelType]):
    """Interface for write operations."""

    @abstractmethod
    async def create(self, obj: ModelType) -> ModelType:
        """Persist a new record."""
        pass

    @abstractmethod
    async def update(
        self,
        id: str,
        data: Union[Dict[str, Any], SQLModel]
    ) -> Optional[ModelType]:
        """Update an existing record."""
        pass

    @abstractmethod
    async def delete(self, id: str) -> bool:
        """Delete a record by ID."""
        pass


class BaseRepository(
    IReadRepository[ModelType],
    IWriteRepository[ModelType],
    Generic[ModelType]
):
    """
    Generic async repository with CRUD operations.

    Writes are flushed, not committed: the caller's unit of work (request
    dependency or ``get_session_context``) owns the transaction.

    Args:
        model: The SQLModel class to operate on
        session: Async database session
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current session."""
        return self._session

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """
        Get a single record by its primary key.

        Args:
            id: Primary key

        Returns:
            Model instance or None if not found
        """
        return await self._session.get(self._model, id)

    async def create(self, obj: ModelType) -> ModelType:
        """
        Persist a new record.

        Args:
            obj: Unsaved model instance

        Returns:
            The same instance, flushed and refreshed
        """
        self._session.add(obj)
        await self._session.flush()
        await self._session.refresh(obj)
        return obj

    async def save(self, obj: ModelType) -> ModelType:
        """Flush changes made to an already loaded instance."""
        self._session.add(obj)
        await self._session.flush()
        return obj

    async def update(
        self,
        id: str,
        data: Union[Dict[str, Any], SQLModel]
    ) -> Optional[ModelType]:
        """
        Update an existing record.

        Args:
            id: Primary key
            data: Mapping or schema with the fields to modify

        Returns:
            Updated model instance or None if not found
        """
        db_obj = await self.get_by_id(id)
        if not db_obj:
            return None

        if isinstance(data, SQLModel):
            update_data = data.model_dump(exclude_unset=True)
        else:
            update_data = data

        for field, value in update_data.items():
            setattr(db_obj, field, value)

        self._session.add(db_obj)
        await self._session.flush()
        await self._session.refresh(db_obj)
        return db_obj

    async def delete(self, id: str) -> bool:
        """
        Delete a record by ID.

        Returns:
            True if deleted, False if not found
        """
        db_obj = await self.get_by_id(id)
        if not db_obj:
            return False

        await self._session.delete(db_obj)
        await self._session.flush()
        return True

    async def create_many(self, objects: List[ModelType]) -> List[ModelType]:
        """Bulk persist multiple records."""
        self._session.add_all(objects)
        await self._session.flush()
        for obj in objects:
            await self._session.refresh(obj)
        return objects

    async def count(self) -> int:
        """Get total count of records."""
        stmt = select(func.count()).select_from(self._model)
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def count_where(self, *conditions) -> int:
        """Count records matching all conditions."""
        stmt = select(func.count()).select_from(self._model).where(*conditions)
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def find_one(self, *conditions) -> Optional[ModelType]:
        """First record matching all conditions, or None."""
        stmt = select(self._model).where(*conditions).limit(1)
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def find_many(
        self,
        *conditions,
        order_by: Optional[list] = None,
        limit: Optional[int] = None,
        skip: int = 0,
    ) -> List[ModelType]:
        """Records matching all conditions, optionally ordered and paged."""
        stmt = select(self._model).where(*conditions)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if skip:
            stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
