"""Base repository for common CRUD operations."""

from __future__ import annotations

from typing import Generic, Type, TypeVar
from uuid import UUID

from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.models import Model

ModelType = TypeVar("ModelType", bound=Model)


class BaseRepository(Generic[ModelType]):
    """Generic repository with basic CRUD methods."""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(
        self, pk: UUID, using_db: BaseDBAsyncClient | None = None
    ) -> ModelType | None:
        """Get a model instance by its primary key."""
        return await self.model.filter(id=pk).using_db(using_db).first()

    async def all(self) -> list[ModelType]:
        """Get all model instances."""
        return await self.model.all()

    async def create(
        self, using_db: BaseDBAsyncClient | None = None, **kwargs
    ) -> ModelType:
        """Create a new model instance."""
        return await self.model.create(using_db=using_db, **kwargs)
