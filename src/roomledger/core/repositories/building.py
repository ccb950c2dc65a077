"""Repositories for Building and BuildingService models."""

from __future__ import annotations

from uuid import UUID

from roomledger.core.models import Building, BuildingService, BuildingStatus
from roomledger.core.repositories.base import BaseRepository


class BuildingRepository(BaseRepository[Building]):
    """Building-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(Building)

    async def list_operational(self, landlord_id: UUID | None = None) -> list[Building]:
        """Active, non-deleted buildings, optionally for a single landlord."""
        query = self.model.filter(is_deleted=False, status=BuildingStatus.ACTIVE)
        if landlord_id is not None:
            query = query.filter(landlord_id=landlord_id)
        return await query.order_by("name")


class BuildingServiceRepository(BaseRepository[BuildingService]):
    """BuildingService-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(BuildingService)

    async def list_active(self, building_id: UUID) -> list[BuildingService]:
        return await self.model.filter(
            building_id=building_id, is_deleted=False
        ).order_by("name")
