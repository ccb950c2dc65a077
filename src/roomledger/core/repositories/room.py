"""Repository for Room model."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from tortoise.backends.base.client import BaseDBAsyncClient

from roomledger.core.models import BuildingStatus, Room, RoomStatus, UtilityKind
from roomledger.core.repositories.base import BaseRepository


class RoomRepository(BaseRepository[Room]):
    """Room-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(Room)

    async def get_live(self, room_id: UUID) -> Room | None:
        """A non-deleted room with its building loaded."""
        return (
            await self.model.filter(id=room_id, is_deleted=False)
            .select_related("building")
            .first()
        )

    async def list_rented(self, building_id: UUID | None = None) -> list[Room]:
        """Rented rooms of operational buildings, with buildings loaded."""
        query = self.model.filter(
            status=RoomStatus.RENTED,
            is_deleted=False,
            building__is_deleted=False,
            building__status=BuildingStatus.ACTIVE,
        )
        if building_id is not None:
            query = query.filter(building_id=building_id)
        return await query.select_related("building").order_by("number")

    async def advance_baseline(
        self,
        room_id: UUID,
        kind: UtilityKind,
        value: Decimal,
        using_db: BaseDBAsyncClient | None = None,
    ) -> bool:
        """
        Moves the room's baseline index forward to ``value``.

        The UPDATE only applies if the baseline still holds the value read
        before it, so two confirmations racing each other can never move the
        baseline backwards.

        Returns:
            True if the baseline was changed.
        """
        field = f"{kind.prefix}_baseline_index"
        while True:
            room = await self.model.filter(id=room_id).using_db(using_db).first()
            if room is None or room.baseline(kind) >= value:
                return False
            updated = (
                await self.model.filter(id=room_id, **{field: room.baseline(kind)})
                .using_db(using_db)
                .update(**{field: value})
            )
            if updated:
                return True
