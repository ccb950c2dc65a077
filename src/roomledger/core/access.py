"""Authorization context passed into every service operation."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from roomledger.core.errors import PermissionDeniedError
from roomledger.core.models import Building


@dataclass(frozen=True)
class ActorContext:
    """
    Who is acting and over which buildings.

    ``building_ids=None`` grants every building owned by ``landlord_id``
    (the landlord themselves or a scheduled job). A set restricts the actor
    to those buildings, which is how staff accounts are scoped.
    """

    landlord_id: UUID
    actor_id: UUID | None = None
    building_ids: frozenset[UUID] | None = None

    @classmethod
    def system(cls, landlord_id: UUID) -> ActorContext:
        """Context used by time-triggered jobs acting for a landlord."""
        return cls(landlord_id=landlord_id)

    def can_manage(self, building: Building) -> bool:
        if building.landlord_id != self.landlord_id:
            return False
        if self.building_ids is None:
            return True
        return building.id in self.building_ids

    def ensure_building(self, building: Building) -> None:
        if not self.can_manage(building):
            raise PermissionDeniedError(
                f"Actor is not allowed to manage building {building.id}."
            )
