"""Request dependencies: the acting user and the service container."""

from __future__ import annotations

from uuid import UUID

from fastapi import Header, HTTPException, Request

from roomledger.core.access import ActorContext
from roomledger.services.wiring import Services


def _parse_uuid(value: str, header: str) -> UUID:
    try:
        return UUID(value.strip())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {header} header.")


def get_actor(
    x_landlord_id: str | None = Header(default=None),
    x_actor_id: str | None = Header(default=None),
    x_building_ids: str | None = Header(default=None),
) -> ActorContext:
    """
    Builds the actor context from headers set by the authenticating gateway.

    ``X-Building-Ids`` is a comma-separated list that scopes staff accounts;
    without it the actor manages every building of the landlord.
    """
    if not x_landlord_id:
        raise HTTPException(status_code=401, detail="Missing X-Landlord-Id header.")
    building_ids = None
    if x_building_ids is not None:
        building_ids = frozenset(
            _parse_uuid(part, "X-Building-Ids")
            for part in x_building_ids.split(",")
            if part.strip()
        )
    return ActorContext(
        landlord_id=_parse_uuid(x_landlord_id, "X-Landlord-Id"),
        actor_id=_parse_uuid(x_actor_id, "X-Actor-Id") if x_actor_id else None,
        building_ids=building_ids,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
