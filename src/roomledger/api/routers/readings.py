import uuid

from fastapi import APIRouter, Depends, Response

from roomledger.api.deps import get_actor, get_services
from roomledger.api.schemas import (
    BatchResponse,
    ReadingBulkCreate,
    ReadingCreate,
    ReadingResponse,
)
from roomledger.core.access import ActorContext
from roomledger.core.dates import Period
from roomledger.core.models import ReadingStatus
from roomledger.services.readings import ReadingInput, ReadingPatch
from roomledger.services.wiring import Services

router = APIRouter(prefix="/readings", tags=["readings"])


def _to_input(body: ReadingCreate) -> ReadingInput:
    return ReadingInput(
        room_id=body.room_id,
        period_month=body.period_month,
        period_year=body.period_year,
        e_current_index=body.e_current_index,
        w_current_index=body.w_current_index,
        note=body.note,
    )


@router.post("", response_model=ReadingResponse, status_code=201)
async def create_reading(
    body: ReadingCreate,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    return await services.readings.create_reading(actor, _to_input(body))


@router.post("/bulk", response_model=BatchResponse)
async def bulk_create_readings(
    body: ReadingBulkCreate,
    response: Response,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Creates each reading independently; failed entries are reported per index."""
    result = await services.readings.bulk_create(
        actor, [_to_input(entry) for entry in body.readings]
    )
    if not result.ok:
        response.status_code = 400
    return BatchResponse.from_result(result)


@router.get("", response_model=list[ReadingResponse])
async def list_readings(
    building_id: uuid.UUID | None = None,
    room_id: uuid.UUID | None = None,
    status: ReadingStatus | None = None,
    period: str | None = None,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """List readings the actor manages; ``period`` is ``YYYY-MM``."""
    return await services.readings.list_readings(
        actor,
        building_id=building_id,
        room_id=room_id,
        status=status,
        period=Period.parse(period) if period else None,
    )


@router.patch("/{reading_id}", response_model=ReadingResponse)
async def update_reading(
    reading_id: uuid.UUID,
    body: ReadingPatch,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    return await services.readings.update_reading(actor, reading_id, body)


@router.post("/{reading_id}/confirm", response_model=ReadingResponse)
async def confirm_reading(
    reading_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    return await services.readings.confirm(actor, reading_id)


@router.delete("/{reading_id}", status_code=204)
async def delete_reading(
    reading_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    await services.readings.soft_delete(actor, reading_id)
