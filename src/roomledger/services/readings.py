"""Service owning meter readings and their draft/confirmed/billed lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from roomledger.core.access import ActorContext
from roomledger.core.dates import MIN_PERIOD_YEAR, Period, utcnow
from roomledger.core.errors import (
    BillingError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from roomledger.core.models import MeterReading, ReadingStatus, Room, UtilityKind
from roomledger.core.repositories.reading import ReadingRepository
from roomledger.core.repositories.room import RoomRepository
from roomledger.services.batch import BatchResult

logger = logging.getLogger(__name__)

# Fields frozen once a reading is confirmed or linked to an invoice.
LOCKED_FIELDS = frozenset(
    {
        "e_previous_index",
        "e_current_index",
        "e_unit_price",
        "w_previous_index",
        "w_current_index",
        "w_unit_price",
        "period_month",
        "period_year",
        "room_id",
    }
)


@dataclass(frozen=True)
class ReadingInput:
    """Indices read for a room in a period."""

    room_id: UUID
    period_month: int
    period_year: int
    e_current_index: Decimal
    w_current_index: Decimal
    note: str | None = None


class ReadingPatch(BaseModel):
    """Partial update of a reading. Only explicitly set fields are applied."""

    model_config = ConfigDict(extra="forbid")

    e_previous_index: Decimal | None = None
    e_current_index: Decimal | None = None
    e_unit_price: Decimal | None = None
    w_previous_index: Decimal | None = None
    w_current_index: Decimal | None = None
    w_unit_price: Decimal | None = None
    period_month: int | None = None
    period_year: int | None = None
    room_id: UUID | None = None
    note: str | None = None
    status: ReadingStatus | None = None


class ReadingService:
    """Creates, edits, confirms and deletes meter readings."""

    def __init__(
        self,
        reading_repo: ReadingRepository,
        room_repo: RoomRepository,
        min_period_year: int = MIN_PERIOD_YEAR,
    ):
        self._reading_repo = reading_repo
        self._room_repo = room_repo
        self._min_period_year = min_period_year

    async def create_reading(
        self, ctx: ActorContext, data: ReadingInput
    ) -> MeterReading:
        """
        Records a new draft reading for a room and period.

        Previous indices are carried over from the room's latest earlier
        reading, or from the room's baseline when it has none. Unit prices are
        copied from the building so later rate changes do not touch history.
        """
        period = Period.of(data.period_month, data.period_year, self._min_period_year)
        room = await self._load_room(ctx, data.room_id)

        existing = await self._reading_repo.find_for_period(room.id, period)
        if existing:
            raise ConflictError(
                f"Room {room.id} already has a reading for {period}.",
                existing_id=existing.id,
            )

        prior = await self._reading_repo.latest_before(room.id, period)
        building = room.building
        values: dict[str, Decimal] = {}
        currents = {
            UtilityKind.ELECTRICITY: Decimal(data.e_current_index),
            UtilityKind.WATER: Decimal(data.w_current_index),
        }
        for kind, current in currents.items():
            previous = (
                prior.quantity(kind).current_index if prior else room.baseline(kind)
            )
            if current < 0:
                raise ValidationError(f"{kind.value} index cannot be negative.")
            if current < previous:
                raise ValidationError(
                    f"{kind.value} index {current} is below the previous "
                    f"index {previous}."
                )
            values[f"{kind.prefix}_previous_index"] = previous
            values[f"{kind.prefix}_current_index"] = current
            values[f"{kind.prefix}_unit_price"] = building.unit_price(kind)

        reading = MeterReading(
            landlord_id=building.landlord_id,
            room_id=room.id,
            building_id=building.id,
            period_month=period.month,
            period_year=period.year,
            note=data.note,
            created_by_id=ctx.actor_id,
            **values,
        )
        reading.recalculate()
        try:
            await reading.save()
        except IntegrityError as e:
            existing = await self._reading_repo.find_for_period(room.id, period)
            raise ConflictError(
                f"Room {room.id} already has a reading for {period}.",
                existing_id=existing.id if existing else None,
            ) from e

        logger.info(f"Created reading {reading.id} for room {room.id} in {period}.")
        return reading

    async def bulk_create(
        self, ctx: ActorContext, entries: list[ReadingInput]
    ) -> BatchResult:
        """Creates readings one by one; a failing entry does not stop the rest."""
        result = BatchResult()
        for index, entry in enumerate(entries):
            try:
                reading = await self.create_reading(ctx, entry)
            except BillingError as e:
                logger.warning(f"Bulk reading #{index} rejected: {e.message}")
                result.failed(index, e.message)
            except Exception as e:
                logger.error(f"Bulk reading #{index} failed: {e}", exc_info=True)
                result.failed(index, str(e))
            else:
                result.succeeded(index, reading.id)
        return result

    async def update_reading(
        self, ctx: ActorContext, reading_id: UUID, patch: ReadingPatch
    ) -> MeterReading:
        """
        Applies a partial update.

        Confirmed or billed readings only accept a new note (and a no-op
        status). Drafts accept index, price, period and room changes, with
        the previous index of a room's non-first reading allowed to grow but
        never to shrink.
        """
        reading = await self._load_reading(ctx, reading_id)
        requested = patch.model_fields_set
        locked_changes = requested & LOCKED_FIELDS

        if reading.is_locked and locked_changes:
            raise StateError(
                f"Reading {reading.id} is {reading.status.value}; only the note "
                "can be changed."
            )

        confirm_after = False
        if "status" in requested and patch.status != reading.status:
            if not (
                reading.status == ReadingStatus.DRAFT
                and patch.status == ReadingStatus.CONFIRMED
            ):
                raise StateError(
                    f"Cannot change reading status from {reading.status.value} "
                    f"to {patch.status.value if patch.status else None}."
                )
            confirm_after = True

        if locked_changes:
            await self._apply_draft_changes(ctx, reading, patch, locked_changes)
        if "note" in requested:
            reading.note = patch.note

        try:
            await reading.save()
        except IntegrityError as e:
            raise ConflictError(
                f"Room {reading.room_id} already has a reading for {reading.period}."
            ) from e

        if confirm_after:
            return await self.confirm(ctx, reading.id)
        return reading

    async def _apply_draft_changes(
        self,
        ctx: ActorContext,
        reading: MeterReading,
        patch: ReadingPatch,
        fields: frozenset[str] | set[str],
    ) -> None:
        for name in fields:
            if getattr(patch, name) is None:
                raise ValidationError(f"{name} cannot be cleared.")

        period = Period.of(
            patch.period_month if "period_month" in fields else reading.period_month,
            patch.period_year if "period_year" in fields else reading.period_year,
            self._min_period_year,
        )
        room_id = patch.room_id if "room_id" in fields else reading.room_id
        moved_room = room_id != reading.room_id

        moved = moved_room or period != reading.period
        if moved:
            clash = await self._reading_repo.find_for_period(room_id, period)
            if clash and clash.id != reading.id:
                raise ConflictError(
                    f"Room {room_id} already has a reading for {period}.",
                    existing_id=clash.id,
                )
        room = None
        if moved_room:
            room = await self._load_room(ctx, room_id)
            reading.room_id = room.id
            reading.building_id = room.building.id
        reading.period_month, reading.period_year = period.month, period.year

        prior = await self._reading_repo.latest_before(
            room_id, period, exclude_id=reading.id
        )
        for kind in UtilityKind:
            name = f"{kind.prefix}_previous_index"
            if name not in fields:
                if moved:
                    # Reseed from the new slot's chain.
                    if prior:
                        previous = prior.quantity(kind).current_index
                    else:
                        room = room or await self._load_room(ctx, room_id)
                        previous = room.baseline(kind)
                    setattr(reading, name, previous)
                continue
            new_previous = Decimal(getattr(patch, name))
            if new_previous < 0:
                raise ValidationError(f"{name} cannot be negative.")
            if prior and new_previous < reading.quantity(kind).previous_index:
                raise ValidationError(
                    f"{name} of a room's non-first reading cannot be decreased."
                )
            setattr(reading, name, new_previous)

        for name in fields & {
            "e_current_index",
            "e_unit_price",
            "w_current_index",
            "w_unit_price",
        }:
            setattr(reading, name, Decimal(getattr(patch, name)))

        reading.recalculate()

    async def confirm(self, ctx: ActorContext, reading_id: UUID) -> MeterReading:
        """
        Locks a draft reading and advances the room's baseline indices.

        Baselines only ever move forward.
        """
        reading = await self._load_reading(ctx, reading_id)
        if reading.status != ReadingStatus.DRAFT:
            raise StateError(
                f"Only draft readings can be confirmed; reading {reading.id} "
                f"is {reading.status.value}."
            )
        reading.recalculate()
        now = utcnow()

        async with in_transaction() as conn:
            claimed = (
                await MeterReading.filter(id=reading.id, status=ReadingStatus.DRAFT)
                .using_db(conn)
                .update(
                    status=ReadingStatus.CONFIRMED,
                    confirmed_at=now,
                    confirmed_by_id=ctx.actor_id,
                )
            )
            if not claimed:
                raise StateError(f"Reading {reading.id} was confirmed concurrently.")
            for kind in UtilityKind:
                await self._room_repo.advance_baseline(
                    reading.room_id,
                    kind,
                    reading.quantity(kind).current_index,
                    using_db=conn,
                )
            reading.status = ReadingStatus.CONFIRMED
            reading.confirmed_at = now
            reading.confirmed_by_id = ctx.actor_id
            await reading.save(using_db=conn)

        logger.info(f"Confirmed reading {reading.id} for room {reading.room_id}.")
        return reading

    async def soft_delete(self, ctx: ActorContext, reading_id: UUID) -> None:
        reading = await self._load_reading(ctx, reading_id)
        if reading.status == ReadingStatus.BILLED or reading.invoice_id:
            raise StateError(f"Reading {reading.id} is billed and cannot be deleted.")

        deleted = await MeterReading.filter(
            id=reading.id, invoice_id__isnull=True, is_deleted=False
        ).exclude(status=ReadingStatus.BILLED).update(
            is_deleted=True, deleted_at=utcnow(), live_key=None
        )
        if not deleted:
            raise StateError(f"Reading {reading.id} was billed concurrently.")
        logger.info(f"Deleted reading {reading.id}.")

    async def list_readings(
        self,
        ctx: ActorContext,
        building_id: UUID | None = None,
        room_id: UUID | None = None,
        status: ReadingStatus | None = None,
        period: Period | None = None,
    ) -> list[MeterReading]:
        """Readings the actor manages, newest period first."""
        return await self._reading_repo.search(
            ctx.landlord_id,
            building_ids=ctx.building_ids,
            building_id=building_id,
            room_id=room_id,
            status=status,
            period=period,
        )

    async def _load_room(self, ctx: ActorContext, room_id: UUID) -> Room:
        room = await self._room_repo.get_live(room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found.")
        ctx.ensure_building(room.building)
        if not room.building.is_operational:
            raise StateError(f"Building {room.building.id} is not active.")
        return room

    async def _load_reading(self, ctx: ActorContext, reading_id: UUID) -> MeterReading:
        reading = await self._reading_repo.get_live(reading_id)
        if not reading:
            raise NotFoundError(f"Reading {reading_id} not found.")
        ctx.ensure_building(reading.building)
        return reading
