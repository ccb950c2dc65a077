"""Service responsible for generating invoices."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from roomledger.core.access import ActorContext
from roomledger.core.dates import (
    MIN_PERIOD_YEAR,
    Period,
    default_due_date,
    utcnow,
)
from roomledger.core.errors import (
    BillingError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from roomledger.core.models import (
    ChargeType,
    Contract,
    Invoice,
    InvoiceStatus,
    ItemType,
    LineItem,
    LineItemInput,
    MeterReading,
    Room,
    UtilityKind,
)
from roomledger.core.repositories.building import (
    BuildingRepository,
    BuildingServiceRepository,
)
from roomledger.core.repositories.contract import ContractRepository
from roomledger.core.repositories.invoice import InvoiceRepository
from roomledger.core.repositories.reading import ReadingRepository
from roomledger.core.repositories.room import RoomRepository
from roomledger.services.batch import BatchResult
from roomledger.services.lifecycle import InvoiceLifecycleService

logger = logging.getLogger(__name__)

UTILITY_ITEMS = {
    UtilityKind.ELECTRICITY: (ItemType.ELECTRIC, "Electricity"),
    UtilityKind.WATER: (ItemType.WATER, "Water"),
}


class BillingService:
    """Orchestrates the invoice generation process."""

    def __init__(
        self,
        room_repo: RoomRepository,
        building_repo: BuildingRepository,
        contract_repo: ContractRepository,
        reading_repo: ReadingRepository,
        invoice_repo: InvoiceRepository,
        service_repo: BuildingServiceRepository,
        lifecycle: InvoiceLifecycleService | None = None,
        due_day: int = 10,
        currency: str = "VND",
        auto_send: bool = True,
        min_period_year: int = MIN_PERIOD_YEAR,
    ):
        self._room_repo = room_repo
        self._building_repo = building_repo
        self._contract_repo = contract_repo
        self._reading_repo = reading_repo
        self._invoice_repo = invoice_repo
        self._service_repo = service_repo
        self._lifecycle = lifecycle
        self._due_day = due_day
        self._currency = currency
        self._auto_send = auto_send
        self._min_period_year = min_period_year

    async def generate(
        self,
        ctx: ActorContext,
        room_id: UUID,
        period_month: int,
        period_year: int,
        include_rent: bool = True,
        extra_items: list[LineItemInput] | None = None,
        due_date: datetime | None = None,
    ) -> Invoice:
        """
        Generates the invoice of a room for a billing period.

        Collects rent from the active contract, electricity and water from the
        period's confirmed readings, building services and any extra items.
        The invoice is created as a draft together with its number and the
        billing of its readings, in one transaction. When a notifier is set
        up the invoice is then emailed to the tenant; a failed delivery is
        recorded on the invoice and never undoes the generation.

        Raises:
            ConflictError: The room already has a live invoice for the period.
            NotFoundError: No active contract covers the period.
            ValidationError: Nothing would be billed.
        """
        period = Period.of(period_month, period_year, self._min_period_year)

        room = await self._room_repo.get_live(room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found.")
        building = room.building
        ctx.ensure_building(building)
        if not building.is_operational:
            raise StateError(f"Building {building.id} is not active.")

        existing = await self._invoice_repo.find_open_for_period(
            building.landlord_id, room.id, period
        )
        if existing:
            raise ConflictError(
                f"Room {room.number} already has invoice "
                f"{existing.invoice_number} for {period}.",
                existing_id=existing.id,
            )

        contract = await self._contract_repo.find_active(room.id, period)
        if not contract:
            raise NotFoundError(
                f"No active contract for room {room.number} in {period}."
            )

        readings = await self._reading_repo.list_billable(room.id, period)
        items = await self._build_items(
            room, contract, readings, period, include_rent, extra_items or []
        )
        if not items:
            raise ValidationError(
                f"Nothing to bill for room {room.number} in {period}: "
                "no rent requested and no utility data."
            )

        invoice = Invoice(
            landlord_id=building.landlord_id,
            tenant_id=contract.tenant_id,
            contract_id=contract.id,
            room_id=room.id,
            building_id=building.id,
            period_month=period.month,
            period_year=period.year,
            currency=self._currency,
            status=InvoiceStatus.DRAFT,
            issued_at=utcnow(),
            due_date=due_date or default_due_date(period, self._due_day),
            created_by_id=ctx.actor_id,
        )
        invoice.set_line_items(items)
        invoice.recalculate_totals()

        try:
            async with in_transaction() as conn:
                invoice.invoice_number = await self._invoice_repo.next_invoice_number(
                    building.landlord_id, period, using_db=conn
                )
                await invoice.save(using_db=conn)
                reading_ids = [reading.id for reading in readings]
                billed = await self._reading_repo.mark_billed(
                    reading_ids, invoice.id, using_db=conn
                )
                if billed != len(reading_ids):
                    raise ConflictError(
                        f"Readings of room {room.number} for {period} were billed "
                        "concurrently."
                    )
        except IntegrityError as e:
            winner = await self._invoice_repo.find_open_for_period(
                building.landlord_id, room.id, period
            )
            raise ConflictError(
                f"Room {room.number} already has an invoice for {period}.",
                existing_id=winner.id if winner else None,
            ) from e

        logger.info(
            f"Generated invoice {invoice.invoice_number} for room {room.number} "
            f"({period}): {invoice.total_amount} {invoice.currency}."
        )

        if self._auto_send and self._lifecycle and self._lifecycle.can_dispatch:
            try:
                invoice = await self._lifecycle.dispatch(ctx, invoice.id)
            except Exception as e:
                logger.error(
                    f"Failed to dispatch invoice {invoice.invoice_number}: {e}",
                    exc_info=True,
                )
        return invoice

    async def _build_items(
        self,
        room: Room,
        contract: Contract,
        readings: list[MeterReading],
        period: Period,
        include_rent: bool,
        extra_items: list[LineItemInput],
    ) -> list[LineItem]:
        items: list[LineItem] = []

        rent = Decimal(contract.rent_price or 0)
        if include_rent and rent > 0:
            items.append(
                LineItem(
                    type=ItemType.RENT,
                    label="Room rent",
                    description=f"Rent for {period}",
                    quantity=Decimal("1"),
                    unit_price=rent,
                    amount=rent,
                    meta={"contract_id": str(contract.id)},
                )
            )

        for reading in readings:
            for kind, (item_type, label) in UTILITY_ITEMS.items():
                q = reading.quantity(kind)
                if q.consumption <= 0:
                    continue
                items.append(
                    LineItem(
                        type=item_type,
                        label=label,
                        description=f"{q.previous_index} -> {q.current_index}",
                        quantity=q.consumption,
                        unit_price=q.unit_price,
                        amount=q.amount,
                        reading_id=reading.id,
                        meta={
                            "previous_index": str(q.previous_index),
                            "current_index": str(q.current_index),
                        },
                    )
                )

        for service in await self._service_repo.list_active(room.building.id):
            quantity = (
                Decimal(contract.occupant_count or 0)
                if service.charge_type == ChargeType.PER_PERSON
                else Decimal("1")
            )
            fee = Decimal(service.fee or 0)
            items.append(
                LineItem(
                    type=ItemType.SERVICE,
                    label=service.label or service.name,
                    description=service.description,
                    quantity=quantity,
                    unit_price=fee,
                    amount=max(Decimal("0"), quantity * fee),
                    meta={
                        "service_id": str(service.id),
                        "charge_type": service.charge_type.value,
                    },
                )
            )

        for extra in extra_items:
            if not extra.label.strip():
                continue
            if (extra.amount or 0) <= 0 and extra.unit_price <= 0:
                continue
            item = extra.model_copy(update={"type": ItemType.OTHER})
            items.append(item.to_line_item())

        return items

    async def generate_for_building(
        self,
        ctx: ActorContext,
        building_id: UUID,
        period_month: int,
        period_year: int,
        include_rent: bool = True,
        extra_items: list[LineItemInput] | None = None,
    ) -> BatchResult:
        """Generates invoices for every rented room of a building."""
        period = Period.of(period_month, period_year, self._min_period_year)
        building = await self._building_repo.get(building_id)
        if not building or building.is_deleted:
            raise NotFoundError(f"Building {building_id} not found.")
        ctx.ensure_building(building)
        if not building.is_operational:
            raise StateError(f"Building {building.id} is not active.")

        rooms = await self._room_repo.list_rented(building.id)
        if not rooms:
            raise ValidationError(f"Building {building.name} has no rented rooms.")

        result = BatchResult()
        for room in rooms:
            await self._generate_into(
                result,
                ctx,
                room,
                period,
                include_rent=include_rent,
                extra_items=extra_items,
            )
        logger.info(
            f"Building {building.name} ({period}): {result.success_count} generated, "
            f"{result.skipped_count} skipped, {result.failure_count} failed."
        )
        return result

    async def generate_monthly(
        self, period: Period | None = None, today: date | None = None
    ) -> BatchResult:
        """
        Generates a period's invoices for every rented room, last month by
        default.

        Rooms already invoiced are skipped; a failing room does not stop the
        others.
        """
        period = period or Period.from_date(today or date.today()).previous()
        logger.info(f"Starting monthly invoice generation for {period}.")

        result = BatchResult()
        for room in await self._room_repo.list_rented():
            ctx = ActorContext.system(room.building.landlord_id)
            await self._generate_into(result, ctx, room, period, include_rent=True)

        logger.info(
            f"Monthly invoice generation for {period} finished: "
            f"{result.success_count} generated, {result.skipped_count} skipped, "
            f"{result.failure_count} failed."
        )
        return result

    async def _generate_into(
        self,
        result: BatchResult,
        ctx: ActorContext,
        room: Room,
        period: Period,
        include_rent: bool,
        extra_items: list[LineItemInput] | None = None,
    ) -> None:
        try:
            invoice = await self.generate(
                ctx,
                room.id,
                period.month,
                period.year,
                include_rent=include_rent,
                extra_items=extra_items,
            )
        except ConflictError as e:
            logger.info(f"Skipping room {room.number}: {e.message}")
            result.skipped(room.id, e.message, e.existing_id)
        except BillingError as e:
            logger.warning(f"Could not invoice room {room.number}: {e.message}")
            result.failed(room.id, e.message)
        except Exception as e:
            logger.error(
                f"Failed to generate invoice for room {room.id}: {e}", exc_info=True
            )
            result.failed(room.id, str(e))
        else:
            result.succeeded(room.id, invoice.id)
