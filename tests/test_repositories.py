from datetime import datetime, timezone
from decimal import Decimal

import pytest

from roomledger.core.dates import Period
from roomledger.core.models import (
    Invoice,
    InvoiceStatus,
    MeterReading,
    Room,
    RoomStatus,
    UtilityKind,
)
from roomledger.core.repositories.invoice import InvoiceRepository
from roomledger.core.repositories.reading import ReadingRepository
from roomledger.core.repositories.room import RoomRepository


@pytest.mark.asyncio
async def test_room_lookup_skips_deleted(room):
    room_repo = RoomRepository()

    fetched = await room_repo.get_live(room.id)
    assert fetched is not None and fetched.building.id == room.building_id

    await Room.filter(id=room.id).update(is_deleted=True)
    assert await room_repo.get_live(room.id) is None
    assert await room_repo.list_rented() == []


@pytest.mark.asyncio
async def test_list_rented_only_returns_rented_rooms(room):
    await Room.create(building_id=room.building_id, number="100")
    await Room.create(
        building_id=room.building_id, number="103", status=RoomStatus.MAINTENANCE
    )

    rented = await RoomRepository().list_rented(room.building_id)

    assert [r.id for r in rented] == [room.id]


@pytest.mark.asyncio
async def test_advance_baseline_only_moves_forward(room):
    room_repo = RoomRepository()

    assert await room_repo.advance_baseline(
        room.id, UtilityKind.ELECTRICITY, Decimal("180")
    )
    assert not await room_repo.advance_baseline(
        room.id, UtilityKind.ELECTRICITY, Decimal("120")
    )
    assert not await room_repo.advance_baseline(
        room.id, UtilityKind.ELECTRICITY, Decimal("180")
    )

    stored = await Room.get(id=room.id)
    assert stored.e_baseline_index == Decimal("180")
    assert stored.w_baseline_index == Decimal("50")


@pytest.mark.asyncio
async def test_latest_before_crosses_year_boundary(room):
    common = dict(
        landlord_id=room.building.landlord_id,
        room_id=room.id,
        building_id=room.building_id,
    )
    november = await MeterReading.create(period_month=11, period_year=2023, **common)
    await MeterReading.create(period_month=1, period_year=2024, **common)

    prior = await ReadingRepository().latest_before(room.id, Period(1, 2024))

    assert prior is not None and prior.id == november.id


@pytest.mark.asyncio
async def test_invoice_numbers_per_landlord_and_period(landlord_id):
    invoice_repo = InvoiceRepository()

    first = await invoice_repo.next_invoice_number(landlord_id, Period(7, 2024))
    second = await invoice_repo.next_invoice_number(landlord_id, Period(7, 2024))
    other = await invoice_repo.next_invoice_number(landlord_id, Period(8, 2024))

    assert (first, second, other) == (
        "INV-202407-001",
        "INV-202407-002",
        "INV-202408-001",
    )


@pytest.mark.asyncio
async def test_mark_overdue_uses_due_date(contract):
    await Invoice.create(
        landlord_id=contract.landlord_id,
        tenant_id=contract.tenant_id,
        contract_id=contract.id,
        room_id=contract.room_id,
        building_id=contract.building_id,
        period_month=6,
        period_year=2024,
        invoice_number="INV-202406-001",
        status=InvoiceStatus.SENT,
        due_date=datetime(2024, 7, 10, 23, 59, tzinfo=timezone.utc),
    )

    repo = InvoiceRepository()
    before_due = datetime(2024, 7, 10, 12, tzinfo=timezone.utc)
    after_due = datetime(2024, 7, 11, tzinfo=timezone.utc)
    assert await repo.mark_overdue(before_due) == 0
    assert await repo.mark_overdue(after_due) == 1
