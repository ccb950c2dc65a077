"""Pytest configuration and fixtures."""

import uuid
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from tortoise import Tortoise

from roomledger.config import Settings
from roomledger.core import signing
from roomledger.core.access import ActorContext
from roomledger.core.db import MODEL_MODULES
from roomledger.core.models import (
    Building,
    Contract,
    ContractStatus,
    Room,
    RoomStatus,
)
from roomledger.services.notifier import NotificationResult
from roomledger.services.payments import GatewayCallback
from roomledger.services.readings import ReadingInput
from roomledger.services.wiring import Services, build_services

ACCESS_KEY = "test-access-key"
SECRET_KEY = "test-secret-key"


@pytest_asyncio.fixture(scope="function", autouse=True)
async def db_session():
    """
    Provides a clean in-memory SQLite database for each test function.
    """
    await Tortoise.init(
        db_url="sqlite://:memory:",
        modules={"models": MODEL_MODULES},
    )
    await Tortoise.generate_schemas()

    yield

    await Tortoise.close_connections()


class FakeNotifier:
    """Records sent messages; fails when ``error`` is set."""

    def __init__(self, error: str | None = None):
        self.error = error
        self.sent: list[tuple[str, dict, str]] = []

    async def send(self, recipient, payload, template_kind):
        self.sent.append((recipient, dict(payload), template_kind))
        if self.error:
            return NotificationResult(success=False, error=self.error)
        return NotificationResult(success=True)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SMTP_HOST=None,
        SCHEDULER_ENABLED=False,
        GATEWAY_ACCESS_KEY=ACCESS_KEY,
        GATEWAY_SECRET_KEY=SECRET_KEY,
    )


@pytest.fixture
def services(settings: Settings) -> Services:
    return build_services(settings)


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def notifying_services(settings: Settings, notifier: FakeNotifier) -> Services:
    """Services wired with a recording notifier, so invoices get dispatched."""
    return build_services(settings, notifier=notifier)


@pytest.fixture
def landlord_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def ctx(landlord_id: uuid.UUID) -> ActorContext:
    return ActorContext(landlord_id=landlord_id, actor_id=uuid.uuid4())


@pytest_asyncio.fixture
async def building(landlord_id: uuid.UUID) -> Building:
    return await Building.create(
        landlord_id=landlord_id,
        name="Sunrise House",
        e_price=Decimal("3500"),
        w_price=Decimal("15000"),
    )


@pytest_asyncio.fixture
async def room(building: Building) -> Room:
    room = await Room.create(
        building=building,
        number="101",
        status=RoomStatus.RENTED,
        e_baseline_index=Decimal("100"),
        w_baseline_index=Decimal("50"),
    )
    return await Room.get(id=room.id).select_related("building")


@pytest_asyncio.fixture
async def contract(room: Room, landlord_id: uuid.UUID) -> Contract:
    return await Contract.create(
        landlord_id=landlord_id,
        tenant_id=uuid.uuid4(),
        tenant_name="Nguyen Van A",
        tenant_email="tenant@example.com",
        status=ContractStatus.COMPLETED,
        rent_price=Decimal("3000000"),
        occupant_count=2,
        start_date=date(2024, 1, 1),
        room=room,
        building_id=room.building_id,
    )


@pytest_asyncio.fixture
async def confirmed_reading(services: Services, ctx: ActorContext, room: Room):
    """July 2024 reading: 50 units of electricity and 10 of water."""
    reading = await services.readings.create_reading(
        ctx,
        ReadingInput(
            room_id=room.id,
            period_month=7,
            period_year=2024,
            e_current_index=Decimal("150"),
            w_current_index=Decimal("60"),
        ),
    )
    return await services.readings.confirm(ctx, reading.id)


@pytest_asyncio.fixture
async def invoice(services, ctx, room, contract, confirmed_reading):
    """A draft July 2024 invoice with rent and both utilities."""
    return await services.billing.generate(ctx, room.id, 7, 2024)


@pytest.fixture
def gateway_payload(settings):
    """Builds callback bodies signed the way the gateway signs them."""

    def build(invoice_id, amount=3325000, result_code=0, **overrides):
        body = {
            "partnerCode": "MOMO",
            "orderId": f"ORDER-{invoice_id}",
            "requestId": "REQ-1",
            "amount": amount,
            "orderInfo": "Room 101 July",
            "orderType": "momo_wallet",
            "transId": 4088878653,
            "resultCode": result_code,
            "message": "Successful." if result_code == 0 else "Declined.",
            "payType": "qr",
            "responseTime": 1721720663942,
            "extraData": signing.encode_extra_data({"invoiceId": str(invoice_id)}),
        }
        body.update(overrides)
        base = signing.build_signature_base(
            GatewayCallback.model_validate(body).wire(), settings.GATEWAY_ACCESS_KEY
        )
        body["signature"] = signing.sign(base, settings.GATEWAY_SECRET_KEY)
        return body

    return build
