"""HTTP tests for the billing API and the gateway webhook."""

import uuid
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from roomledger.api.main import create_app
from roomledger.core.models import Invoice, InvoiceStatus, MeterReading


@pytest_asyncio.fixture
async def client(settings, services):
    app = create_app(settings, services, init_db=False)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
def headers(ctx):
    return {"X-Landlord-Id": str(ctx.landlord_id), "X-Actor-Id": str(ctx.actor_id)}


def reading_body(room, **overrides):
    body = {
        "room_id": str(room.id),
        "period_month": 7,
        "period_year": 2024,
        "e_current_index": "150",
        "w_current_index": "60",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

    response = await client.get("/health/db")
    assert response.json()["database"] == "connected"


@pytest.mark.asyncio
async def test_actor_headers_are_required(client, room):
    response = await client.post("/api/v1/readings", json=reading_body(room))
    assert response.status_code == 401

    response = await client.post(
        "/api/v1/readings",
        json=reading_body(room),
        headers={"X-Landlord-Id": "not-a-uuid"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_staff_outside_building_is_forbidden(client, headers, room):
    headers["X-Building-Ids"] = str(uuid.uuid4())

    response = await client.post(
        "/api/v1/readings", json=reading_body(room), headers=headers
    )

    assert response.status_code == 403
    assert response.json()["error"] == "PermissionDeniedError"


@pytest.mark.asyncio
async def test_reading_to_invoice_flow(client, headers, room, contract):
    response = await client.post(
        "/api/v1/readings", json=reading_body(room), headers=headers
    )
    assert response.status_code == 201
    reading = response.json()
    assert reading["status"] == "draft"
    assert Decimal(reading["e_amount"]) == Decimal("175000")

    response = await client.post(
        f"/api/v1/readings/{reading['id']}/confirm", headers=headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"

    generate = {"room_id": str(room.id), "period_month": 7, "period_year": 2024}
    response = await client.post(
        "/api/v1/invoices/generate", json=generate, headers=headers
    )
    assert response.status_code == 201
    invoice = response.json()
    assert invoice["invoice_number"] == "INV-202407-001"
    assert Decimal(invoice["total_amount"]) == Decimal("3325000")
    assert len(invoice["items"]) == 3

    response = await client.post(
        "/api/v1/invoices/generate", json=generate, headers=headers
    )
    assert response.status_code == 409
    assert response.json()["existing_id"] == invoice["id"]

    response = await client.get(f"/api/v1/invoices/{invoice['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "draft"


@pytest.mark.asyncio
async def test_duplicate_reading_returns_conflict(client, headers, room):
    first = await client.post(
        "/api/v1/readings", json=reading_body(room), headers=headers
    )
    second = await client.post(
        "/api/v1/readings", json=reading_body(room), headers=headers
    )

    assert second.status_code == 409
    assert second.json()["existing_id"] == first.json()["id"]


@pytest.mark.asyncio
async def test_bulk_readings_report_each_entry(client, headers, room):
    entries = [
        reading_body(room),
        reading_body(room, room_id=str(uuid.uuid4())),
    ]

    response = await client.post(
        "/api/v1/readings/bulk", json={"readings": entries}, headers=headers
    )

    assert response.status_code == 200
    body = response.json()
    assert (body["success_count"], body["failure_count"]) == (1, 1)
    assert body["items"][1]["key"] == 1

    response = await client.post(
        "/api/v1/readings/bulk", json={"readings": entries[1:]}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["ok"] is False


@pytest.mark.asyncio
async def test_list_and_delete_readings(client, headers, room):
    created = await client.post(
        "/api/v1/readings", json=reading_body(room), headers=headers
    )
    reading_id = created.json()["id"]

    response = await client.get(
        "/api/v1/readings", params={"period": "2024-07"}, headers=headers
    )
    assert [r["id"] for r in response.json()] == [reading_id]

    response = await client.get(
        "/api/v1/readings", params={"period": "July"}, headers=headers
    )
    assert response.status_code == 400

    response = await client.delete(f"/api/v1/readings/{reading_id}", headers=headers)
    assert response.status_code == 204
    assert (await MeterReading.get(id=reading_id)).is_deleted


@pytest.mark.asyncio
async def test_manual_payment(client, headers, invoice):
    response = await client.post(
        f"/api/v1/invoices/{invoice.id}/pay",
        json={"payment_ref": "CASH-1"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "paid"
    assert response.json()["payment_method"] == "cash"

    response = await client.post(
        f"/api/v1/invoices/{invoice.id}/pay", json={}, headers=headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_patch_invoice(client, headers, invoice):
    response = await client.patch(
        f"/api/v1/invoices/{invoice.id}",
        json={"discount_amount": "25000"},
        headers=headers,
    )
    assert response.status_code == 200
    assert Decimal(response.json()["total_amount"]) == Decimal("3300000")

    response = await client.patch(
        f"/api/v1/invoices/{invoice.id}", json={"landlord_id": "x"}, headers=headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_send_without_mail_server_is_refused(client, headers, invoice):
    response = await client.post(
        f"/api/v1/invoices/{invoice.id}/send", headers=headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_gateway_ipn_pays_invoice(client, gateway_payload, invoice):
    response = await client.post(
        "/payments/gateway/ipn", json=gateway_payload(invoice.id)
    )

    assert response.status_code == 200
    assert response.json() == {"resultCode": 0, "message": "Confirm success"}
    assert (await Invoice.get(id=invoice.id)).status == InvoiceStatus.PAID


@pytest.mark.asyncio
async def test_gateway_ipn_rejects_bad_signature(client, gateway_payload, invoice):
    body = gateway_payload(invoice.id)
    body["signature"] = "0" * 64

    response = await client.post("/payments/gateway/ipn", json=body)

    assert response.status_code == 400
    assert response.json()["resultCode"] == 94000
    assert (await Invoice.get(id=invoice.id)).status == InvoiceStatus.DRAFT


@pytest.mark.asyncio
async def test_gateway_ipn_rejects_malformed_body(client):
    response = await client.post("/payments/gateway/ipn", json={"amount": "lots"})

    assert response.status_code == 400
    assert response.json()["resultCode"] == 94000
