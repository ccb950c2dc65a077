"""Tests for invoice rendering and email delivery."""

import smtplib

import pytest

from roomledger.services.export import ExportService, format_money, invoice_context
from roomledger.services.notifier import EmailNotifier


@pytest.mark.parametrize(
    "value, expected",
    [(0, "0"), (None, "0"), (1500, "1.500"), ("3325000.00", "3.325.000")],
)
def test_format_money(value, expected):
    assert format_money(value) == expected


@pytest.mark.asyncio
async def test_render_invoice_html(invoice, room):
    html = ExportService().render_invoice_html(invoice, room, room.building)

    assert "INV-202407-001" in html
    assert "Sunrise House" in html
    assert "Room rent" in html
    assert "Electricity" in html
    assert "3.325.000 VND" in html
    assert "07/2024" in html
    assert "10/08/2024" in html


@pytest.mark.asyncio
async def test_email_notifier_renders_invoice_email(invoice, room):
    payload = invoice_context(invoice, room, room.building)
    payload["tenant_name"] = "Nguyen Van A"

    html = EmailNotifier(host="localhost").render(payload, "invoice_issued")

    assert "Hello Nguyen Van A" in html
    assert "INV-202407-001" in html
    assert "3.325.000 VND" in html


@pytest.mark.asyncio
async def test_email_notifier_reports_delivery_failure(invoice, room, monkeypatch):
    notifier = EmailNotifier(host="localhost")

    def _refuse(message):
        raise smtplib.SMTPRecipientsRefused({"tenant@example.com": (550, b"no")})

    monkeypatch.setattr(notifier, "_deliver", _refuse)
    payload = invoice_context(invoice, room, room.building)

    result = await notifier.send("tenant@example.com", payload, "invoice_issued")

    assert not result.success
    assert "tenant@example.com" in result.error


@pytest.mark.asyncio
async def test_email_notifier_builds_message(invoice, room, monkeypatch):
    notifier = EmailNotifier(host="localhost", sender="billing@example.com")
    delivered = []
    monkeypatch.setattr(notifier, "_deliver", delivered.append)
    payload = invoice_context(invoice, room, room.building)
    payload["subject"] = "Invoice INV-202407-001"

    result = await notifier.send("tenant@example.com", payload, "invoice_issued")

    assert result.success
    message = delivered[0]
    assert message["To"] == "tenant@example.com"
    assert message["From"] == "billing@example.com"
    assert message["Subject"] == "Invoice INV-202407-001"
