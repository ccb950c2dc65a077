import tempfile
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, Response
from fastapi.responses import FileResponse

from roomledger.api.deps import get_actor, get_services
from roomledger.api.schemas import (
    BatchResponse,
    BuildingInvoiceGenerate,
    InvoiceGenerate,
    InvoiceResponse,
    ManualPayment,
    PaymentLogResponse,
)
from roomledger.core.access import ActorContext
from roomledger.core.dates import Period
from roomledger.services.lifecycle import InvoicePatch
from roomledger.services.wiring import Services

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post("/generate", response_model=InvoiceResponse, status_code=201)
async def generate_invoice(
    body: InvoiceGenerate,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Generate the invoice of one room for a period."""
    return await services.billing.generate(
        actor,
        body.room_id,
        body.period_month,
        body.period_year,
        include_rent=body.include_rent,
        extra_items=body.extra_items,
        due_date=body.due_date,
    )


@router.post("/generate/building", response_model=BatchResponse)
async def generate_building_invoices(
    body: BuildingInvoiceGenerate,
    response: Response,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Generate invoices for every rented room of a building."""
    result = await services.billing.generate_for_building(
        actor,
        body.building_id,
        body.period_month,
        body.period_year,
        include_rent=body.include_rent,
        extra_items=body.extra_items,
    )
    if not result.ok:
        response.status_code = 400
    return BatchResponse.from_result(result)


@router.post("/send-drafts", response_model=BatchResponse)
async def send_draft_invoices(
    period: str | None = None,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    result = await services.lifecycle.dispatch_drafts(
        actor, Period.parse(period) if period else None
    )
    return BatchResponse.from_result(result)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    return await services.lifecycle.get_invoice(actor, invoice_id)


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: uuid.UUID,
    body: InvoicePatch,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    return await services.lifecycle.update(actor, invoice_id, body)


@router.post("/{invoice_id}/send", response_model=InvoiceResponse)
async def send_invoice(
    invoice_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Email the invoice to the tenant. Delivery failures are recorded on it."""
    return await services.lifecycle.dispatch(actor, invoice_id)


@router.post("/{invoice_id}/pay", response_model=InvoiceResponse)
async def pay_invoice(
    invoice_id: uuid.UUID,
    body: ManualPayment,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Confirm a payment received outside the gateway."""
    return await services.payments.apply_manual_payment(
        actor,
        invoice_id,
        method=body.method,
        paid_at=body.paid_at,
        paid_amount=body.paid_amount,
        note=body.note,
        payment_ref=body.payment_ref,
    )


@router.get("/{invoice_id}/payments", response_model=list[PaymentLogResponse])
async def list_invoice_payments(
    invoice_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    return await services.payments.payment_history(actor, invoice_id)


@router.get("/{invoice_id}/pdf", response_class=FileResponse)
async def download_invoice_pdf(
    invoice_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    invoice = await services.lifecycle.get_invoice(actor, invoice_id)
    output = Path(tempfile.gettempdir()) / f"{invoice.invoice_number}.pdf"
    path = await services.export.generate_pdf_invoice(invoice, output)
    return FileResponse(path, media_type="application/pdf", filename=path.name)
