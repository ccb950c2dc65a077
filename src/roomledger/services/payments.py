"""Service applying manual payments and payment gateway callbacks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from roomledger.core import signing
from roomledger.core.access import ActorContext
from roomledger.core.errors import SignatureError, StateError, ValidationError
from roomledger.core.models import Invoice, InvoiceStatus, PaymentLog, PaymentMethod
from roomledger.core.repositories.invoice import InvoiceRepository
from roomledger.core.repositories.payment import PaymentLogRepository
from roomledger.services.lifecycle import InvoiceLifecycleService

logger = logging.getLogger(__name__)

GATEWAY_NAME = "momo"

# Result codes returned to the gateway. Anything but 0 makes it retry.
RESULT_OK = 0
RESULT_BAD_SIGNATURE = 94000
RESULT_MISSING_INVOICE_ID = 94001
RESULT_INVALID_TOTAL = 94002
RESULT_AMOUNT_MISMATCH = 94003
RESULT_INVOICE_NOT_FOUND = 94004
RESULT_NOT_PAYABLE = 94005
RESULT_INTERNAL_ERROR = 95000

ALREADY_PAID = "Invoice already paid - IPN processed before"


class GatewayCallback(BaseModel):
    """Instant payment notification posted by the gateway."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    partner_code: str | None = Field(default=None, alias="partnerCode")
    order_id: str | None = Field(default=None, alias="orderId")
    request_id: str | None = Field(default=None, alias="requestId")
    amount: int = 0
    order_info: str | None = Field(default=None, alias="orderInfo")
    order_type: str | None = Field(default=None, alias="orderType")
    trans_id: int | str | None = Field(default=None, alias="transId")
    result_code: int = Field(alias="resultCode")
    message: str | None = None
    pay_type: str | None = Field(default=None, alias="payType")
    response_time: int | None = Field(default=None, alias="responseTime")
    extra_data: str | None = Field(default=None, alias="extraData")
    signature: str = ""
    ipn_url: str | None = Field(default=None, alias="ipnUrl")
    redirect_url: str | None = Field(default=None, alias="redirectUrl")
    request_type: str | None = Field(default=None, alias="requestType")

    def wire(self) -> dict:
        """The payload with the gateway's field names."""
        return self.model_dump(by_alias=True, mode="json")

    @property
    def reference(self) -> str:
        return str(self.trans_id or self.order_id or "")


@dataclass(frozen=True)
class GatewayAck:
    """Answer sent back to the gateway."""

    result_code: int
    message: str
    http_status: int = 200

    def as_dict(self) -> dict:
        return {"resultCode": self.result_code, "message": self.message}


class PaymentService:
    """Reconciles payments against invoices."""

    def __init__(
        self,
        lifecycle: InvoiceLifecycleService,
        invoice_repo: InvoiceRepository,
        payment_log_repo: PaymentLogRepository,
        access_key: str,
        secret_key: str,
    ):
        self._lifecycle = lifecycle
        self._invoice_repo = invoice_repo
        self._payment_log_repo = payment_log_repo
        self._access_key = access_key
        self._secret_key = secret_key

    async def apply_manual_payment(
        self,
        ctx: ActorContext,
        invoice_id: UUID,
        method: PaymentMethod = PaymentMethod.CASH,
        paid_at: datetime | None = None,
        paid_amount: Decimal | None = None,
        note: str | None = None,
        payment_ref: str | None = None,
    ) -> Invoice:
        return await self._lifecycle.mark_paid(
            ctx,
            invoice_id,
            method=method,
            paid_at=paid_at,
            paid_amount=paid_amount,
            note=note,
            payment_ref=payment_ref,
        )

    async def handle_gateway_callback(self, callback: GatewayCallback) -> GatewayAck:
        """
        Verifies and applies a gateway payment notification.

        A callback with a bad signature is rejected before anything is
        written. Otherwise the attempt is logged against its invoice, and a
        successful payment for the full total marks the invoice paid.
        Duplicate deliveries for a paid invoice are acknowledged without
        changes.

        Raises:
            SignatureError: The signature does not match the payload.
        """
        payload = callback.wire()
        if not signing.verify(
            payload, callback.signature, self._access_key, self._secret_key
        ):
            logger.warning(
                f"Rejected gateway callback with invalid signature "
                f"(order {callback.order_id}, trans {callback.trans_id})."
            )
            raise SignatureError("Invalid signature.")

        try:
            extra = signing.decode_extra_data(callback.extra_data)
            invoice_id = UUID(str(extra["invoiceId"]))
        except (ValidationError, KeyError, ValueError) as e:
            logger.warning(
                f"Gateway callback {callback.order_id} has no invoice id: {e}"
            )
            return GatewayAck(
                RESULT_MISSING_INVOICE_ID, "Missing invoiceId in extraData", 400
            )

        invoice = await self._invoice_repo.get(invoice_id)
        if not invoice:
            logger.warning(f"Gateway callback for unknown invoice {invoice_id}.")
            return GatewayAck(RESULT_INVOICE_NOT_FOUND, "Invoice not found", 404)

        succeeded = callback.result_code == RESULT_OK
        await PaymentLog.create(
            invoice_id=invoice.id,
            gateway=GATEWAY_NAME,
            method=callback.pay_type or callback.request_type or "captureWallet",
            amount=Decimal(callback.amount),
            currency=invoice.currency,
            status="success" if succeeded else "fail",
            trans_id=callback.reference,
            raw_payload=payload,
        )

        if not succeeded:
            logger.warning(
                f"Gateway reported failed payment for invoice {invoice.invoice_number}: "
                f"{callback.result_code} {callback.message}"
            )
            return GatewayAck(RESULT_OK, "Received IPN - payment failed, logged only")

        if invoice.status == InvoiceStatus.PAID:
            logger.info(
                f"Duplicate payment callback for paid invoice {invoice.invoice_number}."
            )
            return GatewayAck(RESULT_OK, ALREADY_PAID)

        total = Decimal(invoice.total_amount or 0)
        if total <= 0:
            logger.error(
                f"Invoice {invoice.invoice_number} has non-positive total {total}."
            )
            return GatewayAck(RESULT_INVALID_TOTAL, "Invoice totalAmount invalid", 400)
        if Decimal(callback.amount) != total:
            logger.warning(
                f"Amount mismatch for invoice {invoice.invoice_number}: "
                f"paid {callback.amount}, due {total}."
            )
            return GatewayAck(
                RESULT_AMOUNT_MISMATCH, "Paid amount mismatch invoice totalAmount", 400
            )

        try:
            await self._lifecycle.mark_paid(
                ActorContext.system(invoice.landlord_id),
                invoice.id,
                method=PaymentMethod.ONLINE_GATEWAY,
                paid_amount=Decimal(callback.amount),
                payment_ref=callback.reference,
                note=f"Paid via {GATEWAY_NAME} ({callback.pay_type or ''})",
            )
        except StateError as e:
            await invoice.refresh_from_db(fields=["status"])
            if invoice.status == InvoiceStatus.PAID:
                return GatewayAck(RESULT_OK, ALREADY_PAID)
            logger.warning(f"Gateway payment not applied: {e.message}")
            return GatewayAck(RESULT_NOT_PAYABLE, e.message, 409)

        logger.info(
            f"Invoice {invoice.invoice_number} paid via {GATEWAY_NAME} "
            f"(trans {callback.reference})."
        )
        return GatewayAck(RESULT_OK, "Confirm success")

    async def payment_history(
        self, ctx: ActorContext, invoice_id: UUID
    ) -> list[PaymentLog]:
        invoice = await self._lifecycle.get_invoice(ctx, invoice_id)
        return await self._payment_log_repo.list_for_invoice(invoice.id)
