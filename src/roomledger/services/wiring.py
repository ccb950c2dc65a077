"""Assembles services with their repositories for the API, bot and jobs."""

from __future__ import annotations

from dataclasses import dataclass

from roomledger.config import Settings
from roomledger.core.repositories.building import (
    BuildingRepository,
    BuildingServiceRepository,
)
from roomledger.core.repositories.contract import ContractRepository
from roomledger.core.repositories.invoice import InvoiceRepository
from roomledger.core.repositories.payment import PaymentLogRepository
from roomledger.core.repositories.reading import ReadingRepository
from roomledger.core.repositories.room import RoomRepository
from roomledger.services.billing import BillingService
from roomledger.services.export import ExportService
from roomledger.services.lifecycle import InvoiceLifecycleService
from roomledger.services.notifier import EmailNotifier, Notifier
from roomledger.services.payments import PaymentService
from roomledger.services.readings import ReadingService


@dataclass
class Services:
    readings: ReadingService
    billing: BillingService
    lifecycle: InvoiceLifecycleService
    payments: PaymentService
    export: ExportService


def build_notifier(settings: Settings) -> Notifier | None:
    """An SMTP notifier, or None when no mail server is configured."""
    if not settings.SMTP_HOST:
        return None
    return EmailNotifier(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        sender=settings.MAIL_FROM,
    )


def build_services(settings: Settings, notifier: Notifier | None = None) -> Services:
    room_repo = RoomRepository()
    contract_repo = ContractRepository()
    reading_repo = ReadingRepository()
    invoice_repo = InvoiceRepository()

    lifecycle = InvoiceLifecycleService(
        invoice_repo=invoice_repo,
        room_repo=room_repo,
        contract_repo=contract_repo,
        notifier=notifier,
        min_period_year=settings.MIN_PERIOD_YEAR,
    )
    return Services(
        readings=ReadingService(
            reading_repo=reading_repo,
            room_repo=room_repo,
            min_period_year=settings.MIN_PERIOD_YEAR,
        ),
        billing=BillingService(
            room_repo=room_repo,
            building_repo=BuildingRepository(),
            contract_repo=contract_repo,
            reading_repo=reading_repo,
            invoice_repo=invoice_repo,
            service_repo=BuildingServiceRepository(),
            lifecycle=lifecycle,
            due_day=settings.INVOICE_DUE_DAY,
            currency=settings.INVOICE_CURRENCY,
            auto_send=settings.INVOICE_AUTO_SEND,
            min_period_year=settings.MIN_PERIOD_YEAR,
        ),
        lifecycle=lifecycle,
        payments=PaymentService(
            lifecycle=lifecycle,
            invoice_repo=invoice_repo,
            payment_log_repo=PaymentLogRepository(),
            access_key=settings.GATEWAY_ACCESS_KEY,
            secret_key=settings.GATEWAY_SECRET_KEY,
        ),
        export=ExportService(),
    )
