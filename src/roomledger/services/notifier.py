"""Outbound notifications for tenants."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any, Mapping, Protocol

from roomledger.services.export import get_template_env

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    error: str | None = None


class Notifier(Protocol):
    """Delivers a templated message to a recipient."""

    async def send(
        self, recipient: str, payload: Mapping[str, Any], template_kind: str
    ) -> NotificationResult: ...


class EmailNotifier:
    """Sends templated HTML emails over SMTP."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        sender: str = "billing@roomledger.local",
    ):
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._sender = sender
        self._env = get_template_env()

    def render(self, payload: Mapping[str, Any], template_kind: str) -> str:
        template = self._env.get_template(f"emails/{template_kind}.html")
        return template.render(**payload)

    async def send(
        self, recipient: str, payload: Mapping[str, Any], template_kind: str
    ) -> NotificationResult:
        message = EmailMessage()
        message["Subject"] = str(payload.get("subject", "Notification"))
        message["From"] = self._sender
        message["To"] = recipient
        message.set_content("Please view this message in an HTML capable client.")
        message.add_alternative(self.render(payload, template_kind), subtype="html")

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"Email '{template_kind}' to {recipient} failed: {e}")
            return NotificationResult(success=False, error=str(e))
        return NotificationResult(success=True)

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=30) as smtp:
            if self._use_tls:
                smtp.starttls()
            if self._username:
                smtp.login(self._username, self._password or "")
            smtp.send_message(message)
