"""Service for rendering invoices to HTML and PDF."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from roomledger.core.dates import format_period_for_display
from roomledger.core.models import Building, Invoice, Room

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


def get_template_env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        autoescape=select_autoescape(["html"]),
    )
    env.filters["money"] = format_money
    return env


def format_money(value: Any) -> str:
    """Formats an amount with thousands separators and no decimals."""
    return f"{float(value or 0):,.0f}".replace(",", ".")


def invoice_context(invoice: Invoice, room: Room, building: Building) -> dict[str, Any]:
    """Template variables shared by the PDF and the email of an invoice."""
    return {
        "invoice": invoice,
        "items": invoice.line_items(),
        "room": room,
        "building": building,
        "period": format_period_for_display(invoice.period),
        "due_date": invoice.due_date.strftime("%d/%m/%Y") if invoice.due_date else "N/A",
    }


class ExportService:
    """Handles exporting invoice data to files."""

    def __init__(self):
        self._env = get_template_env()

    def render_invoice_html(
        self, invoice: Invoice, room: Room, building: Building
    ) -> str:
        template = self._env.get_template("invoice.html")
        return template.render(**invoice_context(invoice, room, building))

    async def generate_pdf_invoice(
        self, invoice: Invoice, output_path: Path | str
    ) -> Path:
        """
        Generates a PDF invoice.

        Args:
            invoice: The invoice to render.
            output_path: The path where the PDF file will be saved.

        Returns:
            The path to the generated PDF file.
        """
        # WeasyPrint loads native libraries on import.
        from weasyprint import HTML

        await invoice.fetch_related("room", "building")
        rendered_html = self.render_invoice_html(invoice, invoice.room, invoice.building)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        HTML(string=rendered_html).write_pdf(output_path)

        return output_path
