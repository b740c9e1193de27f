"""
Invoice, quote and statement PDFs.

Documents are drawn directly on a reportlab canvas (text, lines and
rectangles), one column layout on A4. The canvas is created with
``invariant=1`` so the same input always produces the same bytes.

Every generator takes plain dicts shaped like the platform rows (with the
customer embedded under ``customers``) plus the company settings, and
returns the PDF as bytes.
"""

from __future__ import annotations

from datetime import date
from io import BytesIO
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from core.exceptions import DocumentGenerationError
from core.timeutil import parse_timestamp
from models.company import CompanySettings
from modules.qr_codes import qr_png
from logging_config import get_logger


logger = get_logger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 18 * mm
LINE_HEIGHT = 5.5 * mm
BOTTOM_LIMIT = 25 * mm

PERIOD_LABELS = {
    "current_month": "Current Month",
    "last_3_months": "Last 3 Months",
    "last_6_months": "Last 6 Months",
    "all_time": "All Time",
}

QUOTE_TERMS = (
    "This quote is valid for 30 days from the date of issue",
    "Prices are subject to change without notice",
    "Payment terms: 50% deposit, balance on completion",
    "Additional charges may apply for changes to specifications",
)


def format_money(amount: Any, symbol: str = "Le") -> str:
    """``Le 1,234.50``."""
    return f"{symbol} {float(amount or 0):,.2f}"


def format_date(value: Any) -> str:
    parsed = parse_timestamp(value) if isinstance(value, str) else None
    if parsed is not None:
        return parsed.strftime("%b %d, %Y")
    if isinstance(value, date):
        return value.strftime("%b %d, %Y")
    return str(value or "")


def _require(document: str, data: Dict[str, Any], *fields: str) -> None:
    for field_name in fields:
        if data.get(field_name) in (None, ""):
            raise DocumentGenerationError(document, field_name)


def _hex_color(value: Optional[str]):
    try:
        return colors.HexColor(value or "#1f2937")
    except ValueError:
        return colors.HexColor("#1f2937")


# =============================================================================
# DRAWING
# =============================================================================

class _Page:
    """A canvas plus a top-down cursor that starts a new page when full."""

    def __init__(self, title: str, company: CompanySettings):
        self.buffer = BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=A4, invariant=1)
        self.canvas.setTitle(title)
        self.canvas.setAuthor(company.company_name)
        self.company = company
        self.accent = _hex_color(company.primary_color)
        self.y = PAGE_HEIGHT - MARGIN

    def ensure(self, height: float) -> None:
        if self.y - height < BOTTOM_LIMIT:
            self.canvas.showPage()
            self.y = PAGE_HEIGHT - MARGIN

    def text(self, value: str, x: float = MARGIN, size: int = 10, bold: bool = False,
             align: str = "left") -> None:
        self.ensure(LINE_HEIGHT)
        self.canvas.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        if align == "right":
            self.canvas.drawRightString(x, self.y, value)
        else:
            self.canvas.drawString(x, self.y, value)
        self.y -= LINE_HEIGHT if size <= 11 else size * 0.6 * mm

    def gap(self, height: float = LINE_HEIGHT) -> None:
        self.y -= height

    def rule(self) -> None:
        self.ensure(LINE_HEIGHT)
        self.canvas.setStrokeColor(self.accent)
        self.canvas.setLineWidth(0.8)
        self.canvas.line(MARGIN, self.y, PAGE_WIDTH - MARGIN, self.y)
        self.y -= LINE_HEIGHT

    def header(self, heading: str, meta: Sequence[Tuple[str, str]]) -> None:
        """Company block on the left, document title and meta on the right."""
        top = self.y
        self.canvas.setFillColor(self.accent)
        self.text(self.company.company_name, size=18, bold=True)
        self.canvas.setFillColor(colors.black)
        for line in self.company.contact_lines():
            self.text(line, size=9)
        left_bottom = self.y

        self.y = top
        right = PAGE_WIDTH - MARGIN
        self.text(heading, x=right, size=16, bold=True, align="right")
        for label, value in meta:
            self.text(f"{label}: {value}", x=right, size=9, align="right")

        self.y = min(left_bottom, self.y) - LINE_HEIGHT / 2
        self.rule()

    def table(self, columns: Sequence[Tuple[str, float, str]], rows: Iterable[Sequence[str]]) -> None:
        """
        Args:
            columns: (heading, x position, "left" | "right")
            rows: Cell strings in column order
        """
        self.ensure(LINE_HEIGHT * 2)
        self.canvas.setFillColor(colors.HexColor("#f3f4f6"))
        self.canvas.rect(MARGIN, self.y - 1.8 * mm, PAGE_WIDTH - 2 * MARGIN, LINE_HEIGHT, stroke=0, fill=1)
        self.canvas.setFillColor(colors.black)
        self._row([heading for heading, _, _ in columns], columns, bold=True)
        for row in rows:
            self._row(row, columns)
        self.rule()

    def _row(self, cells: Sequence[str], columns: Sequence[Tuple[str, float, str]], bold: bool = False) -> None:
        self.ensure(LINE_HEIGHT)
        self.canvas.setFont("Helvetica-Bold" if bold else "Helvetica", 9)
        for cell, (_, x, align) in zip(cells, columns):
            if align == "right":
                self.canvas.drawRightString(x, self.y, cell)
            else:
                self.canvas.drawString(x, self.y, cell[:48])
        self.y -= LINE_HEIGHT

    def totals(self, lines: Sequence[Tuple[str, str]], emphasize_last: bool = True) -> None:
        label_x = PAGE_WIDTH - MARGIN - 55 * mm
        value_x = PAGE_WIDTH - MARGIN
        for index, (label, value) in enumerate(lines):
            bold = emphasize_last and index == len(lines) - 1
            self.ensure(LINE_HEIGHT)
            self.canvas.setFont("Helvetica-Bold" if bold else "Helvetica", 10)
            self.canvas.drawString(label_x, self.y, label)
            self.canvas.drawRightString(value_x, self.y, value)
            self.y -= LINE_HEIGHT

    def footer(self, message: str) -> None:
        self.canvas.setFont("Helvetica-Oblique", 9)
        self.canvas.setFillColor(colors.HexColor("#6b7280"))
        self.canvas.drawCentredString(PAGE_WIDTH / 2, 15 * mm, message)
        self.canvas.setFillColor(colors.black)

    def finish(self) -> bytes:
        self.canvas.showPage()
        self.canvas.save()
        return self.buffer.getvalue()


def _customer_block(page: _Page, heading: str, customer: Dict[str, Any]) -> None:
    page.text(heading, bold=True)
    page.text(customer.get("name") or "", size=11, bold=True)
    if customer.get("customer_display_id"):
        page.text(f"Customer ID: {customer['customer_display_id']}", size=9)
    for key in ("email", "phone", "address"):
        if customer.get(key):
            page.text(str(customer[key]), size=9)
    page.gap()


# =============================================================================
# DOCUMENTS
# =============================================================================

def generate_invoice_pdf(invoice_data: Dict[str, Any], company_settings: CompanySettings) -> bytes:
    """
    Raises:
        DocumentGenerationError: invoice_number, customers or
            invoice_items missing
    """
    _require("invoice", invoice_data, "invoice_number", "customers", "invoice_items")
    symbol = company_settings.currency_symbol
    page = _Page(f"Invoice {invoice_data['invoice_number']}", company_settings)

    meta = [("Invoice #", invoice_data["invoice_number"]),
            ("Issued", format_date(invoice_data.get("issued_date")))]
    if invoice_data.get("due_date"):
        meta.append(("Due", format_date(invoice_data["due_date"])))
    meta.append(("Status", str(invoice_data.get("status") or "draft").upper()))
    page.header("INVOICE", meta)

    _customer_block(page, "Bill To:", invoice_data["customers"])

    right = PAGE_WIDTH - MARGIN
    page.table(
        [("Description", MARGIN, "left"), ("Qty", right - 75 * mm, "right"),
         ("Unit Price", right - 40 * mm, "right"), ("Total", right, "right")],
        [
            (str(item.get("description") or ""), f"{item.get('quantity') or 0:g}",
             format_money(item.get("unit_price"), symbol), format_money(item.get("total_price"), symbol))
            for item in invoice_data["invoice_items"]
        ],
    )

    total = float(invoice_data.get("total_amount") or 0)
    paid = float(invoice_data.get("paid_amount") or 0)
    balance = invoice_data.get("balance_due")
    lines = [("Subtotal", format_money(invoice_data.get("subtotal"), symbol))]
    if invoice_data.get("tax_amount"):
        lines.append(("Tax", format_money(invoice_data["tax_amount"], symbol)))
    if invoice_data.get("discount_amount"):
        lines.append(("Discount", f"-{format_money(invoice_data['discount_amount'], symbol)}"))
    lines.append(("Total", format_money(total, symbol)))
    if paid:
        lines.append(("Paid", format_money(paid, symbol)))
    lines.append(("Balance Due", format_money(total - paid if balance is None else balance, symbol)))
    page.totals(lines)

    if invoice_data.get("notes"):
        page.gap()
        page.text("Notes:", bold=True)
        page.text(str(invoice_data["notes"]), size=9)

    page.footer("Thank you for your business!")
    logger.debug(f"Rendered invoice {invoice_data['invoice_number']}")
    return page.finish()


def generate_quote_pdf(quote_data: Dict[str, Any], company_settings: CompanySettings) -> bytes:
    """
    Raises:
        DocumentGenerationError: id, title or customers missing
    """
    _require("quote", quote_data, "id", "title", "customers")
    symbol = company_settings.currency_symbol
    page = _Page(f"Quote {quote_data['id']}", company_settings)

    meta = [("Quote #", f"QTE-{str(quote_data['id'])[:8]}"),
            ("Date", format_date(quote_data.get("created_at")))]
    if quote_data.get("valid_until"):
        meta.append(("Valid Until", format_date(quote_data["valid_until"])))
    meta.append(("Status", str(quote_data.get("status") or "requested").upper()))
    page.header("QUOTATION", meta)

    _customer_block(page, "Quote For:", quote_data["customers"])

    page.text(f"Project: {quote_data['title']}", size=11, bold=True)
    service = quote_data.get("services") or {}
    if service.get("name"):
        page.text(f"Service: {service['name']}", size=9)
    if quote_data.get("description"):
        page.text(str(quote_data["description"]), size=9)
    page.gap()

    quantity = int(quote_data.get("quantity") or 1)
    price = quote_data.get("quoted_price")
    items = quote_data.get("quote_items") or [{
        "description": quote_data["title"],
        "quantity": quantity,
        "unit_price": (float(price) / quantity) if price is not None else None,
        "total_price": price,
    }]
    right = PAGE_WIDTH - MARGIN
    page.table(
        [("Description", MARGIN, "left"), ("Qty", right - 75 * mm, "right"),
         ("Unit Price", right - 40 * mm, "right"), ("Total", right, "right")],
        [
            (str(item.get("description") or ""), f"{item.get('quantity') or 0:g}",
             format_money(item["unit_price"], symbol) if item.get("unit_price") is not None else "TBD",
             format_money(item["total_price"], symbol) if item.get("total_price") is not None else "TBD")
            for item in items
        ],
    )
    page.totals([("Quoted Total", format_money(price, symbol) if price is not None else "Pending review")])

    if quote_data.get("notes"):
        page.gap()
        page.text("Notes:", bold=True)
        page.text(str(quote_data["notes"]), size=9)

    page.gap()
    page.text("Terms & Conditions:", bold=True)
    for term in QUOTE_TERMS:
        page.text(f"- {term}", size=9)

    page.footer("Thank you for considering our services!")
    return page.finish()


def generate_statement_pdf(
    statement_data: Dict[str, Any],
    customer: Dict[str, Any],
    period: str,
    company_settings: CompanySettings,
    verify_url: Optional[str] = None,
    generated_on: Optional[date] = None,
) -> bytes:
    """
    Customer statement with summary, jobs, invoices and payments.

    ``verify_url`` is encoded in a QR code in the summary block.

    Raises:
        DocumentGenerationError: customer name missing or unknown period
    """
    _require("statement", customer, "name")
    if period not in PERIOD_LABELS:
        raise DocumentGenerationError("statement", "period")
    symbol = company_settings.currency_symbol
    generated_on = generated_on or date.today()

    page = _Page(f"Statement {customer.get('customer_display_id') or customer['name']}", company_settings)
    page.header("CUSTOMER STATEMENT", [
        ("Period", PERIOD_LABELS[period]),
        ("Generated", format_date(generated_on)),
        ("Customer", customer["name"]),
        ("ID", customer.get("customer_display_id") or "N/A"),
    ])

    summary_top = page.y
    page.totals([
        ("Total Jobs", str(statement_data.get("total_jobs", len(statement_data.get("jobs") or [])))),
        ("Total Invoiced", format_money(statement_data.get("total_invoiced"), symbol)),
        ("Total Paid", format_money(statement_data.get("total_paid"), symbol)),
        ("Outstanding Balance", format_money(statement_data.get("outstanding_balance"), symbol)),
    ])
    if verify_url:
        summary_bottom = page.y
        page.y = summary_top
        size = 28 * mm
        page.canvas.drawImage(ImageReader(BytesIO(qr_png(verify_url))), MARGIN, page.y - size,
                              width=size, height=size)
        page.y = min(summary_bottom, summary_top - size) - LINE_HEIGHT / 2
    page.rule()

    right = PAGE_WIDTH - MARGIN
    jobs: List[Dict[str, Any]] = statement_data.get("jobs") or []
    page.text("Jobs Summary", bold=True)
    page.table(
        [("Job", MARGIN, "left"), ("Title", MARGIN + 35 * mm, "left"), ("Status", MARGIN + 95 * mm, "left"),
         ("Date", MARGIN + 130 * mm, "left"), ("Amount", right, "right")],
        [
            (job.get("tracking_code") or f"#{job.get('id')}", str(job.get("title") or "N/A"),
             str(job.get("status") or ""), format_date(job.get("created_at")),
             format_money(job.get("final_price") or job.get("quoted_price"), symbol))
            for job in jobs
        ],
    )

    page.text("Invoices Summary", bold=True)
    page.table(
        [("Invoice", MARGIN, "left"), ("Date", MARGIN + 55 * mm, "left"),
         ("Status", MARGIN + 100 * mm, "left"), ("Amount", right, "right")],
        [
            (str(inv.get("invoice_number") or ""), format_date(inv.get("created_at")),
             str(inv.get("status") or ""), format_money(inv.get("total_amount"), symbol))
            for inv in statement_data.get("invoices") or []
        ],
    )

    payments = statement_data.get("payments") or []
    if payments:
        page.text("Payments", bold=True)
        page.table(
            [("Date", MARGIN, "left"), ("Method", MARGIN + 45 * mm, "left"),
             ("Reference", MARGIN + 90 * mm, "left"), ("Amount", right, "right")],
            [
                (format_date(pay.get("payment_date") or pay.get("created_at")),
                 str(pay.get("payment_method") or ""), str(pay.get("reference_number") or ""),
                 format_money(pay.get("amount"), symbol))
                for pay in payments
            ],
        )

    page.footer(f"Statement for {customer['name']} - {company_settings.company_name}")
    return page.finish()
