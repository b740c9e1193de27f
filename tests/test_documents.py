"""
Unit tests for generated documents: PDFs, QR codes and artwork analysis.

PDF text is read back with pypdf, so these tests check content rather
than layout.
"""

from datetime import date
from io import BytesIO

import pytest
from pypdf import PdfReader
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from core.exceptions import DocumentGenerationError
from models.company import CompanySettings
from modules.pdf_analyzer import PDFAnalyzer
from modules.pdf_documents import (
    format_date,
    format_money,
    generate_invoice_pdf,
    generate_quote_pdf,
    generate_statement_pdf,
)
from modules.qr_codes import qr_png, tracking_qr_png


# Fixtures

@pytest.fixture
def company():
    return CompanySettings(
        company_name="Lumen Print",
        address="12 Siaka Stevens St, Freetown",
        phone="+23276000000",
        primary_color="#0f766e",
    )


@pytest.fixture
def invoice():
    return {
        "invoice_number": "INV-20260301-AAAA",
        "status": "sent",
        "issued_date": "2026-03-01",
        "due_date": "2026-03-31",
        "customers": {"name": "Ann Kamara", "customer_display_id": "CUST-0001", "email": "ann@example.com"},
        "invoice_items": [
            {"description": "Business Cards", "quantity": 10, "unit_price": 100.0, "total_price": 1000.0},
        ],
        "subtotal": 1000.0,
        "tax_amount": 150.0,
        "total_amount": 1150.0,
        "paid_amount": 150.0,
        "balance_due": 1000.0,
        "notes": "Collect from front desk",
    }


def _text(pdf_bytes):
    reader = PdfReader(BytesIO(pdf_bytes))
    return "\n".join(page.extract_text() for page in reader.pages)


# Tests for formatting helpers

class TestFormatting:
    """Test money and date formatting."""

    def test_money(self):
        assert format_money(1234.5) == "Le 1,234.50"
        assert format_money(None, "$") == "$ 0.00"

    def test_dates(self):
        assert format_date("2026-03-01T09:00:00+00:00") == "Mar 01, 2026"
        assert format_date("2026-03-01T09:00:00.12345+00:00") == "Mar 01, 2026"
        assert format_date(date(2026, 12, 25)) == "Dec 25, 2026"
        assert format_date(None) == ""


# Tests for PDFs

class TestInvoicePdf:
    """Test invoice documents."""

    def test_contains_totals_and_customer(self, invoice, company):
        text = _text(generate_invoice_pdf(invoice, company))

        assert "INVOICE" in text
        assert "INV-20260301-AAAA" in text
        assert "Ann Kamara" in text
        assert "Le 1,150.00" in text
        assert "Le 1,000.00" in text
        assert "Collect from front desk" in text

    def test_output_is_deterministic(self, invoice, company):
        assert generate_invoice_pdf(invoice, company) == generate_invoice_pdf(invoice, company)

    def test_missing_items(self, invoice, company):
        del invoice["invoice_items"]

        with pytest.raises(DocumentGenerationError) as exc_info:
            generate_invoice_pdf(invoice, company)

        assert exc_info.value.missing_field == "invoice_items"

    def test_long_item_list_spans_pages(self, invoice, company):
        invoice["invoice_items"] = [
            {"description": f"Item {n}", "quantity": 1, "unit_price": 1.0, "total_price": 1.0}
            for n in range(80)
        ]
        reader = PdfReader(BytesIO(generate_invoice_pdf(invoice, company)))
        assert len(reader.pages) > 1


class TestQuotePdf:
    """Test quote documents."""

    def test_unpriced_quote(self, company):
        quote = {"id": "5f0c8a2e-1111", "title": "Wedding Cards", "status": "requested",
                 "customers": {"name": "Ann Kamara"}, "quantity": 100}

        text = _text(generate_quote_pdf(quote, company))

        assert "QUOTATION" in text
        assert "QTE-5f0c8a2e" in text
        assert "Pending review" in text

    def test_priced_quote(self, company):
        quote = {"id": 7, "title": "Banner", "customers": {"name": "Ben"}, "quantity": 2,
                 "quoted_price": 300.0, "services": {"name": "Banner Printing"}}

        text = _text(generate_quote_pdf(quote, company))

        assert "Le 150.00" in text
        assert "Le 300.00" in text
        assert "Service: Banner Printing" in text

    def test_missing_customer(self, company):
        with pytest.raises(DocumentGenerationError):
            generate_quote_pdf({"id": 1, "title": "x"}, company)


class TestStatementPdf:
    """Test customer statements."""

    def test_statement_with_qr(self, company):
        statement = {
            "total_jobs": 1,
            "total_invoiced": 1000.0,
            "total_paid": 200.0,
            "outstanding_balance": 800.0,
            "jobs": [{"tracking_code": "PS-260301-ABC123", "title": "Cards", "status": "Completed",
                      "created_at": "2026-03-01T09:00:00+00:00", "final_price": 1000.0}],
            "invoices": [{"invoice_number": "INV-1", "status": "sent", "total_amount": 1000.0,
                          "created_at": "2026-03-01T09:00:00+00:00"}],
            "payments": [{"amount": 200.0, "payment_method": "cash", "created_at": "2026-03-05T09:00:00+00:00"}],
        }
        customer = {"name": "Ann Kamara", "customer_display_id": "CUST-0001"}

        pdf = generate_statement_pdf(statement, customer, "current_month", company,
                                     verify_url="https://shop.example.com/customers/cust-1",
                                     generated_on=date(2026, 3, 15))
        text = _text(pdf)

        assert "CUSTOMER STATEMENT" in text
        assert "Current Month" in text
        assert "Le 800.00" in text
        assert "PS-260301-ABC123" in text

    def test_unknown_period(self, company):
        with pytest.raises(DocumentGenerationError):
            generate_statement_pdf({}, {"name": "Ann"}, "fortnight", company)


# Tests for QR codes and analysis

class TestQrCodes:
    """Test QR PNG output."""

    def test_png_signature(self):
        assert qr_png("hello").startswith(b"\x89PNG")

    def test_tracking_qr(self):
        assert tracking_qr_png("https://shop.example.com", "PS-1").startswith(b"\x89PNG")


class TestPdfAnalyzer:
    """Test artwork analysis."""

    def test_reads_page_size(self):
        buffer = BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.drawString(72, 720, "artwork")
        pdf.showPage()
        pdf.showPage()
        pdf.save()

        info = PDFAnalyzer().analyze(buffer.getvalue())

        assert info["pages"] == 2
        assert info["suggested_width"] == 8.27
        assert info["suggested_length"] == 11.69

    def test_malformed_pdf(self):
        info = PDFAnalyzer().analyze(b"not a pdf at all")

        assert info["pages"] == 0
        assert "error" in info
