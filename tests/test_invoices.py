"""
Unit tests for invoices, payments and customer statements.
"""

import re
from datetime import datetime, timezone

import pytest

from core.exceptions import NotFoundError, ValidationError
from models.invoice import InvoiceItem, compute_totals
from services.invoice_service import InvoiceService, generate_invoice_number, statement_window
from tests.conftest import FakeGateway


# Fixtures

TODAY = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def gateway():
    return FakeGateway({
        "customers": [
            {"id": "cust-1", "name": "Ann Kamara", "customer_display_id": "CUST-0001"},
            {"id": "cust-2", "name": "Ben Sesay", "customer_display_id": "CUST-0002"},
        ],
        "invoices": [
            {
                "id": "inv-1",
                "invoice_number": "INV-20260301-AAAA",
                "customer_id": "cust-1",
                "customers": {"name": "Ann Kamara"},
                "status": "sent",
                "subtotal": 1000.0,
                "tax_rate": 0,
                "tax_amount": 0,
                "discount_amount": 0,
                "total_amount": 1000.0,
                "paid_amount": 0,
                "balance_due": 1000.0,
                "invoice_items": [{"description": "Cards", "quantity": 10, "unit_price": 100.0}],
                "created_at": "2026-03-01T09:00:00+00:00",
            },
            {
                "id": "inv-2",
                "invoice_number": "INV-20251101-BBBB",
                "customer_id": "cust-1",
                "customers": {"name": "Ann Kamara"},
                "status": "paid",
                "total_amount": 500.0,
                "paid_amount": 500.0,
                "created_at": "2025-11-01T09:00:00+00:00",
            },
            {
                "id": "inv-3",
                "invoice_number": "INV-20260302-CCCC",
                "customer_id": "cust-2",
                "customers": {"name": "Ben Sesay"},
                "status": "cancelled",
                "total_amount": 50.0,
                "created_at": "2026-03-02T09:00:00+00:00",
            },
        ],
        "payments": [
            {"id": 1, "invoice_id": "inv-2", "amount": 500.0, "created_at": "2025-11-05T09:00:00+00:00"},
            {"id": 2, "invoice_id": "inv-1", "amount": 200.0, "created_at": "2026-03-05T09:00:00+00:00"},
        ],
        "jobs": [
            {"id": 1, "customer_uuid": "cust-1", "created_at": "2026-03-03T09:00:00+00:00"},
            {"id": 2, "customer_uuid": "cust-1", "created_at": "2025-10-03T09:00:00+00:00"},
        ],
    })


@pytest.fixture
def invoices(gateway):
    return InvoiceService(gateway)


# Tests for totals

class TestTotals:
    """Test derived money columns."""

    def test_totals_with_tax_and_discount(self):
        items = [InvoiceItem("Cards", 10, 100.0), InvoiceItem("Design", 1, 250.0)]

        totals = compute_totals(items, tax_rate=15, discount=50, paid=300)

        assert totals.subtotal == 1250.0
        assert totals.tax_amount == 187.5
        assert totals.total_amount == 1387.5
        assert totals.balance_due == 1087.5

    def test_item_total_rounds_half_up(self):
        assert InvoiceItem("x", 3, 0.335).total_price == 1.01

    def test_invoice_number_format(self):
        assert re.fullmatch(r"INV-\d{8}-[0-9A-F]{4}", generate_invoice_number())


# Tests for create / list / status

class TestInvoices:
    """Test invoice creation and listing."""

    def test_create_invoice_writes_items(self, invoices, gateway):
        invoice = invoices.create_invoice(
            "cust-2",
            [{"description": "Flyers", "quantity": 100, "unit_price": 2.5}],
            tax_rate=10,
        )

        assert invoice.status == "draft"
        assert invoice.totals.total_amount == 275.0
        stored = next(row for row in gateway.rows("invoices") if row["id"] == invoice.id)
        assert stored["balance_due"] == 275.0
        items = gateway.rows("invoice_items")
        assert len(items) == 1
        assert items[0]["invoice_id"] == invoice.id
        assert items[0]["total_price"] == 250.0

    def test_create_requires_items(self, invoices):
        with pytest.raises(ValidationError):
            invoices.create_invoice("cust-2", [])

    def test_default_tax_rate_applies(self, gateway):
        service = InvoiceService(gateway, default_tax_rate=15)
        invoice = service.create_invoice("cust-2", [{"description": "A", "quantity": 1, "unit_price": 100}])
        assert invoice.totals.tax_amount == 15.0

    def test_search_matches_number_or_customer(self, invoices):
        assert [row["id"] for row in invoices.list_invoices(search="ben")] == ["inv-3"]
        assert [row["id"] for row in invoices.list_invoices(search="bbbb")] == ["inv-2"]

    def test_list_by_status_and_customer(self, invoices):
        assert [row["id"] for row in invoices.list_invoices(status="sent")] == ["inv-1"]
        assert [row["id"] for row in invoices.list_invoices(customer_id="cust-1")] == ["inv-1", "inv-2"]

    def test_update_status(self, invoices):
        assert invoices.update_status("inv-1", "overdue")["status"] == "overdue"

    def test_unknown_status(self, invoices):
        with pytest.raises(ValidationError):
            invoices.update_status("inv-1", "lost")

    def test_status_unknown_invoice(self, invoices):
        with pytest.raises(NotFoundError):
            invoices.update_status("nope", "paid")


# Tests for payments

class TestPayments:
    """Test payment recording."""

    def test_partial_payment(self, invoices, gateway):
        row = invoices.record_payment("inv-1", "400", payment_method="mobile_money", reference_number="OM-77")

        assert row["paid_amount"] == 400.0
        assert row["balance_due"] == 600.0
        assert row["status"] == "sent"
        payment = gateway.rows("payments")[-1]
        assert payment["amount"] == 400.0
        assert payment["payment_method"] == "mobile_money"
        assert payment["reference_number"] == "OM-77"

    def test_full_payment_marks_paid(self, invoices):
        row = invoices.record_payment("inv-1", 1000)

        assert row["balance_due"] == 0.0
        assert row["status"] == "paid"

    def test_amount_must_be_positive(self, invoices):
        with pytest.raises(ValidationError):
            invoices.record_payment("inv-1", 0)

    def test_cancelled_invoice_rejects_payment(self, invoices):
        with pytest.raises(ValidationError):
            invoices.record_payment("inv-3", 10)

    def test_unknown_payment_method(self, invoices):
        with pytest.raises(ValidationError):
            invoices.record_payment("inv-1", 10, payment_method="barter")


# Tests for statements

class TestStatements:
    """Test customer statements."""

    def test_current_month_window(self):
        start, end = statement_window("current_month", TODAY)
        assert start.isoformat().startswith("2026-03-01T00:00:00")
        assert end.isoformat().startswith("2026-03-31T23:59:59")

    def test_last_three_months_crosses_year(self):
        start, _ = statement_window("last_3_months", datetime(2026, 2, 10, tzinfo=timezone.utc))
        assert (start.year, start.month, start.day) == (2025, 11, 1)

    def test_all_time_has_no_start(self):
        assert statement_window("all_time", TODAY)[0] is None

    def test_unknown_period(self):
        with pytest.raises(ValidationError):
            statement_window("fortnight", TODAY)

    def test_current_month_statement(self, invoices):
        statement = invoices.customer_statement("cust-1", "current_month", today=TODAY)

        assert statement["customer"]["name"] == "Ann Kamara"
        assert statement["total_jobs"] == 1
        assert [inv["id"] for inv in statement["invoices"]] == ["inv-1"]
        assert statement["total_invoiced"] == 1000.0
        assert statement["total_paid"] == 200.0
        assert statement["outstanding_balance"] == 800.0

    def test_all_time_statement(self, invoices):
        statement = invoices.customer_statement("cust-1", "all_time", today=TODAY)

        assert statement["start"] is None
        assert statement["total_jobs"] == 2
        assert statement["total_invoiced"] == 1500.0
        assert statement["total_paid"] == 700.0
        assert statement["outstanding_balance"] == 800.0

    def test_customer_without_invoices(self, invoices):
        statement = invoices.customer_statement("cust-2", "current_month", today=TODAY)
        assert statement["payments"] == []
