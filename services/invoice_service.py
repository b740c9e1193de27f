"""
Invoices, payments and customer statements.

Money columns are always recomputed from the line items with
compute_totals() before they are written, so the stored subtotal, tax,
total and balance agree with the items.
"""

from __future__ import annotations

import calendar
import secrets
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import NotFoundError, ValidationError
from core.gateway import DataGateway
from core.timeutil import iso_now, utc_now
from models.invoice import (
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    PaymentMethod,
    compute_totals,
)
from modules.validation import collect, sanitize_text, validate_number, validate_required
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

INVOICE_COLUMNS = (
    "*, customers(name, customer_display_id, email, phone, address), "
    "invoice_items(description, quantity, unit_price, total_price, job_id)"
)

STATEMENT_PERIODS = ("current_month", "last_3_months", "last_6_months", "all_time")


def generate_invoice_number(now: Optional[datetime] = None) -> str:
    """``INV-YYYYMMDD-XXXX``."""
    now = now or utc_now()
    return f"INV-{now:%Y%m%d}-{secrets.token_hex(2).upper()}"


def statement_window(period: str, today: datetime) -> Tuple[Optional[datetime], datetime]:
    """
    (start, end) of a statement period.

    Periods run from the first of a month to the end of the current month.
    ``all_time`` has no start.
    """
    if period not in STATEMENT_PERIODS:
        raise ValidationError(f"Unknown statement period: {period}", field="period")

    last_day = calendar.monthrange(today.year, today.month)[1]
    end = today.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999000)
    if period == "all_time":
        return None, end

    months_back = {"current_month": 0, "last_3_months": 3, "last_6_months": 6}[period]
    month_index = today.month - 1 - months_back
    start = today.replace(
        year=today.year + month_index // 12,
        month=month_index % 12 + 1,
        day=1, hour=0, minute=0, second=0, microsecond=0,
    )
    return start, end


class InvoiceService:
    """Create invoices, record payments, build statements."""

    def __init__(self, gateway: DataGateway, default_tax_rate: float = 0.0):
        self._gateway = gateway
        self._default_tax_rate = default_tax_rate

    # =========================================================================
    # READS
    # =========================================================================

    def list_invoices(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Invoices newest first.

        ``search`` matches the invoice number or the customer's name,
        case-insensitively.
        """
        query = (self._gateway.table("invoices")
                 .select("*, customers(name, customer_display_id)")
                 .order("created_at", ascending=False))
        if status and status != "all":
            query = query.eq("status", status)
        if customer_id:
            query = query.eq("customer_id", customer_id)
        rows = query.execute() or []

        term = (search or "").strip().lower()
        if not term:
            return rows
        return [
            row for row in rows
            if term in (row.get("invoice_number") or "").lower()
            or term in ((row.get("customers") or {}).get("name") or "").lower()
        ]

    def get_invoice_row(self, invoice_id: Any) -> Dict[str, Any]:
        """Invoice with customer and items embedded, for documents."""
        return (self._gateway.table("invoices")
                .select(INVOICE_COLUMNS)
                .eq("id", invoice_id)
                .single()
                .execute())

    def get_invoice(self, invoice_id: Any) -> Invoice:
        return Invoice.from_row(self.get_invoice_row(invoice_id))

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_invoice(
        self,
        customer_id: str,
        items: List[Dict[str, Any]],
        tax_rate: Optional[float] = None,
        discount: float = 0.0,
        job_id: Optional[Any] = None,
        quote_id: Optional[Any] = None,
        due_date: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Invoice:
        """
        Insert an invoice and its items as a draft.

        Raises:
            ValidationError: No customer, no items, or bad item numbers
        """
        errors = [validate_required(customer_id, "Customer")]
        if not items:
            errors.append("At least one line item is required")
        for position, item in enumerate(items or [], start=1):
            errors.append(validate_required(item.get("description"), f"Item {position} description"))
            errors.append(validate_number(item.get("quantity", 1), f"Item {position} quantity", minimum=0))
            errors.append(validate_number(item.get("unit_price", 0), f"Item {position} unit price", minimum=0))
        errors.append(validate_number(discount, "Discount", minimum=0))
        collect(errors)

        line_items = [
            InvoiceItem(
                description=sanitize_text(item.get("description"), max_length=500),
                quantity=float(item.get("quantity", 1)),
                unit_price=float(item.get("unit_price", 0)),
                job_id=item.get("job_id"),
            )
            for item in items
        ]
        rate = self._default_tax_rate if tax_rate is None else float(tax_rate)
        totals = compute_totals(line_items, tax_rate=rate, discount=float(discount or 0))

        row = {
            "invoice_number": generate_invoice_number(),
            "customer_id": customer_id,
            "job_id": job_id,
            "quote_id": quote_id,
            "status": InvoiceStatus.DRAFT.value,
            "issued_date": utc_now().date().isoformat(),
            "due_date": due_date,
            "notes": sanitize_text(notes) or None,
            "created_by": created_by,
        }
        row.update(totals.to_dict())

        invoice_row = self._gateway.table("invoices").insert(row)[0]
        self._gateway.table("invoice_items").insert(
            [item.to_row(invoice_row["id"]) for item in line_items]
        )
        logger.info(f"Invoice {invoice_row['invoice_number']} created for customer {customer_id} "
                    f"({totals.total_amount:.2f})")

        invoice_row["invoice_items"] = [item.to_row() for item in line_items]
        return Invoice.from_row(invoice_row)

    def update_status(self, invoice_id: Any, status: str) -> Dict[str, Any]:
        try:
            InvoiceStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown invoice status: {status}", field="status")

        rows = (self._gateway.table("invoices")
                .eq("id", invoice_id)
                .update({"status": status, "updated_at": iso_now()}))
        if not rows:
            raise NotFoundError("update:invoices", f"Invoice {invoice_id} not found")
        logger.info(f"Invoice {invoice_id} marked {status}")
        return rows[0]

    def record_payment(
        self,
        invoice_id: Any,
        amount: Any,
        payment_method: str = PaymentMethod.CASH.value,
        reference_number: Optional[str] = None,
        recorded_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Record a payment against an invoice.

        The paid amount goes up by ``amount``; once the balance is zero or
        less the invoice is marked paid.

        Returns:
            The updated invoice row
        """
        collect([validate_number(amount, "Amount", minimum=0.01)])
        try:
            PaymentMethod(payment_method)
        except ValueError:
            raise ValidationError(f"Unknown payment method: {payment_method}", field="payment_method")

        invoice = self.get_invoice(invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise ValidationError("Cannot record a payment on a cancelled invoice", field="status")

        amount = float(amount)
        self._gateway.table("payments").insert({
            "invoice_id": invoice_id,
            "amount": amount,
            "payment_method": payment_method,
            "payment_date": utc_now().date().isoformat(),
            "reference_number": sanitize_text(reference_number, max_length=100) or None,
            "recorded_by": recorded_by,
        })

        totals = compute_totals(
            invoice.items,
            tax_rate=invoice.totals.tax_rate,
            discount=invoice.totals.discount_amount,
            paid=invoice.totals.paid_amount + amount,
        )
        updates: Dict[str, Any] = {
            "paid_amount": totals.paid_amount,
            "balance_due": totals.balance_due,
            "updated_at": iso_now(),
        }
        if totals.balance_due <= 0:
            updates["status"] = InvoiceStatus.PAID.value

        rows = self._gateway.table("invoices").eq("id", invoice_id).update(updates)
        if not rows:
            raise NotFoundError("update:invoices", f"Invoice {invoice_id} not found")
        logger.info(f"Payment of {amount:.2f} recorded on invoice {invoice_id} "
                    f"(balance {totals.balance_due:.2f})")
        return rows[0]

    # =========================================================================
    # STATEMENTS
    # =========================================================================

    def customer_statement(self, customer_id: str, period: str = "current_month",
                           today: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Jobs, invoices and payments for one customer over a period.

        totalInvoiced is the sum of invoice totals, totalPaid the sum of
        payments, outstanding the difference.
        """
        start, end = statement_window(period, today or utc_now())

        customer = (self._gateway.table("customers")
                    .select("id, name, email, phone, address, customer_display_id, created_at")
                    .eq("id", customer_id)
                    .single()
                    .execute())

        def windowed(query):
            if start is not None:
                query = query.gte("created_at", start.isoformat())
            return query.lte("created_at", end.isoformat()).order("created_at", ascending=False)

        jobs = windowed(self._gateway.table("jobs")
                        .select("*, services(name)")
                        .eq("customer_uuid", customer_id)).execute() or []
        invoices = windowed(self._gateway.table("invoices")
                            .select("*")
                            .eq("customer_id", customer_id)).execute() or []

        all_invoice_ids = [
            row["id"] for row in
            (self._gateway.table("invoices").select("id").eq("customer_id", customer_id).execute() or [])
        ]
        payments: List[Dict[str, Any]] = []
        if all_invoice_ids:
            payments = windowed(self._gateway.table("payments")
                                .select("*")
                                .in_("invoice_id", all_invoice_ids)).execute() or []

        total_invoiced = sum(float(inv.get("total_amount") or 0) for inv in invoices)
        total_paid = sum(float(pay.get("amount") or 0) for pay in payments)

        return {
            "customer": customer,
            "period": period,
            "start": start.isoformat() if start else None,
            "end": end.isoformat(),
            "jobs": jobs,
            "invoices": invoices,
            "payments": payments,
            "total_jobs": len(jobs),
            "total_invoiced": total_invoiced,
            "total_paid": total_paid,
            "outstanding_balance": total_invoiced - total_paid,
        }
