"""
Invoice data models.

Totals are derived from the line items:
    subtotal = sum(quantity * unit_price)
    tax      = subtotal * tax_rate / 100
    total    = subtotal + tax - discount
    balance  = total - paid
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Any, List, Optional


class InvoiceStatus(Enum):
    """Payment status of an invoice."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CASH = "cash"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"


def _money(value: Any) -> float:
    """Round to cents, half up."""
    return float(Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


@dataclass
class InvoiceItem:
    """One billed line."""

    description: str
    quantity: float = 1
    unit_price: float = 0.0
    job_id: Optional[Any] = None

    @property
    def total_price(self) -> float:
        return _money(Decimal(str(self.quantity)) * Decimal(str(self.unit_price)))

    def to_row(self, invoice_id: Any = None) -> Dict[str, Any]:
        row = {
            "description": self.description,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }
        if self.job_id is not None:
            row["job_id"] = self.job_id
        if invoice_id is not None:
            row["invoice_id"] = invoice_id
        return row

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceItem":
        return cls(
            description=data.get("description") or "",
            quantity=data.get("quantity") or 1,
            unit_price=float(data.get("unit_price") or 0.0),
            job_id=data.get("job_id"),
        )


@dataclass
class InvoiceTotals:
    """Money columns of an invoice, all rounded to cents."""

    subtotal: float
    tax_rate: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    paid_amount: float
    balance_due: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": self.subtotal,
            "tax_rate": self.tax_rate,
            "tax_amount": self.tax_amount,
            "discount_amount": self.discount_amount,
            "total_amount": self.total_amount,
            "paid_amount": self.paid_amount,
            "balance_due": self.balance_due,
        }


def compute_totals(
    items: List[InvoiceItem],
    tax_rate: float = 0.0,
    discount: float = 0.0,
    paid: float = 0.0,
) -> InvoiceTotals:
    """
    Derive the money columns from line items.

    ``tax_rate`` is a percentage (15 means 15%).
    """
    subtotal = sum((Decimal(str(item.total_price)) for item in items), Decimal("0"))
    tax = subtotal * Decimal(str(tax_rate or 0)) / Decimal("100")
    total = subtotal + tax - Decimal(str(discount or 0))
    balance = total - Decimal(str(paid or 0))
    return InvoiceTotals(
        subtotal=_money(subtotal),
        tax_rate=float(tax_rate or 0),
        tax_amount=_money(tax),
        discount_amount=_money(discount),
        total_amount=_money(total),
        paid_amount=_money(paid),
        balance_due=_money(balance),
    )


@dataclass
class Invoice:
    """Billing record with its line items."""

    id: Any
    invoice_number: str
    customer_id: str
    status: str = InvoiceStatus.DRAFT.value
    job_id: Optional[Any] = None
    quote_id: Optional[Any] = None
    issued_date: Optional[str] = None
    due_date: Optional[str] = None
    notes: Optional[str] = None
    items: List[InvoiceItem] = field(default_factory=list)
    totals: Optional[InvoiceTotals] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Invoice":
        items = [InvoiceItem.from_dict(i) for i in row.get("invoice_items") or []]
        totals = InvoiceTotals(
            subtotal=float(row.get("subtotal") or 0),
            tax_rate=float(row.get("tax_rate") or 0),
            tax_amount=float(row.get("tax_amount") or 0),
            discount_amount=float(row.get("discount_amount") or 0),
            total_amount=float(row.get("total_amount") or 0),
            paid_amount=float(row.get("paid_amount") or 0),
            balance_due=float(
                row["balance_due"] if row.get("balance_due") is not None
                else (row.get("total_amount") or 0) - (row.get("paid_amount") or 0)
            ),
        )
        return cls(
            id=row.get("id"),
            invoice_number=row.get("invoice_number") or "",
            customer_id=row.get("customer_id") or "",
            status=row.get("status") or InvoiceStatus.DRAFT.value,
            job_id=row.get("job_id"),
            quote_id=row.get("quote_id"),
            issued_date=row.get("issued_date"),
            due_date=row.get("due_date"),
            notes=row.get("notes"),
            items=items,
            totals=totals,
        )
