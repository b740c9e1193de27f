"""
Quote data models.

Lifecycle:
    requested -> reviewed|sent -> (approved | rejected | expired)
    approved -> converted

Conversion only marks the quote; no job row is created from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional


class QuoteStatus(Enum):
    """Where a quote is in its lifecycle."""

    REQUESTED = "requested"
    """Customer asked for a price."""

    REVIEWED = "reviewed"
    """Staff priced it; waiting for a decision."""

    SENT = "sent"
    """Priced quote sent to the customer; treated like reviewed."""

    APPROVED = "approved"
    """Accepted; may now be converted."""

    REJECTED = "rejected"
    """Declined. Terminal."""

    CONVERTED = "converted"
    """Turned into work. Terminal."""

    EXPIRED = "expired"
    """Validity window passed. Terminal."""

    @property
    def is_terminal(self) -> bool:
        return self in (QuoteStatus.REJECTED, QuoteStatus.CONVERTED, QuoteStatus.EXPIRED)


DEFAULT_VALIDITY_DAYS = 30


@dataclass
class Quote:
    """A priced proposal for a customer."""

    id: Any
    customer_id: str
    service_id: Any
    title: str
    status: str = QuoteStatus.REQUESTED.value
    description: Optional[str] = None
    quantity: int = 1
    width: Optional[float] = None
    length: Optional[float] = None
    delivery_method: str = "Collection"
    delivery_address: Optional[str] = None
    quoted_price: Optional[float] = None
    notes: Optional[str] = None
    validity_days: int = DEFAULT_VALIDITY_DAYS
    valid_until: Optional[str] = None
    reviewed_at: Optional[str] = None
    reviewed_by: Optional[str] = None
    converted_to_job_id: Optional[Any] = None
    created_at: Optional[str] = None

    @property
    def can_convert(self) -> bool:
        return self.status == QuoteStatus.APPROVED.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "service_id": self.service_id,
            "title": self.title,
            "status": self.status,
            "description": self.description,
            "quantity": self.quantity,
            "width": self.width,
            "length": self.length,
            "delivery_method": self.delivery_method,
            "delivery_address": self.delivery_address,
            "quoted_price": self.quoted_price,
            "notes": self.notes,
            "validity_days": self.validity_days,
            "valid_until": self.valid_until,
            "reviewed_at": self.reviewed_at,
            "reviewed_by": self.reviewed_by,
            "converted_to_job_id": self.converted_to_job_id,
            "created_at": self.created_at,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Quote":
        return cls(
            id=row.get("id"),
            customer_id=row.get("customer_id") or "",
            service_id=row.get("service_id"),
            title=row.get("title") or "",
            status=row.get("status") or QuoteStatus.REQUESTED.value,
            description=row.get("description"),
            quantity=row.get("quantity") or 1,
            width=row.get("width"),
            length=row.get("length"),
            delivery_method=row.get("delivery_method") or "Collection",
            delivery_address=row.get("delivery_address"),
            quoted_price=row.get("quoted_price"),
            notes=row.get("notes"),
            validity_days=row.get("validity_days") or DEFAULT_VALIDITY_DAYS,
            valid_until=row.get("valid_until"),
            reviewed_at=row.get("reviewed_at"),
            reviewed_by=row.get("reviewed_by"),
            converted_to_job_id=row.get("converted_to_job_id"),
            created_at=row.get("created_at"),
        )
