"""
Quote lifecycle.

    requested --review--> reviewed --approve--> approved --convert--> converted
        |                     |                     |
        +------approve--------+                     |
        +------reject---------+------reject---------+
        +------expire---------+------expire---------+

A quote marked "sent" (priced and sent to the customer) moves like a
reviewed one. Any other status refuses every action.

Converting only changes the quote's status. No job row is created; staff
enter the job separately if the customer goes ahead.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List, Optional

from core.exceptions import NotFoundError, ValidationError
from core.gateway import DataGateway
from core.timeutil import iso_now, utc_now
from models.job import DeliveryMethod
from models.quote import DEFAULT_VALIDITY_DAYS, Quote, QuoteStatus
from modules.validation import (
    collect,
    sanitize_text,
    validate_number,
    validate_required,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

QUOTE_COLUMNS = "*, customers(name, customer_display_id, email, phone, address), services(name, service_type)"

# Statuses each action may start from
_OPEN = (QuoteStatus.REQUESTED, QuoteStatus.REVIEWED, QuoteStatus.SENT)
_ALLOWED_FROM = {
    QuoteStatus.REVIEWED: _OPEN,
    QuoteStatus.APPROVED: _OPEN,
    QuoteStatus.REJECTED: _OPEN + (QuoteStatus.APPROVED,),
    QuoteStatus.EXPIRED: _OPEN + (QuoteStatus.APPROVED,),
    QuoteStatus.CONVERTED: (QuoteStatus.APPROVED,),
}


class QuoteService:
    """Request, price, decide and convert quotes."""

    def __init__(self, gateway: DataGateway):
        self._gateway = gateway

    def list_quotes(self, status: Optional[str] = None, customer_id: Optional[str] = None) -> List[Quote]:
        query = self._gateway.table("quotes").select(QUOTE_COLUMNS).order("created_at", ascending=False)
        if status:
            query = query.eq("status", status)
        if customer_id:
            query = query.eq("customer_id", customer_id)
        return [Quote.from_row(row) for row in query.execute() or []]

    def get_quote_row(self, quote_id: Any) -> Dict[str, Any]:
        """Quote with its customer and service embedded, for documents."""
        return (self._gateway.table("quotes")
                .select(QUOTE_COLUMNS)
                .eq("id", quote_id)
                .single()
                .execute())

    def get_quote(self, quote_id: Any) -> Quote:
        return Quote.from_row(self.get_quote_row(quote_id))

    def request_quote(self, customer_id: str, data: Dict[str, Any]) -> Quote:
        """
        Record a customer's request for a price.

        Raises:
            ValidationError: Missing title/service or bad numbers
        """
        title = sanitize_text(data.get("title"), max_length=200)
        delivery_method = data.get("delivery_method") or DeliveryMethod.COLLECTION.value
        errors = [
            validate_required(customer_id, "Customer"),
            validate_required(title, "Title"),
            validate_required(data.get("service_id"), "Service"),
            validate_number(data.get("quantity", 1), "Quantity", minimum=1),
        ]
        for dimension in ("width", "length"):
            if data.get(dimension) not in (None, ""):
                errors.append(validate_number(data[dimension], dimension.title(), minimum=0))
        try:
            needs_address = DeliveryMethod(delivery_method).needs_address
        except ValueError:
            errors.append(f"Unknown delivery method: {delivery_method}")
        else:
            if needs_address and not data.get("delivery_address"):
                errors.append("Delivery address is required for delivery orders")
        collect(errors)

        validity_days = int(data.get("validity_days") or DEFAULT_VALIDITY_DAYS)
        row = {
            "customer_id": customer_id,
            "service_id": data.get("service_id"),
            "title": title,
            "description": sanitize_text(data.get("description")) or None,
            "quantity": int(float(data.get("quantity", 1))),
            "width": float(data["width"]) if data.get("width") not in (None, "") else None,
            "length": float(data["length"]) if data.get("length") not in (None, "") else None,
            "delivery_method": delivery_method,
            "delivery_address": sanitize_text(data.get("delivery_address"), max_length=500) or None,
            "notes": sanitize_text(data.get("notes")) or None,
            "status": QuoteStatus.REQUESTED.value,
            "validity_days": validity_days,
            "valid_until": (utc_now() + timedelta(days=validity_days)).date().isoformat(),
        }
        rows = self._gateway.table("quotes").insert(row)
        quote = Quote.from_row(rows[0])
        logger.info(f"Quote {quote.id} requested by customer {customer_id}")
        return quote

    def review_quote(self, quote_id: Any, price: Any, reviewed_by: Optional[str] = None) -> Quote:
        """Price a quote; it waits for a decision afterwards."""
        collect([validate_number(price, "Quoted price", minimum=0)])
        return self._transition(
            quote_id, QuoteStatus.REVIEWED,
            {"quoted_price": float(price), "reviewed_by": reviewed_by},
        )

    def approve(self, quote_id: Any, price: Any = None, reviewed_by: Optional[str] = None) -> Quote:
        extra: Dict[str, Any] = {"reviewed_by": reviewed_by}
        if price not in (None, ""):
            collect([validate_number(price, "Quoted price", minimum=0)])
            extra["quoted_price"] = float(price)
        return self._transition(quote_id, QuoteStatus.APPROVED, extra)

    def reject(self, quote_id: Any, reviewed_by: Optional[str] = None) -> Quote:
        return self._transition(quote_id, QuoteStatus.REJECTED, {"reviewed_by": reviewed_by})

    def expire(self, quote_id: Any) -> Quote:
        return self._transition(quote_id, QuoteStatus.EXPIRED, {})

    def convert(self, quote_id: Any) -> Quote:
        """
        Mark an approved quote as converted.

        Raises:
            ValidationError: The quote is not approved
        """
        return self._transition(quote_id, QuoteStatus.CONVERTED, {})

    def expire_overdue(self, today: Optional[str] = None) -> int:
        """Expire open quotes whose valid_until is before ``today``."""
        today = today or utc_now().date().isoformat()
        open_statuses = [s.value for s in _ALLOWED_FROM[QuoteStatus.EXPIRED]]
        rows = (self._gateway.table("quotes")
                .in_("status", open_statuses)
                .lt("valid_until", today)
                .update({"status": QuoteStatus.EXPIRED.value, "updated_at": iso_now()})) or []
        if rows:
            logger.info(f"Expired {len(rows)} quotes past their validity date")
        return len(rows)

    def _transition(self, quote_id: Any, target: QuoteStatus, extra: Dict[str, Any]) -> Quote:
        current = self.get_quote(quote_id)
        allowed = _ALLOWED_FROM[target]
        if current.status not in {s.value for s in allowed}:
            raise ValidationError(
                f"Cannot mark a {current.status} quote as {target.value}",
                errors=[f"Quote must be {' or '.join(s.value for s in allowed)}"],
                field="status",
            )

        now = iso_now()
        updates: Dict[str, Any] = {"status": target.value, "updated_at": now}
        if target in (QuoteStatus.REVIEWED, QuoteStatus.APPROVED, QuoteStatus.REJECTED):
            updates["reviewed_at"] = now
        updates.update({key: value for key, value in extra.items() if value is not None})

        rows = self._gateway.table("quotes").eq("id", quote_id).update(updates)
        if not rows:
            raise NotFoundError("update:quotes", f"Quote {quote_id} not found")
        logger.info(f"Quote {quote_id}: {current.status} -> {target.value}")
        return Quote.from_row(rows[0])
