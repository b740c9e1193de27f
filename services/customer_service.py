"""Customer records: search, lookup, create and edit."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from core.exceptions import NotFoundError
from core.gateway import DataGateway
from core.timeutil import iso_now
from modules.validation import (
    collect,
    sanitize_text,
    validate_email,
    validate_length,
    validate_phone,
    validate_required,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

EDITABLE_COLUMNS = frozenset({"name", "email", "phone", "address"})

# Characters with meaning inside a PostgREST or=(...) expression
_OR_RESERVED = str.maketrans({",": " ", "(": " ", ")": " ", "%": " ", "*": " "})


class CustomerService:
    """Customer CRUD over the ``customers`` table."""

    def __init__(self, gateway: DataGateway):
        self._gateway = gateway

    def list_customers(self, limit: Optional[int] = None, offset: Optional[int] = None) -> List[Dict[str, Any]]:
        query = self._gateway.table("customers").select("*").order("created_at", ascending=False)
        if offset:
            query = query.range(offset, offset + (limit or 10) - 1)
        elif limit:
            query = query.limit(limit)
        return query.execute() or []

    def search(self, term: str) -> List[Dict[str, Any]]:
        """
        Case-insensitive substring match on name, email or display id.

        A customer matching on several fields appears once. Results are
        ordered by name. An empty term lists everyone.
        """
        cleaned = sanitize_text(term, max_length=100).translate(_OR_RESERVED).strip()
        query = self._gateway.table("customers").select("*")
        if cleaned:
            pattern = f"%{cleaned}%"
            query = query.or_(
                f"name.ilike.{pattern},email.ilike.{pattern},customer_display_id.ilike.{pattern}"
            )
        return query.order("name").execute() or []

    def get(self, customer_id: str) -> Dict[str, Any]:
        return self._gateway.table("customers").select("*").eq("id", customer_id).single().execute()

    def get_by_display_id(self, display_id: str) -> Dict[str, Any]:
        return (self._gateway.table("customers")
                .select("*")
                .eq("customer_display_id", display_id.strip().upper())
                .single()
                .execute())

    def get_by_auth_user_id(self, auth_user_id: str) -> Optional[Dict[str, Any]]:
        """The customer row linked to a login, or None for staff accounts."""
        return (self._gateway.table("customers")
                .select("*")
                .eq("auth_user_id", auth_user_id)
                .maybe_single()
                .execute())

    def create(self, data: Dict[str, Any], created_by: Optional[str] = None) -> Dict[str, Any]:
        """
        Add a customer. The display id is assigned by the platform.

        Raises:
            ValidationError: Missing name/email or bad formats
        """
        record = self._clean(data)
        errors = [
            validate_required(record.get("name"), "Name"),
            validate_required(record.get("email"), "Email"),
        ]
        errors.extend(self._format_errors(record))
        collect(errors)

        if data.get("auth_user_id"):
            record["auth_user_id"] = data["auth_user_id"]
        if created_by:
            record["created_by"] = created_by

        row = self._gateway.table("customers").insert(record)[0]
        logger.info(f"Customer {row.get('customer_display_id') or row.get('id')} created")
        return row

    def update(self, customer_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        record = self._clean({k: v for k, v in changes.items() if k in EDITABLE_COLUMNS})
        collect(self._format_errors(record))
        record["updated_at"] = iso_now()

        rows = self._gateway.table("customers").eq("id", customer_id).update(record)
        if not rows:
            raise NotFoundError("update:customers", f"Customer {customer_id} not found")
        return rows[0]

    @staticmethod
    def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
        record = {}
        for column in EDITABLE_COLUMNS:
            if column in data:
                record[column] = sanitize_text(data.get(column), max_length=500) or None
        if record.get("email"):
            record["email"] = record["email"].lower()
        return record

    @staticmethod
    def _format_errors(record: Dict[str, Any]) -> List[Optional[str]]:
        errors: List[Optional[str]] = []
        if record.get("name"):
            errors.append(validate_length(record["name"], 2, 100, "Name"))
        if record.get("email") and not validate_email(record["email"]):
            errors.append("Please enter a valid email address")
        if record.get("phone") and not validate_phone(record["phone"]):
            errors.append("Please enter a valid phone number")
        return errors
