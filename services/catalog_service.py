"""
Service catalog.

Services are never hard-deleted because jobs and quotes reference them;
deactivate() hides a service from new orders instead.
"""

from __future__ import annotations

from typing import Any, Dict, List

from core.exceptions import NotFoundError
from core.gateway import DataGateway
from core.timeutil import iso_now
from models.catalog import DEFAULT_SERVICES, FINISHING_OPTIONS, Service
from modules.validation import collect, sanitize_text, validate_number, validate_required
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

LIST_COLUMNS = ("available_subtypes", "available_paper_types", "available_paper_weights", "available_finishes")


class CatalogService:
    """Reads and edits the ``services`` table."""

    def __init__(self, gateway: DataGateway):
        self._gateway = gateway

    def list_active(self) -> List[Service]:
        rows = (self._gateway.table("services")
                .select("*")
                .eq("is_active", True)
                .order("name")
                .execute()) or []
        return [Service.from_row(row) for row in rows]

    def get(self, service_id: Any) -> Service:
        row = self._gateway.table("services").select("*").eq("id", service_id).single().execute()
        return Service.from_row(row)

    def create(self, data: Dict[str, Any]) -> Service:
        row = self._clean(data)
        collect([
            validate_required(row.get("name"), "Name"),
            validate_number(row.get("base_price", 0), "Base price", minimum=0),
        ] + self._finish_errors(row))
        row.setdefault("is_active", True)

        created = Service.from_row(self._gateway.table("services").insert(row)[0])
        logger.info(f"Service {created.name} added to catalog")
        return created

    def update(self, service_id: Any, changes: Dict[str, Any]) -> Service:
        row = self._clean(changes)
        errors = self._finish_errors(row)
        if "base_price" in row:
            errors.append(validate_number(row["base_price"], "Base price", minimum=0))
        collect(errors)
        row["updated_at"] = iso_now()

        rows = self._gateway.table("services").eq("id", service_id).update(row)
        if not rows:
            raise NotFoundError("update:services", f"Service {service_id} not found")
        return Service.from_row(rows[0])

    def deactivate(self, service_id: Any) -> Service:
        """Soft delete: the row stays, is_active goes false."""
        service = self.update(service_id, {"is_active": False})
        logger.info(f"Service {service_id} deactivated")
        return service

    def initialize_defaults(self) -> int:
        """
        Seed the default services into an empty catalog.

        Returns:
            Number of services inserted (0 when the catalog already has rows)
        """
        existing = self._gateway.table("services").select("id").limit(1).execute() or []
        if existing:
            logger.debug("Service catalog already populated; skipping defaults")
            return 0

        rows = [service.to_row() for service in DEFAULT_SERVICES]
        self._gateway.table("services").insert(rows)
        logger.info(f"Initialized catalog with {len(rows)} default services")
        return len(rows)

    @staticmethod
    def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
        row: Dict[str, Any] = {}
        for column in ("name", "description", "service_type", "image_url"):
            if column in data:
                row[column] = sanitize_text(data[column], max_length=500) or None
        if "base_price" in data:
            row["base_price"] = data["base_price"]
            if validate_number(data["base_price"], "Base price") is None:
                row["base_price"] = float(data["base_price"])
        for column in ("requires_dimensions", "is_active"):
            if column in data:
                row[column] = bool(data[column])
        for column in LIST_COLUMNS:
            if column in data:
                row[column] = [sanitize_text(v, max_length=100) for v in data[column] or []]
        return row

    @staticmethod
    def _finish_errors(row: Dict[str, Any]) -> List[Any]:
        unknown = [f for f in row.get("available_finishes") or [] if f not in FINISHING_OPTIONS]
        return [f"Unknown finishing option: {f}" for f in unknown]
