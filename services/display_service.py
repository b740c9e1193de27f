"""
Shop-floor display screens.

Read-only feeds for the TVs in the shop (production queue, collection
list, showcase carousel) plus slide management for admins. Customer
details shown on screens are limited to name and display id.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from core.exceptions import RemoteCallError, ValidationError
from core.gateway import DataGateway
from models.company import CompanySettings
from models.job import ACTIVE_STAGES, READY_STAGES, progress_percentage
from modules.validation import sanitize_text, storage_filename
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

SLIDES_BUCKET = "slides"
SLIDE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")

QUEUE_LIMIT = 10
READY_LIMIT = 5
JOBS_SCREEN_LIMIT = 20
FEATURED_SERVICES_LIMIT = 4

_SCREEN_COLUMNS = (
    "id, title, tracking_code, status, created_at, updated_at, estimated_completion, quantity, "
    "customers!jobs_customer_uuid_fkey(name, customer_display_id), services(name, service_type)"
)


def _screen_row(job: Dict[str, Any]) -> Dict[str, Any]:
    customer = job.get("customers") or {}
    return {
        "id": job.get("id"),
        "title": job.get("title"),
        "tracking_code": job.get("tracking_code"),
        "status": job.get("status"),
        "progress": round(progress_percentage(job.get("status")), 1),
        "customer_name": customer.get("name"),
        "customer_display_id": customer.get("customer_display_id"),
        "service": (job.get("services") or {}).get("name"),
        "created_at": job.get("created_at"),
        "updated_at": job.get("updated_at"),
        "estimated_completion": job.get("estimated_completion"),
    }


class DisplayService:
    """Feeds for the display screens and showcase slide management."""

    def __init__(self, gateway: DataGateway, currency_symbol: Optional[str] = None):
        self._gateway = gateway
        self._currency_symbol = currency_symbol

    def waiting_area(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Two lists for the waiting-area screen.

        queue: Pending through Finishing, oldest first
        ready: collection/delivery/completed, most recently updated first
        """
        queue = (self._gateway.table("jobs")
                 .select(_SCREEN_COLUMNS)
                 .in_("status", list(ACTIVE_STAGES))
                 .order("created_at", ascending=True)
                 .limit(QUEUE_LIMIT)
                 .execute()) or []
        ready = (self._gateway.table("jobs")
                 .select(_SCREEN_COLUMNS)
                 .in_("status", list(READY_STAGES))
                 .order("updated_at", ascending=False)
                 .limit(READY_LIMIT)
                 .execute()) or []
        return {"queue": [_screen_row(j) for j in queue], "ready": [_screen_row(j) for j in ready]}

    def jobs_screen(self) -> List[Dict[str, Any]]:
        jobs = (self._gateway.table("jobs")
                .select(_SCREEN_COLUMNS)
                .order("created_at", ascending=False)
                .limit(JOBS_SCREEN_LIMIT)
                .execute()) or []
        return [_screen_row(j) for j in jobs]

    def showcase(self) -> Dict[str, Any]:
        slides = self.list_slides()
        services = (self._gateway.table("services")
                    .select("id, name, description, base_price, image_url")
                    .eq("is_active", True)
                    .order("created_at", ascending=False)
                    .limit(FEATURED_SERVICES_LIMIT)
                    .execute()) or []
        return {"slides": slides, "services": services, "company": self.company_settings().to_dict()}

    # =========================================================================
    # SLIDES
    # =========================================================================

    def list_slides(self) -> List[Dict[str, Any]]:
        return (self._gateway.table("showcase_slides")
                .select("*")
                .order("uploaded_at", ascending=False)
                .execute()) or []

    def upload_slide(self, filename: str, content_type: str, data: bytes,
                     title: Optional[str] = None) -> Dict[str, Any]:
        """Store the image and record a slide pointing at its public URL."""
        if content_type not in SLIDE_TYPES:
            raise ValidationError("Slides must be JPEG, PNG, GIF or WebP images", field="file")
        if not data:
            raise ValidationError("File is empty", field="file")

        path = storage_filename(filename, prefix="slides").split("/", 1)[1]
        bucket = self._gateway.storage(SLIDES_BUCKET)
        bucket.upload(path, data, content_type)

        slide = self._gateway.table("showcase_slides").insert({
            "title": sanitize_text(title, max_length=200) or filename,
            "file_path": bucket.public_url(path),
        })[0]
        logger.info(f"Showcase slide {slide.get('id')} uploaded ({path})")
        return slide

    def delete_slide(self, slide_id: Any) -> None:
        """Remove the slide row and its stored image."""
        slide = (self._gateway.table("showcase_slides")
                 .select("id, file_path")
                 .eq("id", slide_id)
                 .single()
                 .execute())
        object_name = (slide.get("file_path") or "").rsplit("/", 1)[-1]
        if object_name:
            try:
                self._gateway.storage(SLIDES_BUCKET).remove([object_name])
            except RemoteCallError as e:
                logger.warning(f"Could not remove slide image {object_name}: {e}")
        self._gateway.table("showcase_slides").eq("id", slide_id).delete()
        logger.info(f"Showcase slide {slide_id} deleted")

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def company_settings(self) -> CompanySettings:
        """Company settings row, or the defaults when missing or unreadable."""
        try:
            row = self._gateway.table("company_settings").select("*").limit(1).maybe_single().execute()
        except RemoteCallError as e:
            logger.warning(f"Company settings unavailable, using defaults: {e}")
            row = None
        return CompanySettings.from_row(row, currency_symbol=self._currency_symbol)

    def update_company_settings(self, changes: Dict[str, Any]) -> CompanySettings:
        allowed = set(CompanySettings.__dataclass_fields__)
        updates = {
            key: sanitize_text(value, max_length=500) if isinstance(value, str) else value
            for key, value in changes.items()
            if key in allowed
        }
        current = self._gateway.table("company_settings").select("id").limit(1).maybe_single().execute()
        if current:
            rows = self._gateway.table("company_settings").eq("id", current["id"]).update(updates)
        else:
            rows = self._gateway.table("company_settings").insert(updates)
        logger.info(f"Company settings updated: {sorted(updates)}")
        return CompanySettings.from_row(rows[0] if rows else None, currency_symbol=self._currency_symbol)
