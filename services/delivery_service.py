"""
Delivery schedules.

Scheduling and each status change notify the job's customer by email.
Notification failures are logged and never undo the schedule change.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from core.exceptions import NotFoundError, ValidationError
from core.gateway import DataGateway
from core.timeutil import iso_now
from models.notification import Channel, NotificationEvent, NotificationRequest, NotificationResult
from modules.validation import collect, sanitize_text, validate_number, validate_required
from services.notification_service import NotificationDispatcher
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

DELIVERY_STATUSES = ("scheduled", "in_transit", "delivered", "failed", "cancelled")

SCHEDULE_COLUMNS = (
    "job_id", "scheduled_date", "delivery_method", "delivery_address",
    "delivery_contact_name", "delivery_contact_phone", "delivery_instructions",
    "tracking_number", "delivery_fee", "estimated_delivery_time",
    "assigned_driver_id", "delivery_notes",
)


def status_message(status: str, job_title: str, tracking_code: str) -> str:
    """Customer-facing text for a delivery status."""
    label = f'"{job_title}" ({tracking_code})'
    if status == "in_transit":
        return f"Your job {label} is now in transit for delivery."
    if status == "delivered":
        return f"Your job {label} has been successfully delivered."
    if status == "failed":
        return f"Delivery attempt for your job {label} was unsuccessful. We will contact you to reschedule."
    return f"Your job {label} delivery status has been updated to: {status}."


class DeliveryService:
    """Schedule deliveries and move them through their statuses."""

    def __init__(self, gateway: DataGateway, dispatcher: NotificationDispatcher):
        self._gateway = gateway
        self._dispatcher = dispatcher

    def list_schedules(self, job_id: Optional[Any] = None) -> List[Dict[str, Any]]:
        query = (self._gateway.table("delivery_schedules")
                 .select("*, jobs(id, title, tracking_code, customer_uuid)")
                 .order("scheduled_date", ascending=False))
        if job_id is not None:
            query = query.eq("job_id", job_id)
        return query.execute() or []

    def schedule(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a delivery schedule and tell the customer.

        Raises:
            ValidationError: Missing job or date, bad fee
        """
        errors = [
            validate_required(data.get("job_id"), "Job"),
            validate_required(data.get("scheduled_date"), "Scheduled date"),
        ]
        if data.get("delivery_fee") not in (None, ""):
            errors.append(validate_number(data["delivery_fee"], "Delivery fee", minimum=0))
        collect(errors)

        row = {
            column: sanitize_text(data[column], max_length=500) if isinstance(data[column], str) else data[column]
            for column in SCHEDULE_COLUMNS
            if data.get(column) not in (None, "")
        }
        row["delivery_status"] = "scheduled"

        schedule = self._gateway.table("delivery_schedules").insert(row)[0]
        logger.info(f"Delivery {schedule.get('id')} scheduled for job {row['job_id']}")

        job = self._job(row["job_id"])
        if job and job.get("customer_uuid"):
            self._dispatcher.notify_quietly(self._dispatcher.delivery_update(
                job["customer_uuid"], schedule.get("id"), job.get("title") or "", completed=False,
            ))
        return schedule

    def update_status(self, schedule_id: Any, status: str) -> Dict[str, Any]:
        """
        Change a schedule's status and email the customer.

        Returns:
            ``{"schedule": row, "notification": result or None}``
        """
        if status not in DELIVERY_STATUSES:
            raise ValidationError(f"Unknown delivery status: {status}", field="delivery_status")

        current = (self._gateway.table("delivery_schedules")
                   .select("id, delivery_status, jobs(id, title, tracking_code, customer_uuid)")
                   .eq("id", schedule_id)
                   .single()
                   .execute())

        updates: Dict[str, Any] = {"delivery_status": status, "updated_at": iso_now()}
        if status == "delivered":
            updates["actual_delivery_time"] = iso_now()
        rows = self._gateway.table("delivery_schedules").eq("id", schedule_id).update(updates)
        if not rows:
            raise NotFoundError("update:delivery_schedules", f"Delivery schedule {schedule_id} not found")
        logger.info(f"Delivery {schedule_id}: {current.get('delivery_status')} -> {status}")

        notification: Optional[NotificationResult] = None
        job = current.get("jobs") or {}
        if job.get("customer_uuid"):
            notification = self._dispatcher.notify_quietly(NotificationRequest(
                customer_id=job["customer_uuid"],
                event=NotificationEvent.DELIVERY_STATUS_UPDATE,
                channel=Channel.EMAIL,
                subject="Delivery Status Update",
                message=status_message(status, job.get("title") or "", job.get("tracking_code") or ""),
                delivery_schedule_id=schedule_id,
            ))

        return {"schedule": rows[0], "notification": notification.to_dict() if notification else None}

    def delete(self, schedule_id: Any) -> None:
        self._gateway.table("delivery_schedules").eq("id", schedule_id).delete()
        logger.info(f"Delivery schedule {schedule_id} deleted")

    def _job(self, job_id: Any) -> Optional[Dict[str, Any]]:
        return (self._gateway.table("jobs")
                .select("id, title, tracking_code, customer_uuid")
                .eq("id", job_id)
                .maybe_single()
                .execute())
