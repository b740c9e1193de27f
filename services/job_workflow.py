"""
Job status workflow.

Jobs are plain rows on the platform; this service is the only place that
writes them. A status change is a single-row update followed by
best-effort side effects:

    1. UPDATE jobs SET status, current_status, updated_at
       (+ actual_completion when the new status is Completed)
    2. notify the customer (status_updated)        - failure logged only
    3. record a job_completed analytics event       - failure logged only

There is no transition guard: any stage may be set at any time so staff
can correct mistakes. Concurrent writers overwrite each other (last write
wins). If step 1 fails nothing else happens and the prior status stands.

Usage:
    workflow = JobWorkflow(gateway, dispatcher, analytics)

    change = workflow.update_status(42, "Printing")
    change.job.progress          # 44.4
    change.notification.success  # False if the email bounced
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.exceptions import NotFoundError, RemoteCallError, ValidationError
from core.gateway import DataGateway
from core.timeutil import iso_now, utc_now
from models.job import (
    DeliveryMethod,
    Job,
    JobStatus,
    JOB_STAGES,
    stage_index,
)
from models.notification import NotificationResult
from modules.validation import (
    collect,
    sanitize_text,
    storage_filename,
    validate_length,
    validate_number,
    validate_required,
    validate_upload,
)
from services.analytics_service import AnalyticsService
from services.notification_service import NotificationDispatcher
from logging_config import get_logger, get_job_logger


# Module logger
logger = get_logger(__name__)

JOB_UPLOADS_BUCKET = "job-uploads"

JOB_LIST_COLUMNS = (
    "*, customers!jobs_customer_uuid_fkey(name, customer_display_id, email), "
    "services(name, service_type)"
)
JOB_DETAIL_COLUMNS = (
    "*, customers!jobs_customer_uuid_fkey(name, customer_display_id, email, phone, address), "
    "services(name, service_type, description)"
)

# Columns a caller may never write through update_job()
IMMUTABLE_COLUMNS = frozenset({"id", "tracking_code", "created_at", "customer_uuid"})

EDITABLE_COLUMNS = frozenset({
    "title", "description", "service_id", "service_subtype", "quantity",
    "paper_type", "paper_weight", "width", "length", "finishing_options",
    "delivery_method", "delivery_address", "due_date", "estimated_completion",
    "quoted_price", "final_price",
})

# Rows that reference a job and go before it on delete
DEPENDENT_TABLES = (
    "notifications_log",
    "customer_feedback",
    "delivery_history",
    "delivery_schedules",
    "job_files",
    "job_finishing_options",
    "job_history",
)


def generate_tracking_code(now: Optional[datetime] = None) -> str:
    """``PS-YYMMDD-XXXXXX``: date for humans, random suffix for uniqueness."""
    now = now or utc_now()
    return f"PS-{now:%y%m%d}-{secrets.token_hex(3).upper()}"


def tracking_url(origin: str, tracking_code: str) -> str:
    return f"{origin.rstrip('/')}/track/{tracking_code}"


@dataclass
class StatusChange:
    """Outcome of update_status()."""

    job: Job
    previous_status: Optional[str]
    notification: Optional[NotificationResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job": self.job.to_dict(),
            "previous_status": self.previous_status,
            "notification": self.notification.to_dict() if self.notification else None,
        }


@dataclass
class UploadedFile:
    """An artwork file attached to a new job."""

    filename: str
    content_type: str
    data: bytes
    description: Optional[str] = None


@dataclass
class JobSubmission:
    """Outcome of submit_job()."""

    job: Job
    file_paths: List[str] = field(default_factory=list)
    notifications: List[NotificationResult] = field(default_factory=list)


class JobWorkflow:
    """
    Create, move and remove print jobs.

    Args:
        gateway: Platform gateway (signed in as the acting user)
        dispatcher: Notification dispatcher for side effects
        analytics: Analytics service for event tracking
    """

    def __init__(self, gateway: DataGateway, dispatcher: NotificationDispatcher,
                 analytics: AnalyticsService):
        self._gateway = gateway
        self._dispatcher = dispatcher
        self._analytics = analytics

    # =========================================================================
    # READS
    # =========================================================================

    def list_jobs(
        self,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Job]:
        query = (self._gateway.table("jobs")
                 .select(JOB_LIST_COLUMNS)
                 .order("created_at", ascending=False))
        if status:
            query = query.eq("status", status)
        if customer_id:
            query = query.eq("customer_uuid", customer_id)
        if offset:
            query = query.range(offset, offset + (limit or 10) - 1)
        elif limit:
            query = query.limit(limit)
        return [Job.from_row(row) for row in query.execute() or []]

    def get_job(self, job_id: Any) -> Job:
        row = (self._gateway.table("jobs")
               .select(JOB_DETAIL_COLUMNS)
               .eq("id", job_id)
               .single()
               .execute())
        return Job.from_row(row)

    def get_by_tracking_code(self, tracking_code: str) -> Job:
        """
        Public lookup by tracking code.

        Raises:
            ValidationError: Empty code
            NotFoundError: No job with that code
        """
        code = sanitize_text(tracking_code, max_length=64)
        if not code:
            raise ValidationError("Tracking code is required", field="tracking_code")
        row = (self._gateway.table("jobs")
               .select("*, customers!jobs_customer_uuid_fkey(name, customer_display_id), "
                       "services(name, service_type)")
               .eq("tracking_code", code)
               .single()
               .execute())
        return Job.from_row(row)

    def order_history(self, customer_id: str, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        A customer's orders, newest first, shaped for the history table.

        ``price`` is the final price, else the quoted price, else "Pending".
        """
        rows = (self._gateway.table("jobs")
                .select("id, title, tracking_code, status, quoted_price, final_price, "
                        "created_at, delivery_method, services(name)")
                .eq("customer_uuid", customer_id)
                .order("created_at", ascending=False)
                .execute()) or []

        history = []
        term = (search or "").strip().lower()
        for row in rows:
            job = Job.from_row(row)
            if term and term not in (job.title or "").lower() and term not in (job.tracking_code or "").lower():
                continue
            history.append({
                "id": job.id,
                "title": job.title or f"Job #{(job.tracking_code or '')[-6:]}",
                "tracking_code": job.tracking_code,
                "service_name": job.service.get("name"),
                "status": job.status,
                "progress": round(job.progress, 1),
                "price": job.price_display,
                "delivery_method": job.delivery_method,
                "created_at": job.created_at,
            })
        return history

    # =========================================================================
    # STATUS
    # =========================================================================

    def update_status(self, job_id: Any, status: str, notify: bool = True) -> StatusChange:
        """
        Move a job to ``status``.

        Completed stamps actual_completion; no other status touches it.

        Raises:
            ValidationError: ``status`` is not a known stage
            NotFoundError: No such job
            RemoteCallError: The write failed; the prior status stands
        """
        if status not in JOB_STAGES:
            raise ValidationError(
                f"Unknown job status: {status}",
                errors=[f"Status must be one of: {', '.join(JOB_STAGES)}"],
                field="status",
            )

        job_logger = get_job_logger(str(job_id))
        current = (self._gateway.table("jobs")
                   .select("id, status")
                   .eq("id", job_id)
                   .single()
                   .execute())
        previous_status = current.get("status")

        now = iso_now()
        updates: Dict[str, Any] = {
            "status": status,
            "current_status": stage_index(status) + 1,
            "updated_at": now,
        }
        if status == JobStatus.COMPLETED.value:
            updates["actual_completion"] = now

        try:
            rows = self._gateway.table("jobs").eq("id", job_id).update(updates)
        except RemoteCallError:
            job_logger.error(f"Status update {previous_status} -> {status} failed")
            raise
        if not rows:
            raise NotFoundError("update:jobs", f"Job {job_id} not found")

        job = Job.from_row(rows[0])
        job_logger.info(f"Status {previous_status} -> {status}")

        change = StatusChange(job=job, previous_status=previous_status)
        if notify and job.customer_uuid:
            change.notification = self._dispatcher.notify_quietly(
                self._dispatcher.status_updated(job.customer_uuid, job.id, job.title, status)
            )

        if status == JobStatus.COMPLETED.value and job.final_price is not None:
            self._analytics.track_event(
                "job_completed",
                {"job_id": job.id, "revenue": str(job.final_price)},
            )

        return change

    # =========================================================================
    # CREATE / EDIT / DELETE
    # =========================================================================

    def submit_job(
        self,
        customer_id: str,
        data: Dict[str, Any],
        files: Optional[List[UploadedFile]] = None,
        created_by: Optional[str] = None,
        customer_name: Optional[str] = None,
    ) -> JobSubmission:
        """
        Submit a new job in the Pending stage.

        Files are validated before anything is written. The customer and the
        admins are notified afterwards; notification failures do not undo
        the submission.

        Raises:
            ValidationError: Bad form input or file
            RemoteCallError: The insert failed
        """
        files = files or []
        row = self._job_row_from_form(customer_id, data)
        collect(validate_upload(f.filename, f.content_type, len(f.data)) for f in files)

        row["tracking_code"] = generate_tracking_code()
        row["status"] = JobStatus.PENDING.value
        row["current_status"] = 1
        if created_by:
            row["created_by"] = created_by

        inserted = self._gateway.table("jobs").insert(row)
        job = Job.from_row(inserted[0] if isinstance(inserted, list) else inserted)
        get_job_logger(str(job.id)).info(f"Job created ({job.tracking_code}) for customer {customer_id}")

        submission = JobSubmission(job=job)
        for upload in files:
            submission.file_paths.append(self._attach_file(job.id, upload))

        submission.notifications.append(self._dispatcher.notify_quietly(
            self._dispatcher.job_submitted(customer_id, job.id, job.title)
        ))
        submission.notifications.append(self._dispatcher.notify_quietly(
            self._dispatcher.admin_job_submitted(job.id, job.title, customer_name or "A customer")
        ))
        self._analytics.track_event("job_created", {"job_id": job.id}, user_id=customer_id)

        return submission

    def update_job(self, job_id: Any, changes: Dict[str, Any]) -> Job:
        """
        Edit job details.

        The tracking code and ownership never change; a ``status`` key is
        routed through update_status() so completion stamping still applies.
        """
        changes = dict(changes)
        new_status = changes.pop("status", None)
        dropped = IMMUTABLE_COLUMNS.intersection(changes)
        if dropped:
            logger.warning(f"Ignoring immutable job columns: {sorted(dropped)}")

        updates = {
            key: sanitize_text(value) if isinstance(value, str) else value
            for key, value in changes.items()
            if key in EDITABLE_COLUMNS
        }
        errors = []
        if "title" in updates:
            errors.append(validate_required(updates["title"], "Title"))
        if "quantity" in updates:
            errors.append(validate_number(updates["quantity"], "Quantity", minimum=1))
        for price_field in ("quoted_price", "final_price"):
            if updates.get(price_field) is not None:
                errors.append(validate_number(updates[price_field], price_field, minimum=0))
        collect(errors)

        job: Optional[Job] = None
        if updates:
            updates["updated_at"] = iso_now()
            rows = self._gateway.table("jobs").eq("id", job_id).update(updates)
            if not rows:
                raise NotFoundError("update:jobs", f"Job {job_id} not found")
            job = Job.from_row(rows[0])

        if new_status:
            job = self.update_status(job_id, new_status).job

        return job or self.get_job(job_id)

    def delete_job(self, job_id: Any) -> None:
        """
        Permanently remove a job and everything that references it.

        Quotes converted into this job are unlinked rather than deleted.
        Invoices raised for it are deleted with their items.
        """
        job_logger = get_job_logger(str(job_id))
        job_logger.warning("Deleting job and dependent rows")

        for table in DEPENDENT_TABLES:
            self._gateway.table(table).eq("job_id", job_id).delete()

        self._gateway.table("quotes").eq("converted_to_job_id", job_id).update({"converted_to_job_id": None})

        invoices = self._gateway.table("invoices").select("id").eq("job_id", job_id).execute() or []
        invoice_ids = [invoice["id"] for invoice in invoices]
        if invoice_ids:
            self._gateway.table("invoice_items").in_("invoice_id", invoice_ids).delete()
            self._gateway.table("payments").in_("invoice_id", invoice_ids).delete()
            self._gateway.table("invoices").in_("id", invoice_ids).delete()

        self._gateway.table("jobs").eq("id", job_id).delete()
        job_logger.info("Job deleted")

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _job_row_from_form(customer_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        title = sanitize_text(data.get("title"), max_length=200)
        delivery_method = data.get("delivery_method") or DeliveryMethod.COLLECTION.value
        delivery_address = sanitize_text(data.get("delivery_address"), max_length=500)

        errors = [
            validate_required(customer_id, "Customer"),
            validate_required(title, "Title"),
            validate_length(title, 1, 200, "Title") if title else None,
            validate_required(data.get("service_id"), "Service"),
            validate_number(data.get("quantity", 1), "Quantity", minimum=1, maximum=100000),
        ]
        try:
            method = DeliveryMethod(delivery_method)
        except ValueError:
            errors.append(f"Unknown delivery method: {delivery_method}")
        else:
            if method.needs_address and not delivery_address:
                errors.append("Delivery address is required for delivery orders")
        for dimension in ("width", "length"):
            if data.get(dimension) not in (None, ""):
                errors.append(validate_number(data[dimension], dimension.title(), minimum=0))
        collect(errors)

        return {
            "customer_uuid": customer_id,
            "service_id": data.get("service_id"),
            "title": title,
            "description": sanitize_text(data.get("description")) or None,
            "quantity": int(float(data.get("quantity", 1))),
            "service_subtype": sanitize_text(data.get("service_subtype"), max_length=100) or None,
            "paper_type": sanitize_text(data.get("paper_type"), max_length=100) or None,
            "paper_weight": sanitize_text(data.get("paper_weight"), max_length=50) or None,
            "width": float(data["width"]) if data.get("width") not in (None, "") else None,
            "length": float(data["length"]) if data.get("length") not in (None, "") else None,
            "finishing_options": list(data.get("finishing_options") or []),
            "delivery_method": delivery_method,
            "delivery_address": delivery_address or None,
            "due_date": data.get("due_date") or None,
        }

    def _attach_file(self, job_id: Any, upload: UploadedFile) -> str:
        path = storage_filename(upload.filename, prefix=str(job_id))
        self._gateway.storage(JOB_UPLOADS_BUCKET).upload(path, upload.data, upload.content_type)
        self._gateway.table("job_files").insert({
            "job_id": job_id,
            "file_path": path,
            "description": sanitize_text(upload.description) or upload.filename,
        })
        logger.info(f"Attached {upload.filename} to job {job_id}")
        return path
