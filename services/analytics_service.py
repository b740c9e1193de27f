"""
Analytics aggregation.

Every call fetches the rows for its time window and reduces them in
Python. Nothing is materialised between calls, which is fine at a print
shop's volume.

Windows (relative to ``now``, UTC):
    today - since midnight
    week  - last 7 days
    month - same day last month (clamped to month end)
    year  - same day last year

The reductions are plain functions so they can be tested on row lists.
"""

from __future__ import annotations

import calendar
import math
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.exceptions import RemoteCallError, ValidationError
from core.gateway import DataGateway
from core.timeutil import parse_timestamp, utc_now
from models.job import (
    CANCELLED_BUCKET,
    COMPLETED_BUCKET,
    JobStatus,
    PENDING_BUCKET,
    progress_percentage,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

PERIODS = ("today", "week", "month", "year")
CHART_PERIODS = ("week", "month", "year")


# =============================================================================
# WINDOWS
# =============================================================================

def _shift_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def window_start(period: str, now: datetime) -> datetime:
    """Start of the reporting window ending at ``now``."""
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return _shift_months(now, -1)
    if period == "year":
        return _shift_months(now, -12)
    raise ValidationError(f"Unknown period: {period}", field="period")


def window_days(start: datetime, end: datetime) -> int:
    """Whole days covered by the window, rounded up, at least 1."""
    return max(1, math.ceil(abs((end - start).total_seconds()) / 86400))


# =============================================================================
# REDUCTIONS
# =============================================================================

def total_revenue(jobs: Iterable[Dict[str, Any]]) -> float:
    """Sum of non-null final prices."""
    return float(sum(float(job["final_price"]) for job in jobs if job.get("final_price") is not None))


def count_by_status(jobs: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for job in jobs:
        status = job.get("status") or "Unknown"
        counts[status] = counts.get(status, 0) + 1
    return counts


def summarize_metrics(
    period: str,
    jobs: List[Dict[str, Any]],
    new_customers: List[Dict[str, Any]],
    start: datetime,
    end: datetime,
) -> Dict[str, Any]:
    """Dashboard metrics for one window."""
    revenue = total_revenue(jobs)
    by_status = count_by_status(jobs)
    daily = revenue if period == "today" else revenue / window_days(start, end)
    return {
        "period": period,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "total_revenue": revenue,
        "daily_revenue": daily,
        "monthly_jobs": len(jobs),
        "active_customers": len({c.get("id") for c in new_customers}),
        "pending_jobs": by_status.get(JobStatus.PENDING.value, 0),
        "completed_jobs": by_status.get(JobStatus.COMPLETED.value, 0),
        "jobs_by_status": by_status,
    }


def revenue_buckets(jobs: Iterable[Dict[str, Any]], period: str) -> List[Dict[str, Any]]:
    """
    Revenue per day (``YYYY-MM-DD``) for week/month, per month (``YYYY-M``) for year.

    Buckets are returned in chronological order.
    """
    by_month = period == "year"
    totals: Dict[Tuple[int, int, int], float] = {}
    labels: Dict[Tuple[int, int, int], str] = {}
    for job in jobs:
        if job.get("final_price") is None:
            continue
        created = parse_timestamp(job.get("created_at"))
        if created is None:
            continue
        if by_month:
            sort_key = (created.year, created.month, 0)
            labels[sort_key] = f"{created.year}-{created.month}"
        else:
            sort_key = (created.year, created.month, created.day)
            labels[sort_key] = created.date().isoformat()
        totals[sort_key] = totals.get(sort_key, 0.0) + float(job["final_price"])
    return [{"period": labels[key], "revenue": totals[key]} for key in sorted(totals)]


def workflow_counts(jobs: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Total/pending/active/completed/cancelled buckets over all jobs."""
    stats = OrderedDict(
        total_jobs=0, pending_jobs=0, active_jobs=0, completed_jobs=0, cancelled_jobs=0
    )
    for job in jobs:
        status = job.get("status")
        stats["total_jobs"] += 1
        if status in CANCELLED_BUCKET:
            stats["cancelled_jobs"] += 1
        elif status in PENDING_BUCKET:
            stats["pending_jobs"] += 1
        elif status in COMPLETED_BUCKET:
            stats["completed_jobs"] += 1
        else:
            stats["active_jobs"] += 1
    return dict(stats)


def progress_rows(jobs: Iterable[Dict[str, Any]], now: datetime) -> Dict[str, Any]:
    """Per-job progress for the production board, plus summary counts."""
    rows = []
    for job in jobs:
        customer = job.get("customers") or {}
        due = parse_timestamp(job.get("due_date"))
        rows.append({
            "id": job.get("id"),
            "title": job.get("title") or f"Job #{job.get('id')}",
            "tracking_code": job.get("tracking_code"),
            "status": job.get("status"),
            "created_at": job.get("created_at"),
            "due_date": job.get("due_date"),
            "customer_name": customer.get("name") or "Unknown Customer",
            "customer_display_id": customer.get("customer_display_id") or "N/A",
            "progress_percentage": progress_percentage(job.get("status")),
            "is_overdue": bool(due and due < now and job.get("status") != JobStatus.COMPLETED.value),
        })

    stats = {
        "total": len(rows),
        "pending": sum(1 for r in rows if r["status"] == JobStatus.PENDING.value),
        "in_progress": sum(
            1 for r in rows if r["status"] not in (JobStatus.PENDING.value, JobStatus.COMPLETED.value)
        ),
        "completed": sum(1 for r in rows if r["status"] == JobStatus.COMPLETED.value),
        "overdue": sum(1 for r in rows if r["is_overdue"]),
    }
    return {"jobs": rows, "stats": stats}


def customer_totals(jobs: Iterable[Dict[str, Any]], invoices: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Lifetime job and billing figures for one customer."""
    jobs = list(jobs)
    invoices = list(invoices)
    return {
        "total_jobs": len(jobs),
        "completed_jobs": sum(1 for job in jobs if job.get("status") == JobStatus.COMPLETED.value),
        "total_spent": float(sum(float(inv.get("total_amount") or 0) for inv in invoices)),
        "pending_invoices": sum(1 for inv in invoices if inv.get("status") == "sent"),
    }


def invoice_totals(invoices: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    invoiced = paid = 0.0
    count = 0
    for invoice in invoices:
        if invoice.get("status") == "cancelled":
            continue
        count += 1
        invoiced += float(invoice.get("total_amount") or 0)
        paid += float(invoice.get("paid_amount") or 0)
    return {
        "invoice_count": count,
        "total_invoiced": invoiced,
        "total_paid": paid,
        "outstanding": invoiced - paid,
    }


# =============================================================================
# SERVICE
# =============================================================================

class AnalyticsService:
    """Read-side reporting over jobs, customers and invoices."""

    def __init__(self, gateway: DataGateway):
        self._gateway = gateway

    def get_metrics(self, period: str = "month", now: Optional[datetime] = None) -> Dict[str, Any]:
        if period not in PERIODS:
            raise ValidationError(f"Unknown period: {period}", field="period")
        end = now or utc_now()
        start = window_start(period, end)

        jobs = (self._gateway.table("jobs")
                .select("status, final_price, created_at")
                .gte("created_at", start.isoformat())
                .lte("created_at", end.isoformat())
                .execute()) or []
        customers = (self._gateway.table("customers")
                     .select("id")
                     .gte("created_at", start.isoformat())
                     .execute()) or []

        return summarize_metrics(period, jobs, customers, start, end)

    def revenue_chart(self, period: str = "month", now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        if period not in CHART_PERIODS:
            raise ValidationError(f"Unknown chart period: {period}", field="period")
        end = now or utc_now()
        start = window_start(period, end)
        jobs = (self._gateway.table("jobs")
                .select("final_price, created_at")
                .gte("created_at", start.isoformat())
                .not_("final_price", "is", None)
                .execute()) or []
        return revenue_buckets(jobs, period)

    def workflow_stats(self) -> Dict[str, int]:
        jobs = self._gateway.table("jobs").select("id, status").execute() or []
        return workflow_counts(jobs)

    def progress_board(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        jobs = (self._gateway.table("jobs")
                .select("id, title, tracking_code, status, created_at, due_date, "
                        "customers!jobs_customer_uuid_fkey(name, customer_display_id)")
                .neq("status", JobStatus.COMPLETED.value)
                .order("created_at", ascending=False)
                .execute()) or []
        return progress_rows(jobs, now or utc_now())

    def customer_stats(self, customer_id: str) -> Dict[str, Any]:
        jobs = (self._gateway.table("jobs")
                .select("id, status, created_at, final_price")
                .eq("customer_uuid", customer_id)
                .execute()) or []
        invoices = (self._gateway.table("invoices")
                    .select("id, status, total_amount")
                    .eq("customer_id", customer_id)
                    .execute()) or []
        return customer_totals(jobs, invoices)

    def invoice_summary(self, period: str = "month", now: Optional[datetime] = None) -> Dict[str, Any]:
        if period not in PERIODS:
            raise ValidationError(f"Unknown period: {period}", field="period")
        end = now or utc_now()
        start = window_start(period, end)
        invoices = (self._gateway.table("invoices")
                    .select("status, total_amount, paid_amount, created_at")
                    .gte("created_at", start.isoformat())
                    .lte("created_at", end.isoformat())
                    .execute()) or []
        summary = invoice_totals(invoices)
        summary["period"] = period
        return summary

    def track_event(self, event_type: str, event_data: Optional[Dict[str, Any]] = None,
                    user_id: Optional[str] = None) -> bool:
        """Record an analytics event. Best effort: failures are logged, not raised."""
        try:
            self._gateway.table("analytics_events").insert({
                "event_type": event_type,
                "event_data": event_data,
                "user_id": user_id,
            })
            return True
        except RemoteCallError as e:
            logger.warning(f"Analytics event {event_type} not recorded: {e}")
            return False
