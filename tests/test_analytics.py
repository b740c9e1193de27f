"""
Unit tests for analytics windows and reductions.
"""

from datetime import datetime, timezone

import pytest

from core.exceptions import ValidationError
from services.analytics_service import (
    AnalyticsService,
    customer_totals,
    invoice_totals,
    progress_rows,
    revenue_buckets,
    summarize_metrics,
    window_days,
    window_start,
    workflow_counts,
)
from tests.conftest import FakeGateway


# Fixtures

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def gateway():
    return FakeGateway({
        "jobs": [
            {"id": 1, "status": "Completed", "final_price": 100.0, "created_at": "2026-03-10T09:00:00+00:00"},
            {"id": 2, "status": "Pending", "final_price": 180.0, "created_at": "2026-03-14T09:00:00+00:00"},
            {"id": 3, "status": "Printing", "final_price": None, "created_at": "2026-03-15T08:00:00+00:00"},
            {"id": 4, "status": "Completed", "final_price": 999.0, "created_at": "2025-12-01T09:00:00+00:00"},
        ],
        "customers": [
            {"id": "cust-1", "created_at": "2026-03-01T09:00:00+00:00"},
            {"id": "cust-2", "created_at": "2025-01-01T09:00:00+00:00"},
        ],
        "invoices": [
            {"id": "inv-1", "status": "sent", "total_amount": 300.0, "paid_amount": 100.0,
             "created_at": "2026-03-12T09:00:00+00:00"},
            {"id": "inv-2", "status": "cancelled", "total_amount": 50.0, "paid_amount": 0,
             "created_at": "2026-03-13T09:00:00+00:00"},
        ],
    })


@pytest.fixture
def analytics(gateway):
    return AnalyticsService(gateway)


# Tests for windows

class TestWindows:
    """Test reporting window boundaries."""

    def test_today_starts_at_midnight(self):
        assert window_start("today", NOW) == datetime(2026, 3, 15, tzinfo=timezone.utc)

    def test_month_clamps_day(self):
        start = window_start("month", datetime(2026, 3, 31, 10, 0, tzinfo=timezone.utc))
        assert (start.month, start.day) == (2, 28)

    def test_year_and_week(self):
        assert window_start("year", NOW).year == 2025
        assert window_start("week", NOW).day == 8

    def test_unknown_period(self):
        with pytest.raises(ValidationError):
            window_start("decade", NOW)

    def test_window_days_at_least_one(self):
        assert window_days(NOW, NOW) == 1
        assert window_days(window_start("week", NOW), NOW) == 7


# Tests for reductions

class TestReductions:
    """Test the pure aggregation helpers."""

    def test_summarize_month(self):
        jobs = [
            {"status": "Pending", "final_price": 100.0},
            {"status": "Completed", "final_price": 180.0},
            {"status": "Completed", "final_price": None},
        ]
        start = window_start("month", NOW)

        metrics = summarize_metrics("month", jobs, [{"id": "c1"}, {"id": "c1"}], start, NOW)

        assert metrics["total_revenue"] == 280.0
        assert metrics["daily_revenue"] == 10.0
        assert metrics["monthly_jobs"] == 3
        assert metrics["active_customers"] == 1
        assert metrics["pending_jobs"] == 1
        assert metrics["completed_jobs"] == 2

    def test_today_daily_revenue_is_total(self):
        metrics = summarize_metrics("today", [{"final_price": 75}], [], window_start("today", NOW), NOW)
        assert metrics["daily_revenue"] == 75.0

    def test_revenue_buckets_by_day_in_order(self):
        jobs = [
            {"final_price": 50, "created_at": "2026-03-02T10:00:00+00:00"},
            {"final_price": 20, "created_at": "2026-03-01T10:00:00+00:00"},
            {"final_price": 30, "created_at": "2026-03-02T16:00:00+00:00"},
            {"final_price": None, "created_at": "2026-03-03T10:00:00+00:00"},
        ]

        assert revenue_buckets(jobs, "month") == [
            {"period": "2026-03-01", "revenue": 20.0},
            {"period": "2026-03-02", "revenue": 80.0},
        ]

    def test_revenue_buckets_accept_trimmed_fractions(self):
        jobs = [
            {"final_price": 100, "created_at": "2026-03-05T10:15:30.12345+00:00"},
            {"final_price": 40, "created_at": "2026-03-05T11:00:00.1Z"},
        ]
        assert revenue_buckets(jobs, "week") == [{"period": "2026-03-05", "revenue": 140.0}]

    def test_revenue_buckets_by_month_across_year(self):
        jobs = [
            {"final_price": 10, "created_at": "2026-01-05T10:00:00+00:00"},
            {"final_price": 5, "created_at": "2025-12-20T10:00:00+00:00"},
        ]
        assert [b["period"] for b in revenue_buckets(jobs, "year")] == ["2025-12", "2026-1"]

    def test_workflow_counts(self):
        statuses = ["Pending", "Received", "Printing", "Waiting for Collection", "Completed", "Cancelled"]

        counts = workflow_counts({"status": s} for s in statuses)

        assert counts == {
            "total_jobs": 6,
            "pending_jobs": 2,
            "active_jobs": 1,
            "completed_jobs": 2,
            "cancelled_jobs": 1,
        }

    def test_progress_rows_flags_overdue(self):
        jobs = [
            {"id": 1, "status": "Printing", "due_date": "2026-03-01T00:00:00+00:00",
             "customers": {"name": "Ann", "customer_display_id": "CUST-0001"}},
            {"id": 2, "status": "Pending", "due_date": "2026-04-01T00:00:00+00:00"},
        ]

        board = progress_rows(jobs, NOW)

        assert board["jobs"][0]["is_overdue"] is True
        assert board["jobs"][1]["customer_name"] == "Unknown Customer"
        assert board["jobs"][1]["title"] == "Job #2"
        assert board["stats"] == {"total": 2, "pending": 1, "in_progress": 1, "completed": 0, "overdue": 1}

    def test_customer_totals(self):
        totals = customer_totals(
            [{"status": "Completed"}, {"status": "Printing"}],
            [{"status": "sent", "total_amount": 100}, {"status": "paid", "total_amount": 50}],
        )
        assert totals == {"total_jobs": 2, "completed_jobs": 1, "total_spent": 150.0, "pending_invoices": 1}

    def test_invoice_totals_skip_cancelled(self):
        totals = invoice_totals([
            {"status": "sent", "total_amount": 300, "paid_amount": 100},
            {"status": "cancelled", "total_amount": 50},
        ])
        assert totals == {"invoice_count": 1, "total_invoiced": 300.0, "total_paid": 100.0, "outstanding": 200.0}


# Tests for AnalyticsService

class TestAnalyticsService:
    """Test the service against the fake platform."""

    def test_metrics_use_window(self, analytics):
        metrics = analytics.get_metrics("month", now=NOW)

        assert metrics["monthly_jobs"] == 3
        assert metrics["total_revenue"] == 280.0
        assert metrics["active_customers"] == 1

    def test_metrics_reject_unknown_period(self, analytics):
        with pytest.raises(ValidationError):
            analytics.get_metrics("decade")

    def test_revenue_chart_skips_unpriced(self, analytics):
        chart = analytics.revenue_chart("week", now=NOW)
        assert chart == [
            {"period": "2026-03-10", "revenue": 100.0},
            {"period": "2026-03-14", "revenue": 180.0},
        ]

    def test_chart_has_no_today_period(self, analytics):
        with pytest.raises(ValidationError):
            analytics.revenue_chart("today")

    def test_invoice_summary(self, analytics):
        summary = analytics.invoice_summary("month", now=NOW)

        assert summary["period"] == "month"
        assert summary["outstanding"] == 200.0

    def test_track_event_is_best_effort(self, analytics, gateway):
        assert analytics.track_event("page_view", {"path": "/"}) is True
        gateway.offline = True
        assert analytics.track_event("page_view") is False
