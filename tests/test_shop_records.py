"""
Unit tests for customers, deliveries, payroll and the display screens.
"""

import pytest

from core.exceptions import NotFoundError, RemoteCallError, ValidationError
from services.customer_service import CustomerService
from services.delivery_service import DeliveryService, status_message
from services.display_service import DisplayService
from services.notification_service import NotificationDispatcher
from services.payroll_service import PayrollService, net_amount, payroll_month
from tests.conftest import FakeGateway


# Fixtures

@pytest.fixture
def gateway():
    return FakeGateway({
        "customers": [
            {"id": "cust-1", "name": "Ann Kamara", "email": "ann@example.com", "customer_display_id": "CUST-0001"},
            {"id": "cust-2", "name": "Ben Sesay", "email": "ben@annex.sl", "customer_display_id": "CUST-0002"},
            {"id": "cust-3", "name": "Cy Turay", "email": "cy@example.com", "customer_display_id": "CUST-0003"},
        ],
        "jobs": [
            {"id": 42, "title": "Wedding Cards", "tracking_code": "PS-260301-ABC123", "customer_uuid": "cust-1",
             "status": "Printing", "created_at": "2026-03-02T09:00:00+00:00"},
            {"id": 43, "title": "Flyers", "tracking_code": "PS-260301-DEF456", "customer_uuid": "cust-2",
             "status": "Pending", "created_at": "2026-03-01T09:00:00+00:00"},
            {"id": 44, "title": "Banner", "status": "Waiting for Collection",
             "created_at": "2026-02-20T09:00:00+00:00", "updated_at": "2026-03-03T09:00:00+00:00"},
            {"id": 45, "title": "Old", "status": "Cancelled", "created_at": "2026-02-01T09:00:00+00:00"},
        ],
        "delivery_schedules": [
            {"id": 7, "job_id": 42, "delivery_status": "scheduled", "scheduled_date": "2026-03-10",
             "jobs": {"id": 42, "title": "Wedding Cards", "tracking_code": "PS-260301-ABC123",
                      "customer_uuid": "cust-1"}},
        ],
        "employees": [
            {"id": "e1", "name": "Musa", "salary": 1000, "allowances": 200, "deductions": 50, "is_active": True},
            {"id": "e2", "name": "Fatu", "salary": 500, "is_active": True},
            {"id": "e3", "name": "Gone", "salary": 900, "is_active": False},
        ],
        "payrolls": [
            {"id": "pay-jan", "month": "2026-01-01", "status": "processed", "total_amount": 1400.0},
        ],
    })


@pytest.fixture
def dispatcher(gateway):
    return NotificationDispatcher(gateway)


# Tests for customers

class TestCustomers:
    """Test customer search and edits."""

    def test_search_matches_any_field_once(self, gateway):
        customers = CustomerService(gateway)

        assert [c["id"] for c in customers.search("ann")] == ["cust-1", "cust-2"]
        assert [c["id"] for c in customers.search("cust-0003")] == ["cust-3"]

    def test_search_strips_filter_syntax(self, gateway):
        results = CustomerService(gateway).search("(kamara),%*")
        assert [c["id"] for c in results] == ["cust-1"]

    def test_empty_search_lists_everyone(self, gateway):
        assert len(CustomerService(gateway).search("  ")) == 3

    def test_display_id_lookup_is_case_insensitive(self, gateway):
        assert CustomerService(gateway).get_by_display_id(" cust-0002 ")["id"] == "cust-2"

    def test_create_lowercases_email(self, gateway):
        row = CustomerService(gateway).create({"name": "Dee Koroma", "email": "Dee@Example.COM"},
                                              created_by="staff-1")

        assert row["email"] == "dee@example.com"
        assert row["created_by"] == "staff-1"

    def test_create_collects_errors(self, gateway):
        with pytest.raises(ValidationError) as exc_info:
            CustomerService(gateway).create({"name": "D", "email": "nope", "phone": "abc"})

        assert len(exc_info.value.errors) == 3

    def test_update_ignores_other_columns(self, gateway):
        row = CustomerService(gateway).update("cust-1", {"phone": "+232 76 000 001", "customer_display_id": "X"})

        assert row["phone"] == "+232 76 000 001"
        assert row["customer_display_id"] == "CUST-0001"

    def test_update_unknown_customer(self, gateway):
        with pytest.raises(NotFoundError):
            CustomerService(gateway).update("nobody", {"name": "Ghost"})


# Tests for deliveries

class TestDeliveries:
    """Test delivery scheduling and status changes."""

    def test_schedule_notifies_customer(self, gateway, dispatcher):
        schedule = DeliveryService(gateway, dispatcher).schedule({
            "job_id": 43, "scheduled_date": "2026-03-20", "delivery_address": "5 Main Rd", "delivery_fee": "15",
        })

        assert schedule["delivery_status"] == "scheduled"
        name, payload = gateway.function_calls[0]
        assert payload["event"] == "delivery_scheduled"
        assert payload["customer_id"] == "cust-2"

    def test_schedule_requires_job_and_date(self, gateway, dispatcher):
        with pytest.raises(ValidationError) as exc_info:
            DeliveryService(gateway, dispatcher).schedule({"delivery_fee": -5})
        assert len(exc_info.value.errors) == 3

    def test_delivered_stamps_time_and_emails(self, gateway, dispatcher):
        result = DeliveryService(gateway, dispatcher).update_status(7, "delivered")

        assert result["schedule"]["delivery_status"] == "delivered"
        assert result["schedule"]["actual_delivery_time"] is not None
        assert result["notification"]["success"] is True
        payload = gateway.function_calls[0][1]
        assert payload["type"] == "email"
        assert payload["event"] == "delivery_status_update"
        assert "successfully delivered" in payload["message"]

    def test_notification_failure_keeps_status(self, gateway, dispatcher):
        gateway.function_error = RemoteCallError("function:send-notification", "Network error: down")

        result = DeliveryService(gateway, dispatcher).update_status(7, "in_transit")

        assert result["schedule"]["delivery_status"] == "in_transit"
        assert result["notification"]["success"] is False

    def test_unknown_status(self, gateway, dispatcher):
        with pytest.raises(ValidationError):
            DeliveryService(gateway, dispatcher).update_status(7, "lost")

    def test_status_messages(self):
        assert "unsuccessful" in status_message("failed", "Cards", "PS-1")
        assert status_message("cancelled", "Cards", "PS-1").endswith("updated to: cancelled.")


# Tests for payroll

class TestPayroll:
    """Test monthly payroll runs."""

    def test_month_normalisation(self):
        assert payroll_month("2026-03") == "2026-03-01"
        assert payroll_month("2026-03-17") == "2026-03-01"
        with pytest.raises(ValidationError):
            payroll_month("March")

    def test_net_amount(self):
        assert net_amount({"salary": 1000, "allowances": 200, "deductions": 50}) == 1150

    def test_create_pays_active_employees(self, gateway):
        payroll = PayrollService(gateway).create_payroll("2026-03")

        assert payroll["month"] == "2026-03-01"
        assert payroll["total_amount"] == 1650.0
        assert payroll["status"] == "draft"
        payments = gateway.rows("payroll_payments")
        assert sorted(p["employee_id"] for p in payments) == ["e1", "e2"]
        assert all(p["payroll_id"] == payroll["id"] for p in payments)

    def test_one_payroll_per_month(self, gateway):
        with pytest.raises(ValidationError):
            PayrollService(gateway).create_payroll("2026-01")

    def test_nobody_to_pay(self, gateway):
        with pytest.raises(ValidationError):
            PayrollService(gateway).create_payroll("2026-04", employees=[])

    def test_process(self, gateway):
        assert PayrollService(gateway).process_payroll("pay-jan")["processed_at"] is not None
        with pytest.raises(NotFoundError):
            PayrollService(gateway).process_payroll("missing")


# Tests for display screens

class TestDisplay:
    """Test display feeds, slides and company settings."""

    def test_waiting_area_lists(self, gateway):
        feed = DisplayService(gateway).waiting_area()

        assert [j["id"] for j in feed["queue"]] == [43, 42]
        assert [j["id"] for j in feed["ready"]] == [44]
        assert feed["queue"][1]["progress"] == 44.4

    def test_upload_slide(self, gateway):
        slide = DisplayService(gateway).upload_slide("promo.png", "image/png", b"\x89PNG", title="Promo")

        assert gateway.uploads[0][0] == "slides"
        assert slide["title"] == "Promo"
        assert slide["file_path"].startswith("https://test-project.supabase.co/storage/v1/object/public/slides/")

    def test_slide_must_be_image(self, gateway):
        with pytest.raises(ValidationError):
            DisplayService(gateway).upload_slide("promo.pdf", "application/pdf", b"%PDF")

    def test_delete_slide_survives_storage_failure(self, gateway):
        gateway.tables["showcase_slides"] = [{"id": 1, "file_path": "https://x/slides/1_promo.png"}]
        gateway.storage_error = RemoteCallError("storage.remove:slides", "Network error: down")

        DisplayService(gateway).delete_slide(1)

        assert gateway.rows("showcase_slides") == []

    def test_company_settings_defaults(self, gateway):
        settings = DisplayService(gateway, currency_symbol="$").company_settings()

        assert settings.company_name == "Print Shop"
        assert settings.currency_symbol == "$"

    def test_company_settings_unreadable(self, gateway):
        gateway.errors["company_settings"] = RemoteCallError("get:company_settings", "Network error: down")
        assert DisplayService(gateway).company_settings().company_name == "Print Shop"

    def test_update_company_settings(self, gateway):
        display = DisplayService(gateway)

        display.update_company_settings({"company_name": "Lumen Print", "bogus": 1})
        settings = display.update_company_settings({"phone": "+23276000000"})

        assert settings.company_name == "Lumen Print"
        assert settings.phone == "+23276000000"
        assert len(gateway.rows("company_settings")) == 1
        assert "bogus" not in gateway.rows("company_settings")[0]
