"""
Route tests through the Flask test client.

The app runs with TestingConfig and the fake platform from conftest; the
``gateway`` fixture below replaces the empty one so every request sees
the same rows.
"""

from unittest.mock import Mock

import pytest

from core.exceptions import RemoteCallError
from services.notification_sender import NotificationSender
from tests.conftest import FakeGateway, sign_in


# Fixtures

@pytest.fixture
def gateway():
    platform = FakeGateway({
        "jobs": [
            {"id": 42, "title": "Wedding Cards", "status": "Processing", "customer_uuid": "cust-1",
             "tracking_code": "PS-260301-ABC123", "services": {"name": "Business Cards"},
             "created_at": "2026-03-01T09:00:00+00:00"},
            {"id": 43, "title": "Flyers", "status": "Pending", "customer_uuid": "cust-2",
             "tracking_code": "PS-260302-DEF456", "created_at": "2026-03-02T09:00:00+00:00"},
        ],
        "customers": [
            {"id": "cust-1", "name": "Ann Kamara", "email": "ann@example.com", "auth_user_id": "user-ann",
             "customer_display_id": "CUST-0001", "notification_preferences": []},
            {"id": "cust-2", "name": "Ben Sesay", "email": "ben@example.com",
             "customer_display_id": "CUST-0002", "notification_preferences": []},
        ],
        "services": [
            {"id": 1, "name": "Business Cards", "base_price": 15.0, "is_active": True,
             "available_finishes": ["lamination"]},
        ],
    })
    platform.add_user("ann@example.com", "Blue-Lagoon-42!", "user-ann")
    return platform


# Tests for health and errors

class TestHealthAndErrors:
    """Test the health check and JSON error pages."""

    def test_health(self, client):
        response = client.get("/health")

        data = response.get_json()
        assert response.status_code == 200
        assert data["status"] == "ok"
        assert data["checks"]["platform"] == "configured"
        assert data["checks"]["offline_cache"] == "open"
        assert data["checks"]["sync"] == "disabled"

    def test_unknown_route_is_json(self, client):
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not found."}


# Tests for authentication

class TestAuthRoutes:
    """Test sign-in, sign-out and throttling."""

    def test_login_and_me(self, client):
        response = client.post("/auth/login", json={"email": "ann@example.com", "password": "Blue-Lagoon-42!"})

        assert response.status_code == 200
        assert response.get_json()["user"]["role"] == "Customer"
        assert "access_token" not in response.get_json()["user"]

        me = client.get("/auth/me").get_json()["user"]
        assert me["customer_id"] == "cust-1"

    def test_bad_password(self, client):
        response = client.post("/auth/login", json={"email": "ann@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.get_json()["error"] == "Invalid email or password."

    def test_throttled_after_repeated_failures(self, client):
        for _ in range(3):
            client.post("/auth/login", json={"email": "ann@example.com", "password": "nope"})

        response = client.post("/auth/login", json={"email": "ann@example.com", "password": "Blue-Lagoon-42!"})

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0

    def test_logout_clears_session(self, client, gateway):
        sign_in(client, "Staff")

        assert client.post("/auth/logout").get_json() == {"signed_out": True}
        assert client.get("/auth/me").status_code == 401
        assert gateway.signed_out


# Tests for role gates

class TestPermissions:
    """Test 401/403 handling."""

    def test_signed_out_gets_401(self, client):
        assert client.get("/jobs").status_code == 401

    def test_customer_cannot_view_analytics(self, client):
        sign_in(client, "Customer", customer_id="cust-1")

        response = client.get("/analytics/metrics")

        assert response.status_code == 403
        assert response.get_json() == {"error": "unauthorized"}

    def test_staff_cannot_delete_jobs(self, client):
        sign_in(client, "Staff")
        assert client.delete("/jobs/42").status_code == 403

    def test_admin_deletes_job(self, client, gateway):
        sign_in(client, "Admin")

        assert client.delete("/jobs/42").get_json() == {"deleted": 42}
        assert [row["id"] for row in gateway.rows("jobs")] == [43]

    def test_customer_cannot_open_other_customers_job(self, client):
        sign_in(client, "Customer", customer_id="cust-1")

        response = client.get("/jobs/43")

        assert response.status_code == 403
        assert response.get_json()["error"] == "Access denied."


# Tests for jobs and tracking

class TestJobRoutes:
    """Test job listing, status changes and public tracking."""

    def test_customer_sees_own_jobs(self, client):
        sign_in(client, "Customer", customer_id="cust-1")

        data = client.get("/jobs").get_json()

        assert [job["id"] for job in data["items"]] == [42]
        assert data["stale"] is False

    def test_offline_list_is_served_from_cache(self, client, gateway):
        sign_in(client, "Staff")
        client.get("/jobs")
        gateway.offline = True

        data = client.get("/jobs").get_json()

        assert data["stale"] is True
        assert len(data["items"]) == 2
        assert data["warning"]

    def test_system_user_moves_job(self, client, gateway):
        sign_in(client, "System User")

        response = client.post("/jobs/42/status", json={"status": "Printing"})

        data = response.get_json()
        assert response.status_code == 200
        assert data["previous_status"] == "Processing"
        assert data["job"]["progress"] == 44.4
        assert gateway.function_calls[0][1]["event"] == "status_updated"

    def test_bad_status_is_400(self, client):
        sign_in(client, "Staff")

        response = client.post("/jobs/42/status", json={"status": "Shipped"})

        assert response.status_code == 400
        assert response.get_json()["details"]

    def test_estimate(self, client):
        sign_in(client, "Customer", customer_id="cust-1")

        response = client.post("/jobs/estimate", json={
            "service_id": 1, "quantity": 10, "finishing_options": ["lamination"], "turnaround": "rush",
        })

        assert response.get_json()["estimated_total"] == 280.0

    def test_public_tracking(self, client):
        response = client.get("/track/PS-260301-ABC123")

        data = response.get_json()
        assert response.status_code == 200
        assert data["status"] == "Processing"
        assert data["service"] == "Business Cards"
        assert data["tracking_url"] == "https://shop.example.com/track/PS-260301-ABC123"
        assert "customer_uuid" not in data

    def test_tracking_unknown_code(self, client):
        assert client.get("/track/PS-000000-000000").status_code == 404

    def test_tracking_qr(self, client):
        response = client.get("/track/PS-260301-ABC123/qr.png")

        assert response.mimetype == "image/png"
        assert response.data.startswith(b"\x89PNG")

    def test_platform_down_is_502(self, client, gateway):
        sign_in(client, "Staff")
        gateway.errors["jobs"] = RemoteCallError("get:jobs", "upstream", status_code=503)

        assert client.get("/jobs/42").status_code == 502


# Tests for other resources

class TestResourceRoutes:
    """Test catalog, customers, quotes, invoices and display routes."""

    def test_catalog_is_public(self, client):
        services = client.get("/services").get_json()["services"]
        assert services[0]["name"] == "Business Cards"

    def test_catalog_write_needs_admin(self, client):
        sign_in(client, "Staff")
        assert client.post("/services", json={"name": "Mugs", "base_price": 10}).status_code == 403

    def test_customer_search(self, client):
        sign_in(client, "Staff")

        data = client.get("/customers?q=ben").get_json()

        assert data["count"] == 1
        assert data["customers"][0]["id"] == "cust-2"

    def test_customer_statement_only_own(self, client):
        sign_in(client, "Customer", customer_id="cust-1")
        assert client.get("/customers/cust-2/statement").status_code == 403

    def test_quote_request_validation(self, client):
        sign_in(client, "Customer", customer_id="cust-1")

        response = client.post("/quotes", json={"service_id": 1})

        assert response.status_code == 400
        assert "Title is required" in response.get_json()["details"]

    def test_system_user_creates_invoice(self, client):
        sign_in(client, "System User")

        response = client.post("/invoices", json={
            "customer_id": "cust-2",
            "items": [{"description": "Flyers", "quantity": 100, "unit_price": 2}],
        })

        assert response.status_code == 201
        assert response.get_json()["invoice"]["totals"]["total_amount"] == 200.0

    def test_display_feed_is_public(self, client):
        jobs = client.get("/display/jobs").get_json()["jobs"]
        assert {job["id"] for job in jobs} == {42, 43}


# Tests for notification routes

class TestNotificationRoutes:
    """Test staff sends and the send-notification function endpoint."""

    def test_staff_send_goes_through_function(self, client, gateway):
        sign_in(client, "Staff")

        response = client.post("/notifications/send", json={
            "customer_id": "cust-1", "message": "Your order is ready", "type": "email", "event": "test",
        })

        assert response.status_code == 200
        assert gateway.function_calls[0][1]["message"] == "Your order is ready"

    def test_function_endpoint_rejects_anonymous(self, client):
        response = client.post("/functions/send-notification", json={"customer_id": "cust-1", "message": "x"})
        assert response.status_code == 401

    def test_function_endpoint_with_service_key(self, client, gateway):
        response = client.post(
            "/functions/send-notification",
            json={"customer_id": "cust-1", "message": "Ready for collection", "type": "email", "event": "test"},
            headers={"Authorization": "Bearer test-service-key"},
        )

        assert response.status_code == 200
        assert response.get_json()["email_sent"] is True
        assert gateway.rows("notifications_log")[0]["status"] == "sent"

    def test_function_endpoint_wrong_key(self, client):
        response = client.post(
            "/functions/send-notification",
            json={"customer_id": "cust-1", "message": "x"},
            headers={"Authorization": "Bearer guess"},
        )
        assert response.status_code == 401

    def test_bad_notification_type(self, client):
        sign_in(client, "Staff")
        response = client.post("/notifications/send", json={"customer_id": "cust-1", "message": "x", "type": "fax"})
        assert response.status_code == 400

    def test_function_endpoint_reports_channel_failure_as_result(self, client, app, gateway):
        email_provider = Mock()
        email_provider.send.side_effect = RuntimeError("mailbox full")
        app.config["NOTIFICATION_SENDER"] = NotificationSender(gateway, email_provider, Mock())

        response = client.post(
            "/functions/send-notification",
            json={"customer_id": "cust-1", "message": "Ready", "type": "email", "event": "test"},
            headers={"Authorization": "Bearer test-service-key"},
        )

        data = response.get_json()
        assert response.status_code == 200
        assert data["success"] is False
        assert data["errors"] == ["Email failed: mailbox full"]
        assert gateway.rows("notifications_log")[0]["status"] == "failed"
