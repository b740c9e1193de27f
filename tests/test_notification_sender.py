"""
Unit tests for the send-notification function.

Providers are mocks; the gateway is the in-memory fake, so every
notifications_log row written can be inspected.
"""

from unittest.mock import Mock

import pytest

from core.exceptions import NotFoundError
from models.notification import Channel, NotificationRequest
from services.notification_providers import (
    ConsoleEmailProvider,
    ResendEmailProvider,
    TwilioSMSProvider,
    build_email_provider,
    build_sms_provider,
)
from services.notification_sender import NotificationSender, channel_enabled, render_email_html
from tests.conftest import FakeGateway


# Fixtures

@pytest.fixture
def gateway():
    return FakeGateway({
        "customers": [
            {"id": "cust-1", "name": "Ann", "email": "ann@example.com", "phone": "+23276000001",
             "notification_preferences": []},
            {"id": "cust-2", "name": "Ben", "email": "ben@example.com", "phone": "+23276000002",
             "notification_preferences": [{"email_notifications": True, "sms_notifications": False,
                                           "job_status_updates": True, "delivery_updates": False}]},
            {"id": "cust-3", "name": "Cy", "email": None, "phone": None, "notification_preferences": []},
        ],
        "internal_users": [
            {"id": "u1", "name": "Boss", "email": "boss@shop.com", "role_id": 1},
            {"id": "u2", "name": "Deputy", "email": "deputy@shop.com", "role_id": 1},
            {"id": "u3", "name": "Clerk", "email": "clerk@shop.com", "role_id": 2},
        ],
        "company_settings": [
            {"id": 1, "company_name": "Lumen Print", "notification_sender_email": "hello@lumen.sl"},
        ],
    })


@pytest.fixture
def email_provider():
    provider = Mock()
    provider.send.return_value = "email-123"
    return provider


@pytest.fixture
def sms_provider():
    provider = Mock()
    provider.send.return_value = "SM123"
    return provider


@pytest.fixture
def sender(gateway, email_provider, sms_provider):
    return NotificationSender(gateway, email_provider, sms_provider)


def _request(customer_id="cust-1", channel=Channel.BOTH, event="status_updated"):
    return NotificationRequest(
        customer_id=customer_id,
        event=event,
        message="Your print job \"Cards\" status has been updated to: Printing",
        channel=channel,
        subject="Job Status Update - Cards",
        job_id=42,
    )


# Tests for channel selection

class TestChannels:
    """Test which channels are attempted."""

    def test_both_without_preferences_sends_email_and_sms(self, sender, gateway, email_provider, sms_provider):
        result = sender.handle(_request())

        assert result.success is True
        assert result.email_sent is True
        assert result.sms_sent is True
        assert result.customer_name == "Ann"
        email_provider.send.assert_called_once()
        sms_provider.send.assert_called_once_with("+23276000001", _request().message)

        logs = gateway.rows("notifications_log")
        assert len(logs) == 2
        assert {log["notification_type"] for log in logs} == {"email", "sms"}
        assert all(log["status"] == "sent" for log in logs)
        assert all(log["job_id"] == 42 for log in logs)

    def test_email_uses_company_sender(self, sender, email_provider):
        sender.handle(_request(channel=Channel.EMAIL))

        sender_header, to, subject, html = email_provider.send.call_args[0]
        assert sender_header == "Lumen Print <hello@lumen.sl>"
        assert to == "ann@example.com"
        assert subject == "Job Status Update - Cards"
        assert "Lumen Print" in html

    def test_sms_switched_off_by_preference(self, sender, sms_provider):
        result = sender.handle(_request(customer_id="cust-2"))

        assert result.email_sent is True
        assert result.sms_sent is False
        sms_provider.send.assert_not_called()

    def test_delivery_events_respect_delivery_updates(self, sender, email_provider):
        result = sender.handle(_request(customer_id="cust-2", event="delivery_scheduled"))

        assert result.success is False
        email_provider.send.assert_not_called()

    def test_uncategorised_event_only_needs_channel_flag(self, sender):
        result = sender.handle(_request(customer_id="cust-2", channel=Channel.EMAIL, event="test"))
        assert result.email_sent is True

    def test_no_contact_details_sends_nothing(self, sender, gateway):
        result = sender.handle(_request(customer_id="cust-3"))

        assert result.success is False
        assert gateway.rows("notifications_log") == []

    def test_unknown_customer(self, sender):
        with pytest.raises(NotFoundError):
            sender.handle(_request(customer_id="nobody"))


class TestFailures:
    """Test partial channel failure."""

    def test_sms_failure_still_sends_email(self, sender, gateway, sms_provider):
        sms_provider.send.side_effect = RuntimeError("Twilio down")

        result = sender.handle(_request())

        assert result.success is True
        assert result.email_sent is True
        assert result.sms_sent is False
        assert result.errors == ["SMS failed: Twilio down"]
        failed = [log for log in gateway.rows("notifications_log") if log["status"] == "failed"]
        assert len(failed) == 1
        assert failed[0]["error_message"] == "Twilio down"

    def test_all_channels_failing(self, sender, email_provider, sms_provider):
        email_provider.send.side_effect = RuntimeError("rejected")
        sms_provider.send.side_effect = RuntimeError("Twilio down")

        result = sender.handle(_request())

        assert result.success is False
        assert len(result.errors) == 2


class TestAdminFanOut:
    """Test ``customer_id == "admin"``."""

    def test_emails_every_admin(self, sender, gateway, email_provider):
        result = sender.handle(_request(customer_id="admin", channel=Channel.EMAIL, event="admin_job_submitted"))

        assert result.success is True
        recipients = [c[0][1] for c in email_provider.send.call_args_list]
        assert sorted(recipients) == ["boss@shop.com", "deputy@shop.com"]
        logs = gateway.rows("notifications_log")
        assert len(logs) == 2
        assert all(log["customer_id"] == "admin" for log in logs)


# Tests for helpers and providers

class TestHelpers:
    """Test preference rules and rendering."""

    def test_channel_enabled(self):
        prefs = {"email_notifications": True, "sms_notifications": True,
                 "job_status_updates": False, "delivery_updates": True}
        assert channel_enabled(prefs, "email_notifications", "status_updated") is False
        assert channel_enabled(prefs, "email_notifications", "delivery_completed") is True
        assert channel_enabled(prefs, "email_notifications", "custom_event") is True

    def test_render_escapes_markup(self):
        html = render_email_html("Hi", "<script>alert(1)</script>line1\nline2", "Shop")
        assert "<script>" not in html
        assert "line1<br>line2" in html


class TestProviders:
    """Test provider construction and calls."""

    def test_console_fallback_without_credentials(self):
        assert isinstance(build_email_provider({}), ConsoleEmailProvider)
        assert build_sms_provider({}).send("+1", "hi").startswith("console-")

    def test_resend_provider_posts_message(self):
        session = Mock()
        session.post.return_value = Mock(status_code=200, json=Mock(return_value={"id": "re_1"}))
        provider = ResendEmailProvider("key", session=session)

        assert provider.send("Shop <a@b.com>", "c@d.com", "Subject", "<p>x</p>") == "re_1"
        body = session.post.call_args.kwargs["json"]
        assert body["to"] == ["c@d.com"]

    def test_resend_rejection_raises(self):
        session = Mock()
        session.post.return_value = Mock(status_code=422, text="invalid")
        provider = ResendEmailProvider("key", session=session)

        with pytest.raises(RuntimeError):
            provider.send("a@b.com", "c@d.com", "S", "x")

    def test_twilio_provider_uses_client(self):
        client = Mock()
        client.messages.create.return_value = Mock(sid="SM9")
        provider = TwilioSMSProvider("sid", "token", "+15550001", client=client)

        assert provider.send("+23276000001", "Ready") == "SM9"
        client.messages.create.assert_called_once_with(to="+23276000001", from_="+15550001", body="Ready")
