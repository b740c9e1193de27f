"""
Outbound email and SMS providers.

Email goes through the Resend HTTP API, SMS through Twilio. When
credentials are missing, console providers log the message instead so
development setups still exercise the whole notification path.

Usage:
    email = build_email_provider(app.config)
    sms = build_sms_provider(app.config)

    message_id = email.send("Shop <noreply@shop.com>", "a@b.com", "Hi", "<p>Hi</p>")
    sid = sms.send("+23276000000", "Your job is ready")
"""

from __future__ import annotations

import uuid
from typing import Any, Mapping, Optional, Protocol

import requests
from twilio.rest import Client as TwilioClient

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailProvider(Protocol):
    """Sends one email and returns the provider's message id."""

    def send(self, sender: str, to: str, subject: str, html: str) -> Optional[str]:  # pragma: no cover - protocol
        ...


class SMSProvider(Protocol):
    """Sends one SMS and returns the provider's message id."""

    def send(self, phone: str, body: str) -> Optional[str]:  # pragma: no cover - protocol
        ...


class ConsoleEmailProvider:
    """Fallback provider that logs emails for debugging."""

    def send(self, sender: str, to: str, subject: str, html: str) -> Optional[str]:
        logger.info(f"Email from {sender} to {to}: {subject}")
        return f"console-{uuid.uuid4().hex[:12]}"


class ConsoleSMSProvider:
    """Fallback provider that logs SMS payloads for debugging."""

    def send(self, phone: str, body: str) -> Optional[str]:
        logger.info(f"SMS to {phone}: {body}")
        return f"console-{uuid.uuid4().hex[:12]}"


class ResendEmailProvider:
    """Resend REST API client."""

    def __init__(
        self,
        api_key: str,
        api_url: str = RESEND_API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 20.0,
    ):
        self._api_key = api_key
        self._api_url = api_url
        self._session = session or requests.Session()
        self._timeout = timeout

    def send(self, sender: str, to: str, subject: str, html: str) -> Optional[str]:
        """
        Raises:
            RuntimeError: Resend rejected the message or was unreachable
        """
        try:
            response = self._session.post(
                self._api_url,
                json={"from": sender, "to": [to], "subject": subject, "html": html},
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise RuntimeError(f"Email provider unreachable: {e}") from e

        if response.status_code >= 400:
            raise RuntimeError(f"Email rejected ({response.status_code}): {response.text}")
        try:
            return response.json().get("id")
        except ValueError:
            return None


class TwilioSMSProvider:
    """Wrapper around the Twilio REST client."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        *,
        client: Any = None,
    ):
        self._client = client or TwilioClient(account_sid, auth_token)
        self._from_number = from_number

    def send(self, phone: str, body: str) -> Optional[str]:
        message = self._client.messages.create(to=phone, from_=self._from_number, body=body)
        return getattr(message, "sid", None)


def build_email_provider(config: Mapping[str, Any]) -> EmailProvider:
    api_key = config.get("RESEND_API_KEY")
    if api_key:
        return ResendEmailProvider(api_key, config.get("RESEND_API_URL") or RESEND_API_URL)
    logger.warning("RESEND_API_KEY not set; emails will be logged, not sent")
    return ConsoleEmailProvider()


def build_sms_provider(config: Mapping[str, Any]) -> SMSProvider:
    account_sid = config.get("TWILIO_ACCOUNT_SID")
    auth_token = config.get("TWILIO_AUTH_TOKEN")
    from_number = config.get("TWILIO_FROM_NUMBER")
    if account_sid and auth_token and from_number:
        return TwilioSMSProvider(account_sid, auth_token, from_number)
    logger.warning("Twilio credentials not set; SMS will be logged, not sent")
    return ConsoleSMSProvider()
