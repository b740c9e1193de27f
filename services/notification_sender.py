"""
The send-notification function.

This is the server side of NotificationDispatcher: it looks up the
recipient and their preferences, tries each requested channel once and
records one notifications_log row per attempt.

Channel rules:
    - ``type`` selects email, sms or both.
    - A channel is attempted only if the customer has it switched on
      (email_notifications / sms_notifications) and has not switched off
      the event's category (job_status_updates for job events,
      delivery_updates for delivery events). Other events only need the
      channel switch.
    - A customer without a preferences row gets the defaults (all on).
    - ``customer_id == "admin"`` emails every admin user instead.

Runs with the service-role gateway: it reads other users' rows.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import bleach

from core.exceptions import RemoteCallError
from core.gateway import DataGateway
from core.timeutil import iso_now
from models.company import CompanySettings
from models.notification import (
    ADMIN_RECIPIENT,
    DeliveryStatus,
    NotificationEvent,
    NotificationLog,
    NotificationRequest,
    NotificationResult,
)
from services.notification_providers import EmailProvider, SMSProvider
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

ADMIN_ROLE_ID = 1

DEFAULT_PREFERENCES = {
    "email_notifications": True,
    "sms_notifications": True,
    "job_status_updates": True,
    "delivery_updates": True,
}

CUSTOMER_COLUMNS = (
    "id, name, email, phone, "
    "notification_preferences(email_notifications, sms_notifications, job_status_updates, delivery_updates)"
)


def render_email_html(subject: str, message: str, company_name: str) -> str:
    """Plain branded HTML body; user text is escaped."""
    safe_subject = bleach.clean(subject or "", tags=[], strip=True)
    safe_message = bleach.clean(message or "", tags=[], strip=True).replace("\n", "<br>")
    safe_company = bleach.clean(company_name or "", tags=[], strip=True)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #333;">{safe_subject}</h2>'
        '<div style="background: #f9f9f9; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        f"{safe_message}</div>"
        f'<p style="color: #666; font-size: 12px;">This is an automated message from {safe_company}.</p>'
        "</div>"
    )


def _preferences(customer: Dict[str, Any]) -> Dict[str, Any]:
    prefs = customer.get("notification_preferences")
    if isinstance(prefs, list):
        prefs = prefs[0] if prefs else None
    if not prefs:
        return dict(DEFAULT_PREFERENCES)
    merged = dict(DEFAULT_PREFERENCES)
    merged.update({k: v for k, v in prefs.items() if v is not None})
    return merged


def channel_enabled(preferences: Dict[str, Any], channel_flag: str, event: str) -> bool:
    """Whether the customer accepts ``event`` on the channel behind ``channel_flag``."""
    if not preferences.get(channel_flag):
        return False
    if event in NotificationEvent.JOB_EVENTS:
        return bool(preferences.get("job_status_updates"))
    if event in NotificationEvent.DELIVERY_EVENTS:
        return bool(preferences.get("delivery_updates"))
    return True


class NotificationSender:
    """
    Sends notifications and writes the notifications_log.

    Args:
        gateway: Service-role gateway
        email_provider: Resend or console provider
        sms_provider: Twilio or console provider
    """

    def __init__(self, gateway: DataGateway, email_provider: EmailProvider, sms_provider: SMSProvider):
        self._gateway = gateway
        self._email = email_provider
        self._sms = sms_provider

    def handle(self, request: NotificationRequest) -> NotificationResult:
        """
        Process one request.

        Raises:
            NotFoundError: The customer does not exist
            RemoteCallError: Recipient lookup failed
        """
        logger.info(f"Processing notification: {request.channel.value} {request.event} -> {request.customer_id}")

        settings = self._company_settings()

        if request.customer_id == ADMIN_RECIPIENT:
            return self._notify_admins(request, settings)

        customer = (self._gateway.table("customers")
                    .select(CUSTOMER_COLUMNS)
                    .eq("id", request.customer_id)
                    .single()
                    .execute())

        preferences = _preferences(customer)
        result = NotificationResult(customer_name=customer.get("name"))

        if (request.channel.wants_email and customer.get("email")
                and channel_enabled(preferences, "email_notifications", request.event)):
            result.email_sent = self._send_email(
                request, customer["email"], settings, result.errors, log_customer_id=request.customer_id
            )

        if (request.channel.wants_sms and customer.get("phone")
                and channel_enabled(preferences, "sms_notifications", request.event)):
            result.sms_sent = self._send_sms(request, customer["phone"], result.errors)

        result.success = result.email_sent or result.sms_sent
        return result

    # =========================================================================
    # CHANNELS
    # =========================================================================

    def _notify_admins(self, request: NotificationRequest, settings: CompanySettings) -> NotificationResult:
        result = NotificationResult()
        try:
            admins = (self._gateway.table("internal_users")
                      .select("email, name")
                      .eq("role_id", ADMIN_ROLE_ID)
                      .execute()) or []
        except RemoteCallError as e:
            logger.error(f"Error fetching admin users: {e}")
            return NotificationResult.failed("Failed to fetch admin users")

        sent = 0
        for admin in admins:
            if not admin.get("email"):
                continue
            if self._send_email(request, admin["email"], settings, result.errors,
                                log_customer_id=ADMIN_RECIPIENT):
                sent += 1

        result.email_sent = sent > 0
        result.success = result.email_sent
        logger.info(f"Admin notification sent to {sent} of {len(admins)} admins")
        return result

    def _send_email(
        self,
        request: NotificationRequest,
        address: str,
        settings: CompanySettings,
        errors: List[str],
        log_customer_id: str,
    ) -> bool:
        subject = request.subject or f"Notification from {settings.company_name}"
        html = render_email_html(subject, request.message, settings.company_name)
        try:
            external_id = self._email.send(settings.sender, address, subject, html)
        except Exception as e:
            errors.append(f"Email failed: {e}")
            logger.warning(f"Email to {address} failed: {e}")
            self._log(request, log_customer_id, "email", DeliveryStatus.FAILED,
                      recipient_email=address, subject=request.subject, error_message=str(e))
            return False

        self._log(request, log_customer_id, "email", DeliveryStatus.SENT,
                  recipient_email=address, subject=request.subject, external_id=external_id)
        logger.info(f"Email sent successfully: {external_id}")
        return True

    def _send_sms(self, request: NotificationRequest, phone: str, errors: List[str]) -> bool:
        try:
            external_id = self._sms.send(phone, request.message)
        except Exception as e:
            errors.append(f"SMS failed: {e}")
            logger.warning(f"SMS to {phone} failed: {e}")
            self._log(request, request.customer_id, "sms", DeliveryStatus.FAILED,
                      recipient_phone=phone, error_message=str(e))
            return False

        self._log(request, request.customer_id, "sms", DeliveryStatus.SENT,
                  recipient_phone=phone, external_id=external_id)
        logger.info(f"SMS sent successfully: {external_id}")
        return True

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _log(
        self,
        request: NotificationRequest,
        customer_id: str,
        notification_type: str,
        status: DeliveryStatus,
        recipient_email: Optional[str] = None,
        recipient_phone: Optional[str] = None,
        subject: Optional[str] = None,
        external_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        entry = NotificationLog(
            customer_id=customer_id,
            notification_type=notification_type,
            notification_event=request.event,
            message=request.message,
            status=status.value,
            recipient_email=recipient_email,
            recipient_phone=recipient_phone,
            subject=subject,
            external_id=external_id,
            error_message=error_message,
            job_id=request.job_id,
            delivery_schedule_id=request.delivery_schedule_id,
            sent_at=iso_now(),
        )
        try:
            self._gateway.table("notifications_log").insert(entry.to_row())
        except RemoteCallError as e:
            logger.error(f"Could not write notification log ({notification_type} {status.value}): {e}")

    def _company_settings(self) -> CompanySettings:
        try:
            row = (self._gateway.table("company_settings")
                   .select("company_name, notification_sender_email, notification_sender_name")
                   .maybe_single()
                   .execute())
        except RemoteCallError as e:
            logger.warning(f"Company settings unavailable, using defaults: {e}")
            row = None
        return CompanySettings.from_row(row)
