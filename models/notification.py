"""
Notification data models.

A NotificationRequest is what the app asks the send-notification function
to do; a NotificationResult is what came back. Every channel attempt the
function makes leaves exactly one NotificationLog row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


class Channel(Enum):
    """Which outbound channels to try."""

    EMAIL = "email"
    SMS = "sms"
    BOTH = "both"

    @property
    def wants_email(self) -> bool:
        return self in (Channel.EMAIL, Channel.BOTH)

    @property
    def wants_sms(self) -> bool:
        return self in (Channel.SMS, Channel.BOTH)


class NotificationEvent:
    """
    Known event tags.

    The set is open: any string is accepted as an event.
    """

    JOB_SUBMITTED = "job_submitted"
    STATUS_UPDATED = "status_updated"
    DELIVERY_SCHEDULED = "delivery_scheduled"
    DELIVERY_COMPLETED = "delivery_completed"
    DELIVERY_STATUS_UPDATE = "delivery_status_update"
    ADMIN_JOB_SUBMITTED = "admin_job_submitted"
    TEST = "test"

    JOB_EVENTS = frozenset({JOB_SUBMITTED, STATUS_UPDATED})
    DELIVERY_EVENTS = frozenset({DELIVERY_SCHEDULED, DELIVERY_COMPLETED, DELIVERY_STATUS_UPDATE})


class DeliveryStatus(Enum):
    """Outcome of one notification attempt."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


# Recipient id that fans an email out to every admin user
ADMIN_RECIPIENT = "admin"


@dataclass(frozen=True)
class NotificationRequest:
    """
    One notification to send.

    ``customer_id`` is a customer row id, or ``"admin"`` for all admins.
    """

    customer_id: str
    event: str
    message: str
    channel: Channel = Channel.EMAIL
    subject: Optional[str] = None
    job_id: Optional[Any] = None
    delivery_schedule_id: Optional[Any] = None
    custom_data: Optional[Dict[str, Any]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Body for the send-notification function."""
        payload: Dict[str, Any] = {
            "type": self.channel.value,
            "customer_id": self.customer_id,
            "event": self.event,
            "message": self.message,
        }
        if self.subject:
            payload["subject"] = self.subject
        if self.job_id is not None:
            payload["job_id"] = self.job_id
        if self.delivery_schedule_id is not None:
            payload["delivery_schedule_id"] = self.delivery_schedule_id
        if self.custom_data:
            payload["custom_data"] = dict(self.custom_data)
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "NotificationRequest":
        return cls(
            customer_id=str(payload.get("customer_id") or ""),
            event=payload.get("event") or "",
            message=payload.get("message") or "",
            channel=Channel(payload.get("type") or Channel.EMAIL.value),
            subject=payload.get("subject"),
            job_id=payload.get("job_id"),
            delivery_schedule_id=payload.get("delivery_schedule_id"),
            custom_data=payload.get("custom_data"),
        )


@dataclass
class NotificationResult:
    """Which channels went out, and why the others did not."""

    success: bool = False
    email_sent: bool = False
    sms_sent: bool = False
    errors: List[str] = field(default_factory=list)
    customer_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": self.success,
            "email_sent": self.email_sent,
            "sms_sent": self.sms_sent,
            "errors": list(self.errors),
        }
        if self.customer_name is not None:
            result["customer_name"] = self.customer_name
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotificationResult":
        email_sent = bool(data.get("email_sent"))
        sms_sent = bool(data.get("sms_sent"))
        return cls(
            success=bool(data.get("success", email_sent or sms_sent)),
            email_sent=email_sent,
            sms_sent=sms_sent,
            errors=list(data.get("errors") or []),
            customer_name=data.get("customer_name"),
        )

    @classmethod
    def failed(cls, error: str) -> "NotificationResult":
        return cls(success=False, errors=[error])


@dataclass
class NotificationLog:
    """
    Append-only record of one send attempt.

    Written once, after the attempt finishes; never updated.
    """

    customer_id: Optional[str]
    notification_type: str
    notification_event: str
    message: str
    status: str
    recipient_email: Optional[str] = None
    recipient_phone: Optional[str] = None
    subject: Optional[str] = None
    external_id: Optional[str] = None
    error_message: Optional[str] = None
    job_id: Optional[Any] = None
    delivery_schedule_id: Optional[Any] = None
    sent_at: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "customer_id": self.customer_id,
            "notification_type": self.notification_type,
            "notification_event": self.notification_event,
            "recipient_email": self.recipient_email,
            "recipient_phone": self.recipient_phone,
            "subject": self.subject,
            "message": self.message,
            "status": self.status,
            "external_id": self.external_id,
            "error_message": self.error_message,
            "job_id": self.job_id,
            "delivery_schedule_id": self.delivery_schedule_id,
            "sent_at": self.sent_at,
        }
