"""
Notification dispatcher.

Invokes the remote ``send-notification`` function for job and delivery
events. The function does the actual sending and writes one
notifications_log row per channel attempt.

Delivery semantics:
    - No retry, no queue, no deduplication. Dispatching the same event
      twice sends twice and logs twice.
    - Partial channel failure comes back in NotificationResult.errors.
    - If the function cannot be invoked at all, NotificationDispatchError
      is raised and no log row is guaranteed.

Callers that treat a notification as a side effect (status updates,
submissions) use notify_quietly(), which logs the failure and returns a
failed result instead of raising.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from core.exceptions import NotificationDispatchError, RemoteCallError
from core.gateway import DataGateway
from models.notification import (
    ADMIN_RECIPIENT,
    Channel,
    NotificationEvent,
    NotificationRequest,
    NotificationResult,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

SEND_NOTIFICATION_FUNCTION = "send-notification"


class NotificationDispatcher:
    """
    Sends notifications through the platform function.

    Attributes:
        function_name: Name of the serverless function to invoke
    """

    def __init__(self, gateway: DataGateway, function_name: str = SEND_NOTIFICATION_FUNCTION):
        self._gateway = gateway
        self.function_name = function_name

    def dispatch(self, request: NotificationRequest) -> NotificationResult:
        """
        Send one notification.

        Returns:
            NotificationResult with per-channel outcome

        Raises:
            NotificationDispatchError: Function invocation failed
        """
        try:
            response = self._gateway.invoke_function(self.function_name, request.to_payload())
        except RemoteCallError as e:
            logger.error(f"Failed to send {request.event} notification to {request.customer_id}: {e}")
            raise NotificationDispatchError(
                f"Notification function failed: {e.message}",
                customer_id=request.customer_id,
                event=request.event,
            ) from e

        result = NotificationResult.from_dict(response or {})
        if result.success:
            logger.info(
                f"Notification {request.event} -> {request.customer_id} "
                f"(email={result.email_sent}, sms={result.sms_sent})"
            )
        else:
            logger.warning(f"Notification {request.event} partially failed: {result.errors}")
        return result

    def notify_quietly(self, request: NotificationRequest) -> NotificationResult:
        """dispatch() for side effects: failures are logged and returned, never raised."""
        try:
            return self.dispatch(request)
        except NotificationDispatchError as e:
            logger.warning(f"Notification side effect dropped: {e}")
            return NotificationResult.failed(e.message)

    def recent_logs(self, since: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        """
        Newest notifications_log rows, optionally only those after ``since``.

        Poll this with the newest ``created_at`` seen to follow new sends.
        """
        query = (self._gateway.table("notifications_log")
                 .select("*, customers(name, email)")
                 .order("created_at", ascending=False)
                 .limit(limit))
        if since:
            query = query.gt("created_at", since)
        return query.execute() or []

    # =========================================================================
    # EVENT BUILDERS
    # =========================================================================

    @staticmethod
    def job_submitted(customer_id: str, job_id: Any, job_title: str,
                      channel: Channel = Channel.BOTH) -> NotificationRequest:
        return NotificationRequest(
            customer_id=customer_id,
            job_id=job_id,
            event=NotificationEvent.JOB_SUBMITTED,
            channel=channel,
            subject=f"Job Submitted Successfully - {job_title}",
            message=(
                f'Your print job "{job_title}" has been submitted successfully. '
                "We'll notify you when it's ready for pickup or delivery."
            ),
        )

    @staticmethod
    def status_updated(customer_id: str, job_id: Any, job_title: str, new_status: str,
                       channel: Channel = Channel.BOTH) -> NotificationRequest:
        return NotificationRequest(
            customer_id=customer_id,
            job_id=job_id,
            event=NotificationEvent.STATUS_UPDATED,
            channel=channel,
            subject=f"Job Status Update - {job_title}",
            message=f'Your print job "{job_title}" status has been updated to: {new_status}',
        )

    @staticmethod
    def delivery_update(customer_id: str, delivery_schedule_id: Any, job_title: str,
                        completed: bool, channel: Channel = Channel.BOTH) -> NotificationRequest:
        if completed:
            event = NotificationEvent.DELIVERY_COMPLETED
            subject = f"Delivery Completed - {job_title}"
            message = f'Your print job "{job_title}" has been delivered successfully.'
        else:
            event = NotificationEvent.DELIVERY_SCHEDULED
            subject = f"Delivery Scheduled - {job_title}"
            message = f'Your print job "{job_title}" has been scheduled for delivery.'
        return NotificationRequest(
            customer_id=customer_id,
            delivery_schedule_id=delivery_schedule_id,
            event=event,
            channel=channel,
            subject=subject,
            message=message,
        )

    @staticmethod
    def admin_job_submitted(job_id: Any, job_title: str, customer_name: str) -> NotificationRequest:
        return NotificationRequest(
            customer_id=ADMIN_RECIPIENT,
            job_id=job_id,
            event=NotificationEvent.ADMIN_JOB_SUBMITTED,
            channel=Channel.EMAIL,
            subject=f"New Job Submitted - {job_title}",
            message=f'{customer_name} submitted a new print job "{job_title}" (#{job_id}).',
        )
