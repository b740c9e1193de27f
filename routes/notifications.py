"""
Notification routes.

Handles:
- POST /notifications/send            - staff send a notification (or a test)
- GET  /notifications/logs?since=     - newest log rows, for polling
- POST /functions/send-notification   - the send-notification function itself
"""

import hmac

from flask import Blueprint, current_app, jsonify, request

from core.exceptions import ValidationError
from models.notification import NotificationRequest
from routes.helpers import current_session, json_body, require_permission, services
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

notifications_bp = Blueprint("notifications", __name__)


def _parse_request(data) -> NotificationRequest:
    if not data.get("customer_id"):
        raise ValidationError("Recipient is required", field="customer_id")
    if not data.get("message"):
        raise ValidationError("Message is required", field="message")
    try:
        return NotificationRequest.from_payload(data)
    except ValueError:
        raise ValidationError(f"Unknown notification type: {data.get('type')}", field="type")


def _function_caller_allowed() -> bool:
    """Signed-in staff, or a caller holding the service-role key."""
    user_session = current_session()
    if user_session is not None and user_session.role.is_internal:
        return True

    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return False
    service_key = current_app.config.get("SUPABASE_SERVICE_ROLE_KEY") or ""
    return bool(service_key) and hmac.compare_digest(header[len("Bearer "):], service_key)


@notifications_bp.route("/notifications/send", methods=["POST"])
@require_permission("manage_notifications")
def send_notification():
    notification = _parse_request(json_body())
    result = services().dispatcher.dispatch(notification)
    return jsonify(result.to_dict())


@notifications_bp.route("/notifications/logs", methods=["GET"])
@require_permission("manage_notifications")
def notification_logs():
    try:
        limit = min(int(request.args.get("limit", 50)), 200)
    except ValueError:
        raise ValidationError("limit must be a number", field="limit")
    logs = services().dispatcher.recent_logs(since=request.args.get("since"), limit=limit)
    return jsonify({"logs": logs})


@notifications_bp.route("/functions/send-notification", methods=["POST"])
def send_notification_function():
    if not _function_caller_allowed():
        return jsonify({"error": "unauthorized"}), 401

    notification = _parse_request(json_body())
    # Channel failures are part of the result; only a crash here is a 5xx
    result = current_app.config["NOTIFICATION_SENDER"].handle(notification)
    return jsonify(result.to_dict())
