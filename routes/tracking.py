"""
Public job tracking.

Handles:
- GET /track/<code>         - stage and progress of a job, no sign-in
- GET /track/<code>/qr.png  - QR code linking to the tracking page
"""

from flask import Blueprint, Response, current_app, jsonify, request

from models.job import JOB_STAGES
from modules.qr_codes import tracking_qr_png
from routes.helpers import public_services
from services.job_workflow import tracking_url
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

tracking_bp = Blueprint("tracking", __name__, url_prefix="/track")


def _origin() -> str:
    return current_app.config.get("PUBLIC_BASE_URL") or request.host_url.rstrip("/")


@tracking_bp.route("/<code>", methods=["GET"])
def track(code):
    """Public view of one job. Only non-sensitive columns are returned."""
    job = public_services().jobs.get_by_tracking_code(code)
    return jsonify({
        "tracking_code": job.tracking_code,
        "title": job.title,
        "status": job.status,
        "progress": round(job.progress, 1),
        "stages": list(JOB_STAGES),
        "service": job.service.get("name"),
        "delivery_method": job.delivery_method,
        "created_at": job.created_at,
        "estimated_completion": job.estimated_completion,
        "actual_completion": job.actual_completion,
        "tracking_url": tracking_url(_origin(), job.tracking_code),
    })


@tracking_bp.route("/<code>/qr.png", methods=["GET"])
def track_qr(code):
    png = tracking_qr_png(_origin(), code)
    return Response(png, mimetype="image/png", headers={"Cache-Control": "public, max-age=86400"})
