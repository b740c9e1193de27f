"""
Job routes.

Handles:
- GET    /jobs                    - staff: all jobs, customers: their own (cache fallback)
- POST   /jobs                    - submit a job (multipart with files, or JSON)
- GET    /jobs/<id>               - one job
- PATCH  /jobs/<id>               - edit details
- POST   /jobs/<id>/status        - move to a stage
- DELETE /jobs/<id>               - remove with dependent rows (admin)
- GET    /jobs/history            - customer's order history
- GET    /jobs/progress           - production board
- POST   /jobs/estimate           - indicative price
- POST   /jobs/analyze-artwork    - page count and size of an uploaded PDF
"""

from flask import Blueprint, g, jsonify, request

from core.exceptions import AuthorizationError, ValidationError
from models.job import Job
from modules.estimator import PriceEstimator
from modules.pdf_analyzer import PDFAnalyzer
from routes.helpers import json_body, require_permission, services
from services.job_workflow import UploadedFile
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

jobs_bp = Blueprint("jobs", __name__, url_prefix="/jobs")


def _own_customer_id() -> str:
    """Customer id of the signed-in customer; staff get ''."""
    user_session = g.user_session
    if user_session.role.is_internal:
        return ""
    if not user_session.customer_id:
        raise AuthorizationError(user_session.role.value, "view_own_jobs")
    return user_session.customer_id


@jobs_bp.route("", methods=["GET"])
@require_permission("manage_jobs", "view_own_jobs")
def list_jobs():
    """
    Job list. When the platform is unreachable the last cached jobs are
    served with ``stale: true``.
    """
    customer_id = _own_customer_id() or request.args.get("customer_id") or None
    status = request.args.get("status")

    result = services().offline.fetch_jobs(customer_id=customer_id)
    payload = result.to_dict()
    items = [Job.from_row(row).to_dict() for row in result.items]
    if status:
        items = [item for item in items if item["status"] == status]
    payload["items"] = items
    return jsonify(payload)


@jobs_bp.route("", methods=["POST"])
@require_permission("manage_jobs", "create_jobs")
def submit_job():
    user_session = g.user_session
    data = json_body()
    if request.form:
        data["finishing_options"] = request.form.getlist("finishing_options")

    if user_session.role.is_internal:
        customer_id = data.get("customer_id") or ""
    else:
        customer_id = _own_customer_id()

    files = [
        UploadedFile(
            filename=upload.filename or "",
            content_type=upload.mimetype or "",
            data=upload.read(),
        )
        for upload in request.files.getlist("files")
        if upload.filename
    ]

    submission = services().jobs.submit_job(
        customer_id,
        data,
        files=files,
        created_by=user_session.internal_user_id,
        customer_name=user_session.display_name if not user_session.role.is_internal else None,
    )
    logger.info(f"Job {submission.job.id} submitted by {user_session.role.value} {user_session.user_id}")
    return jsonify({
        "job": submission.job.to_dict(),
        "files": submission.file_paths,
        "notifications": [n.to_dict() for n in submission.notifications],
    }), 201


@jobs_bp.route("/<int:job_id>", methods=["GET"])
@require_permission("manage_jobs", "view_own_jobs")
def get_job(job_id):
    job = services().jobs.get_job(job_id)
    own = _own_customer_id()
    if own and job.customer_uuid != own:
        raise AuthorizationError(g.user_session.role.value, "view_own_jobs")
    return jsonify({"job": job.to_dict()})


@jobs_bp.route("/<int:job_id>", methods=["PATCH"])
@require_permission("manage_jobs")
def update_job(job_id):
    job = services().jobs.update_job(job_id, json_body())
    return jsonify({"job": job.to_dict()})


@jobs_bp.route("/<int:job_id>/status", methods=["POST"])
@require_permission("manage_jobs")
def update_status(job_id):
    data = json_body()
    change = services().jobs.update_status(job_id, data.get("status", ""))
    return jsonify(change.to_dict())


@jobs_bp.route("/<int:job_id>", methods=["DELETE"])
@require_permission("delete_jobs")
def delete_job(job_id):
    services().jobs.delete_job(job_id)
    return jsonify({"deleted": job_id})


@jobs_bp.route("/history", methods=["GET"])
@require_permission("view_own_jobs")
def order_history():
    history = services().jobs.order_history(_own_customer_id(), search=request.args.get("search"))
    return jsonify({"orders": history})


@jobs_bp.route("/progress", methods=["GET"])
@require_permission("manage_jobs")
def progress_board():
    return jsonify(services().analytics.progress_board())


@jobs_bp.route("/estimate", methods=["POST"])
@require_permission("manage_jobs", "create_jobs")
def estimate():
    data = json_body()
    if not data.get("service_id"):
        raise ValidationError("Service is required", field="service_id")
    try:
        quantity = int(data.get("quantity", 1))
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a whole number", field="quantity")

    service = services().catalog.get(data["service_id"])
    result = PriceEstimator().estimate(
        service,
        quantity,
        finishing_options=data.get("finishing_options") or [],
        turnaround=data.get("turnaround"),
    )
    return jsonify(result)


@jobs_bp.route("/analyze-artwork", methods=["POST"])
@require_permission("manage_jobs", "create_jobs")
def analyze_artwork():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationError("Please choose a PDF file", field="file")
    if upload.mimetype != "application/pdf":
        raise ValidationError("Only PDF artwork can be analyzed", field="file")
    return jsonify(PDFAnalyzer().analyze(upload.read()))
