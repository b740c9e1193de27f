"""
Display screen routes.

The screen feeds are public so a TV browser can show them without signing
in; they only carry non-sensitive job columns.

Handles:
- GET    /display/jobs             - latest jobs
- GET    /display/waiting-area     - queue and ready-for-collection lists
- GET    /display/showcase         - slides, featured services, branding
- POST   /display/slides           - upload a slide image (admin)
- DELETE /display/slides/<id>      - remove a slide (admin)
- GET    /display/settings         - company settings
- PATCH  /display/settings         - edit company settings (admin)
"""

from flask import Blueprint, jsonify, request

from core.exceptions import ValidationError
from routes.helpers import json_body, public_services, require_login, require_permission, services
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

display_bp = Blueprint("display", __name__, url_prefix="/display")


@display_bp.route("/jobs", methods=["GET"])
def jobs_screen():
    return jsonify({"jobs": public_services().display.jobs_screen()})


@display_bp.route("/waiting-area", methods=["GET"])
def waiting_area():
    return jsonify(public_services().display.waiting_area())


@display_bp.route("/showcase", methods=["GET"])
def showcase():
    return jsonify(public_services().display.showcase())


@display_bp.route("/slides", methods=["POST"])
@require_permission("manage_displays")
def upload_slide():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationError("Please choose an image", field="file")
    slide = services().display.upload_slide(
        upload.filename,
        upload.mimetype or "",
        upload.read(),
        title=request.form.get("title"),
    )
    return jsonify({"slide": slide}), 201


@display_bp.route("/slides/<slide_id>", methods=["DELETE"])
@require_permission("manage_displays")
def delete_slide(slide_id):
    services().display.delete_slide(slide_id)
    return jsonify({"deleted": slide_id})


@display_bp.route("/settings", methods=["GET"])
@require_login
def company_settings():
    return jsonify(services().display.company_settings().to_dict())


@display_bp.route("/settings", methods=["PATCH"])
@require_permission("manage_settings")
def update_company_settings():
    return jsonify(services().display.update_company_settings(json_body()).to_dict())
