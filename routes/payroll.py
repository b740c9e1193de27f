"""
Payroll routes (admin).

Handles:
- GET  /payroll                     - all payrolls, newest month first
- POST /payroll                     - draft a month's payroll
- GET  /payroll/<id>/payments       - per-employee payments
- POST /payroll/<id>/process        - mark processed
"""

from flask import Blueprint, jsonify

from core.exceptions import ValidationError
from routes.helpers import json_body, require_permission, services


payroll_bp = Blueprint("payroll", __name__, url_prefix="/payroll")


@payroll_bp.route("", methods=["GET"])
@require_permission("manage_payroll")
def list_payrolls():
    return jsonify({"payrolls": services().payroll.list_payrolls()})


@payroll_bp.route("", methods=["POST"])
@require_permission("manage_payroll")
def create_payroll():
    data = json_body()
    if not data.get("month"):
        raise ValidationError("Month is required", field="month")
    payroll = services().payroll.create_payroll(data["month"], employees=data.get("employees"))
    return jsonify({"payroll": payroll}), 201


@payroll_bp.route("/<payroll_id>/payments", methods=["GET"])
@require_permission("manage_payroll")
def payroll_payments(payroll_id):
    return jsonify({"payments": services().payroll.payments(payroll_id)})


@payroll_bp.route("/<payroll_id>/process", methods=["POST"])
@require_permission("manage_payroll")
def process_payroll(payroll_id):
    return jsonify({"payroll": services().payroll.process_payroll(payroll_id)})
