"""
Delivery schedule routes (staff).

Handles:
- GET    /deliveries?job_id=        - schedules, newest date first
- POST   /deliveries                - schedule a delivery, notify the customer
- POST   /deliveries/<id>/status    - change status, email the customer
- DELETE /deliveries/<id>
"""

from flask import Blueprint, jsonify, request

from routes.helpers import json_body, require_permission, services


deliveries_bp = Blueprint("deliveries", __name__, url_prefix="/deliveries")


@deliveries_bp.route("", methods=["GET"])
@require_permission("manage_jobs")
def list_deliveries():
    return jsonify({"deliveries": services().deliveries.list_schedules(job_id=request.args.get("job_id"))})


@deliveries_bp.route("", methods=["POST"])
@require_permission("manage_jobs")
def schedule_delivery():
    return jsonify({"delivery": services().deliveries.schedule(json_body())}), 201


@deliveries_bp.route("/<schedule_id>/status", methods=["POST"])
@require_permission("manage_jobs")
def update_delivery_status(schedule_id):
    data = json_body()
    status = data.get("delivery_status") or data.get("status") or ""
    return jsonify(services().deliveries.update_status(schedule_id, status))


@deliveries_bp.route("/<schedule_id>", methods=["DELETE"])
@require_permission("manage_jobs")
def delete_delivery(schedule_id):
    services().deliveries.delete(schedule_id)
    return jsonify({"deleted": schedule_id})
