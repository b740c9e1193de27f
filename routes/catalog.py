"""
Service catalog routes.

Handles:
- GET    /services              - active services (public, for the order form)
- POST   /services              - add a service (admin)
- PATCH  /services/<id>         - edit a service (admin)
- DELETE /services/<id>         - deactivate a service (admin)
- POST   /services/initialize   - seed the default catalog when empty (admin)
"""

from flask import Blueprint, jsonify

from routes.helpers import json_body, public_services, require_permission, services


catalog_bp = Blueprint("catalog", __name__, url_prefix="/services")


@catalog_bp.route("", methods=["GET"])
def list_services():
    return jsonify({"services": [s.to_dict() for s in public_services().catalog.list_active()]})


@catalog_bp.route("", methods=["POST"])
@require_permission("manage_services")
def create_service():
    return jsonify({"service": services().catalog.create(json_body()).to_dict()}), 201


@catalog_bp.route("/<service_id>", methods=["PATCH"])
@require_permission("manage_services")
def update_service(service_id):
    return jsonify({"service": services().catalog.update(service_id, json_body()).to_dict()})


@catalog_bp.route("/<service_id>", methods=["DELETE"])
@require_permission("manage_services")
def deactivate_service(service_id):
    return jsonify({"service": services().catalog.deactivate(service_id).to_dict()})


@catalog_bp.route("/initialize", methods=["POST"])
@require_permission("manage_services")
def initialize_services():
    return jsonify({"inserted": services().catalog.initialize_defaults()})
