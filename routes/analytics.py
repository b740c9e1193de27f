"""
Analytics routes (staff only).

Handles:
- GET /analytics/metrics?period=    - headline figures for today/week/month/year
- GET /analytics/revenue?period=    - revenue chart buckets
- GET /analytics/workflow           - job counts per stage
- GET /analytics/invoices?period=   - invoiced, paid and outstanding totals
"""

from flask import Blueprint, jsonify, request

from routes.helpers import require_permission, services


analytics_bp = Blueprint("analytics", __name__, url_prefix="/analytics")


@analytics_bp.route("/metrics", methods=["GET"])
@require_permission("view_analytics")
def metrics():
    return jsonify(services().analytics.get_metrics(request.args.get("period", "month")))


@analytics_bp.route("/revenue", methods=["GET"])
@require_permission("view_analytics")
def revenue():
    period = request.args.get("period", "month")
    return jsonify({"period": period, "data": services().analytics.revenue_chart(period)})


@analytics_bp.route("/workflow", methods=["GET"])
@require_permission("view_analytics")
def workflow():
    return jsonify(services().analytics.workflow_stats())


@analytics_bp.route("/invoices", methods=["GET"])
@require_permission("view_analytics")
def invoices():
    return jsonify(services().analytics.invoice_summary(request.args.get("period", "month")))
