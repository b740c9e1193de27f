"""
Customer routes.

Handles:
- GET   /customers?q=               - search (name, email, display id)
- POST  /customers                  - add a customer
- PATCH /customers/<id>             - edit a customer
- GET   /customers/<id>/stats       - job and billing figures
- GET   /customers/<id>/statement   - statement JSON (?period=)
- GET   /customers/<id>/statement.pdf
- GET   /customers/me               - the signed-in customer's own record
"""

from flask import Blueprint, Response, current_app, g, jsonify, request

from core.exceptions import AuthorizationError
from modules.pdf_documents import generate_statement_pdf
from routes.helpers import json_body, require_permission, services
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

customers_bp = Blueprint("customers", __name__, url_prefix="/customers")


def _check_access(customer_id: str) -> None:
    """Customers may only see their own record."""
    user_session = g.user_session
    if not user_session.role.is_internal and user_session.customer_id != customer_id:
        raise AuthorizationError(user_session.role.value, "view_own_invoices")


@customers_bp.route("", methods=["GET"])
@require_permission("manage_customers", "view_customers")
def search_customers():
    query = request.args.get("q", "")
    customers = services().customers.search(query)
    return jsonify({"customers": customers, "count": len(customers)})


@customers_bp.route("", methods=["POST"])
@require_permission("manage_customers")
def create_customer():
    customer = services().customers.create(json_body(), created_by=g.user_session.internal_user_id)
    return jsonify({"customer": customer}), 201


@customers_bp.route("/me", methods=["GET", "PATCH"])
@require_permission("update_profile")
def my_profile():
    customer_id = g.user_session.customer_id
    if not customer_id:
        raise AuthorizationError(g.user_session.role.value, "update_profile")
    if request.method == "PATCH":
        return jsonify({"customer": services().customers.update(customer_id, json_body())})
    return jsonify({"customer": services().customers.get(customer_id)})


@customers_bp.route("/<customer_id>", methods=["PATCH"])
@require_permission("manage_customers")
def update_customer(customer_id):
    return jsonify({"customer": services().customers.update(customer_id, json_body())})


@customers_bp.route("/<customer_id>/stats", methods=["GET"])
@require_permission("manage_customers", "view_customers", "view_own_invoices")
def customer_stats(customer_id):
    _check_access(customer_id)
    return jsonify(services().analytics.customer_stats(customer_id))


@customers_bp.route("/<customer_id>/statement", methods=["GET"])
@require_permission("manage_invoices", "view_own_invoices")
def customer_statement(customer_id):
    _check_access(customer_id)
    period = request.args.get("period", "current_month")
    return jsonify(services().invoices.customer_statement(customer_id, period))


@customers_bp.route("/<customer_id>/statement.pdf", methods=["GET"])
@require_permission("manage_invoices", "view_own_invoices")
def customer_statement_pdf(customer_id):
    _check_access(customer_id)
    period = request.args.get("period", "current_month")
    svc = services()
    statement = svc.invoices.customer_statement(customer_id, period)
    customer = statement["customer"]

    origin = current_app.config.get("PUBLIC_BASE_URL") or request.host_url.rstrip("/")
    verify_url = f"{origin}/customers/{customer_id}/statement?period={period}"
    pdf = generate_statement_pdf(statement, customer, period, svc.display.company_settings(),
                                 verify_url=verify_url)

    filename = f"statement-{customer.get('customer_display_id') or customer_id}-{period}.pdf"
    return Response(pdf, mimetype="application/pdf",
                    headers={"Content-Disposition": f'attachment; filename="{filename}"'})
