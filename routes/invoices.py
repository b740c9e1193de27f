"""
Invoice routes.

Handles:
- GET  /invoices                  - list (?search=, ?status=)
- POST /invoices                  - create with line items
- POST /invoices/<id>/status      - change status
- POST /invoices/<id>/payments    - record a payment
- GET  /invoices/<id>/pdf         - invoice document
"""

from flask import Blueprint, Response, g, jsonify, request

from core.exceptions import AuthorizationError
from modules.pdf_documents import generate_invoice_pdf
from routes.helpers import json_body, require_permission, services
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

invoices_bp = Blueprint("invoices", __name__, url_prefix="/invoices")


@invoices_bp.route("", methods=["GET"])
@require_permission("manage_invoices", "view_own_invoices")
def list_invoices():
    user_session = g.user_session
    customer_id = None if user_session.role.is_internal else user_session.customer_id
    if not user_session.role.is_internal and not customer_id:
        return jsonify({"invoices": []})
    invoices = services().invoices.list_invoices(
        search=request.args.get("search"),
        status=request.args.get("status"),
        customer_id=customer_id,
    )
    return jsonify({"invoices": invoices})


@invoices_bp.route("", methods=["POST"])
@require_permission("manage_invoices", "create_invoices")
def create_invoice():
    data = json_body()
    invoice = services().invoices.create_invoice(
        customer_id=data.get("customer_id") or "",
        items=data.get("items") or [],
        tax_rate=data.get("tax_rate"),
        discount=data.get("discount") or 0,
        job_id=data.get("job_id"),
        quote_id=data.get("quote_id"),
        due_date=data.get("due_date"),
        notes=data.get("notes"),
        created_by=g.user_session.internal_user_id,
    )
    return jsonify({
        "invoice": {
            "id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "status": invoice.status,
            "totals": invoice.totals.to_dict() if invoice.totals else None,
        }
    }), 201


@invoices_bp.route("/<invoice_id>/status", methods=["POST"])
@require_permission("manage_invoices")
def update_status(invoice_id):
    row = services().invoices.update_status(invoice_id, json_body().get("status", ""))
    return jsonify({"invoice": row})


@invoices_bp.route("/<invoice_id>/payments", methods=["POST"])
@require_permission("manage_invoices")
def record_payment(invoice_id):
    data = json_body()
    row = services().invoices.record_payment(
        invoice_id,
        data.get("amount"),
        payment_method=data.get("payment_method") or "cash",
        reference_number=data.get("reference_number"),
        recorded_by=g.user_session.internal_user_id,
    )
    return jsonify({"invoice": row}), 201


@invoices_bp.route("/<invoice_id>/pdf", methods=["GET"])
@require_permission("manage_invoices", "view_own_invoices")
def invoice_pdf(invoice_id):
    svc = services()
    row = svc.invoices.get_invoice_row(invoice_id)
    user_session = g.user_session
    if not user_session.role.is_internal and row.get("customer_id") != user_session.customer_id:
        raise AuthorizationError(user_session.role.value, "view_own_invoices")

    pdf = generate_invoice_pdf(row, svc.display.company_settings())
    filename = f"{row.get('invoice_number') or invoice_id}.pdf"
    return Response(pdf, mimetype="application/pdf",
                    headers={"Content-Disposition": f'attachment; filename="{filename}"'})
