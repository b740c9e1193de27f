"""
Quote routes.

Handles:
- GET  /quotes                      - staff: all, customers: their own
- POST /quotes                      - customer requests a quote
- POST /quotes/<id>/review          - price it
- POST /quotes/<id>/approve|reject|expire|convert
- GET  /quotes/<id>/pdf             - quotation document
"""

from flask import Blueprint, Response, g, jsonify, request

from core.exceptions import AuthorizationError, ValidationError
from modules.pdf_documents import generate_quote_pdf
from routes.helpers import json_body, require_permission, services
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

quotes_bp = Blueprint("quotes", __name__, url_prefix="/quotes")


@quotes_bp.route("", methods=["GET"])
@require_permission("manage_quotes", "view_quotes", "view_own_quotes")
def list_quotes():
    user_session = g.user_session
    customer_id = None if user_session.role.is_internal else user_session.customer_id
    if not user_session.role.is_internal and not customer_id:
        return jsonify({"quotes": []})
    quotes = services().quotes.list_quotes(status=request.args.get("status"), customer_id=customer_id)
    return jsonify({"quotes": [q.to_dict() for q in quotes]})


@quotes_bp.route("", methods=["POST"])
@require_permission("create_quotes", "manage_quotes")
def request_quote():
    user_session = g.user_session
    data = json_body()
    customer_id = data.get("customer_id") if user_session.role.is_internal else user_session.customer_id
    quote = services().quotes.request_quote(customer_id or "", data)
    return jsonify({"quote": quote.to_dict()}), 201


@quotes_bp.route("/<quote_id>/<action>", methods=["POST"])
@require_permission("manage_quotes")
def quote_action(quote_id, action):
    quotes = services().quotes
    reviewer = g.user_session.internal_user_id
    data = json_body()

    if action == "review":
        quote = quotes.review_quote(quote_id, data.get("price"), reviewed_by=reviewer)
    elif action == "approve":
        quote = quotes.approve(quote_id, price=data.get("price"), reviewed_by=reviewer)
    elif action == "reject":
        quote = quotes.reject(quote_id, reviewed_by=reviewer)
    elif action == "expire":
        quote = quotes.expire(quote_id)
    elif action == "convert":
        quote = quotes.convert(quote_id)
    else:
        raise ValidationError(f"Unknown quote action: {action}", field="action")

    return jsonify({"quote": quote.to_dict()})


@quotes_bp.route("/<quote_id>/pdf", methods=["GET"])
@require_permission("manage_quotes", "view_quotes", "view_own_quotes")
def quote_pdf(quote_id):
    svc = services()
    row = svc.quotes.get_quote_row(quote_id)
    user_session = g.user_session
    if not user_session.role.is_internal and row.get("customer_id") != user_session.customer_id:
        raise AuthorizationError(user_session.role.value, "view_own_quotes")

    pdf = generate_quote_pdf(row, svc.display.company_settings())
    return Response(pdf, mimetype="application/pdf",
                    headers={"Content-Disposition": f'attachment; filename="quote-{quote_id}.pdf"'})
