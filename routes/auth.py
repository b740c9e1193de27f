"""
Authentication routes.

Handles:
- POST /auth/login  - password sign-in, stores the session
- POST /auth/logout - revoke token and clear the session
- GET  /auth/me     - who is signed in
"""

from flask import Blueprint, current_app, jsonify, g

from routes.helpers import (
    clear_session,
    current_session,
    json_body,
    require_login,
    store_session,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Sign in with email and password.

    Errors (bad credentials 401, throttled 429, platform down 502) are
    turned into JSON by the app's error handlers.
    """
    data = json_body()
    auth_service = current_app.config["AUTH_SERVICE"]
    user_session = auth_service.login(data.get("email", ""), data.get("password", ""))
    store_session(user_session)
    return jsonify({"user": user_session.to_public_dict()})


@auth_bp.route("/logout", methods=["POST"])
def logout():
    user_session = current_session()
    if user_session is not None:
        current_app.config["AUTH_SERVICE"].logout(user_session)
    clear_session()
    return jsonify({"signed_out": True})


@auth_bp.route("/me", methods=["GET"])
@require_login
def me():
    return jsonify({"user": g.user_session.to_public_dict()})
