"""
Health check.

Handles:
- GET /health - platform configuration, offline cache and sync thread status
"""

from flask import Blueprint, current_app, jsonify


health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Platform credentials
    if current_app.config.get("GATEWAY") is not None:
        health_status["checks"]["platform"] = "configured"
    else:
        health_status["checks"]["platform"] = "not_configured"
        health_status["status"] = "degraded"

    # Offline cache
    cache = current_app.config.get("CACHE_STORE")
    if cache is not None and cache.is_initialized:
        health_status["checks"]["offline_cache"] = "open"
        health_status["checks"]["pending_actions"] = len(cache.get_pending_actions())
    else:
        health_status["checks"]["offline_cache"] = "closed"
        health_status["status"] = "degraded"

    # Background sync
    sync_service = current_app.config.get("SYNC_SERVICE")
    if sync_service is None:
        health_status["checks"]["sync"] = "disabled"
    elif sync_service.is_running:
        health_status["checks"]["sync"] = "running"
        if sync_service.consecutive_failures:
            health_status["checks"]["sync_failures"] = sync_service.consecutive_failures
            health_status["status"] = "degraded"
    else:
        health_status["checks"]["sync"] = "stopped"
        health_status["status"] = "degraded"

    return jsonify(health_status)
