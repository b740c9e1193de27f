"""
PrintShopWeb - Flask Application Entry Point.

This is a slim app factory that:
1. Checks platform credentials (fail-fast)
2. Opens the offline cache
3. Starts the background sync service (separate thread)
4. Registers route blueprints
5. Sets up JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling (each request signs its platform calls
    │   with the signed-in user's token)
    └── Cleanup on shutdown (stop sync, close cache)

    OfflineSync Thread (background)
    └── Periodic refresh of cached jobs/customers/services and replay of
        queued writes, with its OWN gateway

The send-notification function runs in-process at
/functions/send-notification with the service-role gateway.
"""

from __future__ import annotations

import atexit
import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from logging_config import setup_logging, get_logger
from core.cache_store import CacheStore
from core.exceptions import ConfigurationError, PrintShopError, user_message
from core.gateway import DataGateway
from services.auth_service import AuthService, LoginRateLimiter
from services.notification_providers import build_email_provider, build_sms_provider
from services.notification_sender import NotificationSender
from services.offline_sync import OfflineSync, SyncService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def create_app(config_object: str = "config.Config") -> Flask:
    """
    Application factory - creates and configures Flask app.

    FAIL-FAST: Without the platform URL and anon key nothing works, so the
    app will not start.

    Args:
        config_object: Import path of the configuration class

    Returns:
        Configured Flask application

    Raises:
        ConfigurationError: SUPABASE_URL or SUPABASE_ANON_KEY not set
    """
    load_dotenv(override=True)

    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        app_name="print_shop_web",
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting PrintShopWeb in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # CORE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    for setting in ("SUPABASE_URL", "SUPABASE_ANON_KEY"):
        if not app.config.get(setting):
            logger.error(f"FATAL: Cannot start application - {setting} is not set")
            raise ConfigurationError(setting)

    timeout = app.config.get("REMOTE_TIMEOUT_SECONDS")
    gateway = DataGateway(app.config["SUPABASE_URL"], app.config["SUPABASE_ANON_KEY"], timeout=timeout)
    app.config["GATEWAY"] = gateway

    service_key = app.config.get("SUPABASE_SERVICE_ROLE_KEY")
    if service_key:
        service_gateway = DataGateway(app.config["SUPABASE_URL"], service_key, timeout=timeout)
    else:
        logger.warning("SUPABASE_SERVICE_ROLE_KEY not set; send-notification runs with the anon key")
        service_gateway = gateway
    app.config["SERVICE_GATEWAY"] = service_gateway

    cache_store = CacheStore(app.config["CACHE_DB_PATH"])
    cache_store.initialize()
    app.config["CACHE_STORE"] = cache_store

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    limiter = LoginRateLimiter(
        max_attempts=app.config["LOGIN_MAX_ATTEMPTS"],
        window_seconds=app.config["LOGIN_WINDOW_SECONDS"],
        cooldown_seconds=app.config["LOGIN_COOLDOWN_SECONDS"],
    )
    app.config["AUTH_SERVICE"] = AuthService(gateway, limiter, offline=OfflineSync(gateway, cache_store))

    app.config["NOTIFICATION_SENDER"] = NotificationSender(
        service_gateway,
        build_email_provider(app.config),
        build_sms_provider(app.config),
    )

    sync_service = None
    if app.config.get("SYNC_ENABLED"):
        sync_service = SyncService(
            OfflineSync(service_gateway, cache_store),
            interval_seconds=app.config["SYNC_INTERVAL_SECONDS"],
        )
        sync_service.start()
        logger.info("Offline sync service started")
    app.config["SYNC_SERVICE"] = sync_service

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")

        if sync_service:
            sync_service.stop()

        cache_store.close()

        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(PrintShopError)
    def handle_app_error(e):
        status = e.status_code
        if status >= 500:
            logger.error(f"{type(e).__name__}: {e}")
        else:
            logger.warning(f"{type(e).__name__}: {e}")
        body = {"error": user_message(e)}
        errors = getattr(e, "errors", None)
        if errors:
            body["details"] = errors
        response = jsonify(body)
        retry_after = getattr(e, "retry_after_seconds", None)
        if retry_after:
            response.headers["Retry-After"] = str(retry_after)
        return response, status

    @app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(e):
        max_mb = app.config.get("MAX_CONTENT_LENGTH", 25 * 1024 * 1024) / (1024 * 1024)
        return jsonify({"error": f"File too large. Maximum upload size is {max_mb:.0f} MB."}), 413

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Not found."}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({"error": "Method not allowed."}), 405

    @app.errorhandler(500)
    def handle_server_error(e):
        if isinstance(e, HTTPException):
            logger.error(f"500 error: {e}")
        else:
            logger.error(f"500 error: {e}", exc_info=True)
        return jsonify({"error": "An unexpected error occurred. Please try again."}), 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode, use_reloader=False)
