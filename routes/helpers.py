"""
Shared route helpers.

- current_session(): the signed-in UserSession, or None
- require_login / require_permission(): role gates for view functions
- services(): per-request service objects bound to the user's token

Every data call made on behalf of a user carries that user's token, so the
platform's row-level security applies as well as the checks here.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Dict, Optional

from flask import current_app, g, jsonify, request, session

from core.gateway import DataGateway
from models.session import UserSession
from services.analytics_service import AnalyticsService
from services.catalog_service import CatalogService
from services.customer_service import CustomerService
from services.delivery_service import DeliveryService
from services.display_service import DisplayService
from services.invoice_service import InvoiceService
from services.job_workflow import JobWorkflow
from services.notification_service import NotificationDispatcher
from services.offline_sync import OfflineSync
from services.payroll_service import PayrollService
from services.quote_service import QuoteService
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

SESSION_KEY = "user"


# =============================================================================
# SESSION
# =============================================================================

def current_session() -> Optional[UserSession]:
    data = session.get(SESSION_KEY)
    if not data:
        return None
    try:
        return UserSession.from_dict(data)
    except KeyError:
        logger.warning("Discarding malformed session cookie")
        session.pop(SESSION_KEY, None)
        return None


def store_session(user_session: UserSession) -> None:
    session.clear()
    session[SESSION_KEY] = user_session.to_dict()
    session.permanent = True


def clear_session() -> None:
    session.clear()


def require_login(view: Callable) -> Callable:
    """401 JSON unless someone is signed in."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        user_session = current_session()
        if user_session is None:
            return jsonify({"error": "Please sign in."}), 401
        g.user_session = user_session
        return view(*args, **kwargs)
    return wrapped


def require_permission(*permissions: str) -> Callable:
    """
    401 when signed out, 403 unless the role holds one of ``permissions``.
    """
    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapped(*args, **kwargs):
            user_session = current_session()
            if user_session is None:
                return jsonify({"error": "Please sign in."}), 401
            if not any(user_session.can(p) for p in permissions):
                logger.warning(
                    f"{user_session.role.value} {user_session.user_id} denied "
                    f"{request.method} {request.path} (needs {', '.join(permissions)})"
                )
                return jsonify({"error": "unauthorized"}), 403
            g.user_session = user_session
            return view(*args, **kwargs)
        return wrapped
    return decorator


def json_body() -> Dict[str, Any]:
    """Request JSON (or form fields) as a dict; never None."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


# =============================================================================
# SERVICES
# =============================================================================

class RequestServices:
    """Services for one request, all sharing one gateway."""

    def __init__(self, gateway: DataGateway, config: Dict[str, Any]):
        self.gateway = gateway
        self._config = config
        self._built: Dict[str, Any] = {}

    def _get(self, name: str, factory: Callable[[], Any]) -> Any:
        if name not in self._built:
            self._built[name] = factory()
        return self._built[name]

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._get("dispatcher", lambda: NotificationDispatcher(self.gateway))

    @property
    def analytics(self) -> AnalyticsService:
        return self._get("analytics", lambda: AnalyticsService(self.gateway))

    @property
    def jobs(self) -> JobWorkflow:
        return self._get("jobs", lambda: JobWorkflow(self.gateway, self.dispatcher, self.analytics))

    @property
    def quotes(self) -> QuoteService:
        return self._get("quotes", lambda: QuoteService(self.gateway))

    @property
    def invoices(self) -> InvoiceService:
        return self._get("invoices", lambda: InvoiceService(
            self.gateway, default_tax_rate=self._config.get("DEFAULT_TAX_RATE") or 0.0,
        ))

    @property
    def customers(self) -> CustomerService:
        return self._get("customers", lambda: CustomerService(self.gateway))

    @property
    def catalog(self) -> CatalogService:
        return self._get("catalog", lambda: CatalogService(self.gateway))

    @property
    def deliveries(self) -> DeliveryService:
        return self._get("deliveries", lambda: DeliveryService(self.gateway, self.dispatcher))

    @property
    def payroll(self) -> PayrollService:
        return self._get("payroll", lambda: PayrollService(self.gateway))

    @property
    def display(self) -> DisplayService:
        return self._get("display", lambda: DisplayService(
            self.gateway, currency_symbol=self._config.get("DEFAULT_CURRENCY_SYMBOL"),
        ))

    @property
    def offline(self) -> OfflineSync:
        return self._get("offline", lambda: OfflineSync(self.gateway, self._config["CACHE_STORE"]))


def services() -> RequestServices:
    """Services bound to the signed-in user's token (anonymous when signed out)."""
    if "services" not in g:
        user_session = current_session()
        gateway: DataGateway = current_app.config["GATEWAY"]
        if user_session is not None:
            gateway = gateway.with_token(user_session.access_token)
        g.services = RequestServices(gateway, current_app.config)
    return g.services


def public_services() -> RequestServices:
    """Services on the anonymous gateway, for public pages."""
    return RequestServices(current_app.config["GATEWAY"], current_app.config)
