"""
Flask route blueprints for PrintShopWeb.

This module contains all route handlers organized by functionality:
- auth: Sign in / sign out / current user
- jobs: Job submission, status workflow, order history, estimates
- tracking: Public tracking page and QR code
- customers: Customer search, profile, stats and statements
- quotes: Quote requests and the review/approve/convert lifecycle
- invoices: Invoices, payments and invoice PDFs
- notifications: Manual sends, log polling, the send-notification function
- analytics: Dashboard metrics and charts
- display: Display-screen feeds, showcase slides, company settings
- catalog: Service catalog
- deliveries: Delivery schedules
- payroll: Monthly payroll
- health: Health check

All routes speak JSON. Each blueprint is registered with the Flask app in
create_app().
"""

from .auth import auth_bp
from .jobs import jobs_bp
from .tracking import tracking_bp
from .customers import customers_bp
from .quotes import quotes_bp
from .invoices import invoices_bp
from .notifications import notifications_bp
from .analytics import analytics_bp
from .display import display_bp
from .catalog import catalog_bp
from .deliveries import deliveries_bp
from .payroll import payroll_bp
from .health import health_bp

__all__ = [
    "auth_bp",
    "jobs_bp",
    "tracking_bp",
    "customers_bp",
    "quotes_bp",
    "invoices_bp",
    "notifications_bp",
    "analytics_bp",
    "display_bp",
    "catalog_bp",
    "deliveries_bp",
    "payroll_bp",
    "health_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(auth_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(tracking_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(quotes_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(display_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(deliveries_bp)
    app.register_blueprint(payroll_bp)
    app.register_blueprint(health_bp)
