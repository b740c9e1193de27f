"""
Services layer for PrintShopWeb.

This module contains the business logic services:
- JobWorkflow: Job submission and the production status workflow
- QuoteService: Quote requests and their lifecycle
- InvoiceService: Invoices, payments and customer statements
- NotificationDispatcher / NotificationSender: Both ends of send-notification
- OfflineSync / SyncService: Cached reads and the background sync thread
- AnalyticsService: Dashboard metrics and charts
- AuthService: Sign-in, role resolution, login throttling
- CustomerService, CatalogService, DeliveryService, PayrollService,
  DisplayService: Table-level operations for the admin screens

Thread Model:
    Main Thread (Flask)
    └── SyncService thread (periodic cache refresh and write replay)

Request-scoped services are built per request with a gateway carrying the
signed-in user's token; nothing here holds per-user state.
"""

from .job_workflow import JobWorkflow, JobSubmission, StatusChange, UploadedFile
from .quote_service import QuoteService
from .invoice_service import InvoiceService
from .notification_service import NotificationDispatcher
from .notification_sender import NotificationSender
from .offline_sync import OfflineSync, SyncService, ReplayReport
from .analytics_service import AnalyticsService
from .auth_service import AuthService, LoginRateLimiter
from .customer_service import CustomerService
from .catalog_service import CatalogService
from .delivery_service import DeliveryService
from .payroll_service import PayrollService
from .display_service import DisplayService

__all__ = [
    "JobWorkflow",
    "JobSubmission",
    "StatusChange",
    "UploadedFile",
    "QuoteService",
    "InvoiceService",
    "NotificationDispatcher",
    "NotificationSender",
    "OfflineSync",
    "SyncService",
    "ReplayReport",
    "AnalyticsService",
    "AuthService",
    "LoginRateLimiter",
    "CustomerService",
    "CatalogService",
    "DeliveryService",
    "PayrollService",
    "DisplayService",
]
