"""
Data models for PrintShopWeb.

This module contains dataclasses for:
- Job: A print job and its ordered production stages
- Quote: A priced proposal and its lifecycle
- Invoice: Billing records, line items and derived totals
- Service: Catalog entries and finishing options
- Notification*: Dispatch requests, results and log rows
- CompanySettings: Branding used on documents
- UserSession: The signed-in user and resolved role
- CachedResult: Rows from a live or offline-cache read

Rows arrive from the platform as dicts; each model offers from_row()
for the columns it understands and ignores the rest.
"""

from .job import (
    Job,
    JobStatus,
    DeliveryMethod,
    JOB_STAGES,
    progress_percentage,
    stage_index,
)
from .quote import Quote, QuoteStatus
from .invoice import Invoice, InvoiceItem, InvoiceStatus, InvoiceTotals, PaymentMethod, compute_totals
from .catalog import Service, FinishingOption, FINISHING_OPTIONS, DEFAULT_SERVICES
from .notification import (
    Channel,
    NotificationEvent,
    NotificationRequest,
    NotificationResult,
    NotificationLog,
)
from .company import CompanySettings
from .session import UserSession
from .cached import CachedResult

__all__ = [
    # Job models
    "Job",
    "JobStatus",
    "DeliveryMethod",
    "JOB_STAGES",
    "progress_percentage",
    "stage_index",
    # Quote models
    "Quote",
    "QuoteStatus",
    # Invoice models
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "InvoiceTotals",
    "PaymentMethod",
    "compute_totals",
    # Catalog models
    "Service",
    "FinishingOption",
    "FINISHING_OPTIONS",
    "DEFAULT_SERVICES",
    # Notification models
    "Channel",
    "NotificationEvent",
    "NotificationRequest",
    "NotificationResult",
    "NotificationLog",
    # Settings and session
    "CompanySettings",
    "UserSession",
    "CachedResult",
]
