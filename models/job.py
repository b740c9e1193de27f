"""
Job data models.

A job moves through a fixed, ordered list of production stages. The
position of its stage in that list drives the progress bar, the display
screens and the workflow counters.

Stage order:
    Pending -> Received -> Processing -> Printing -> Finishing
    -> Waiting for Collection -> Out for Delivery -> Completed -> Cancelled

Any stage may be assigned at any time; staff use this to correct mistakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


class JobStatus(Enum):
    """
    Production stage of a print job.

    Declaration order is the stage order.
    """

    PENDING = "Pending"
    """Submitted, not yet looked at by staff."""

    RECEIVED = "Received"
    """Staff acknowledged the job and its files."""

    PROCESSING = "Processing"
    """Artwork preparation and proofing."""

    PRINTING = "Printing"
    """On the press."""

    FINISHING = "Finishing"
    """Lamination, cutting, binding and other finishing."""

    WAITING_FOR_COLLECTION = "Waiting for Collection"
    """Ready at the counter."""

    OUT_FOR_DELIVERY = "Out for Delivery"
    """Handed to a driver."""

    COMPLETED = "Completed"
    """Delivered or collected. Stamps the completion time."""

    CANCELLED = "Cancelled"
    """Abandoned by the customer or the shop."""


JOB_STAGES = tuple(status.value for status in JobStatus)

# Stages shown in the waiting-area "in production" queue
ACTIVE_STAGES = tuple(JOB_STAGES[:JOB_STAGES.index("Finishing") + 1])

# Stages shown in the waiting-area "ready" list
READY_STAGES = ("Waiting for Collection", "Out for Delivery", "Completed")

# Workflow counter buckets
PENDING_BUCKET = ("Pending", "Received")
COMPLETED_BUCKET = ("Completed", "Waiting for Collection")
CANCELLED_BUCKET = ("Cancelled",)


class DeliveryMethod(Enum):
    """How the finished job reaches the customer."""

    COLLECTION = "Collection"
    LOCAL_DELIVERY = "Local Delivery"
    NATIONWIDE_DELIVERY = "Nationwide Delivery"
    EXPRESS_DELIVERY = "Express Delivery"

    @property
    def needs_address(self) -> bool:
        return self is not DeliveryMethod.COLLECTION


def stage_index(status: Optional[str]) -> int:
    """Zero-based position of ``status`` in the stage order, -1 if unknown."""
    try:
        return JOB_STAGES.index(status)
    except ValueError:
        return -1


def is_valid_status(status: Optional[str]) -> bool:
    return status in JOB_STAGES


def progress_percentage(status: Optional[str]) -> float:
    """
    Linear progress through the stage list.

    ``(index + 1) / 9 * 100``; an unknown status is 0.
    """
    index = stage_index(status)
    if index < 0:
        return 0.0
    return (index + 1) / len(JOB_STAGES) * 100


PRICE_PENDING_LABEL = "Pending"


@dataclass
class Job:
    """
    A print job row.

    ``tracking_code`` is assigned on creation and never changes.
    ``actual_completion`` is stamped when the job reaches Completed.
    """

    id: Any
    """Platform row id."""

    title: str
    """Customer-facing job title."""

    status: str = JobStatus.PENDING.value
    """Current stage name (see JOB_STAGES)."""

    customer_uuid: Optional[str] = None
    """Owning customer id."""

    service_id: Optional[int] = None
    """Catalog service this job was ordered as."""

    quantity: int = 1
    """Number of copies."""

    tracking_code: Optional[str] = None
    """Public lookup code used in /track URLs."""

    quoted_price: Optional[float] = None
    """Price offered before production."""

    final_price: Optional[float] = None
    """Price charged; counts as revenue once set."""

    delivery_method: str = DeliveryMethod.COLLECTION.value
    delivery_address: Optional[str] = None
    description: Optional[str] = None
    width: Optional[float] = None
    length: Optional[float] = None
    service_subtype: Optional[str] = None
    paper_type: Optional[str] = None
    paper_weight: Optional[str] = None
    finishing_options: List[str] = field(default_factory=list)

    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    due_date: Optional[str] = None
    estimated_completion: Optional[str] = None
    actual_completion: Optional[str] = None

    customer: Dict[str, Any] = field(default_factory=dict)
    """Embedded customer columns when the query expanded them."""

    service: Dict[str, Any] = field(default_factory=dict)
    """Embedded service columns when the query expanded them."""

    @property
    def progress(self) -> float:
        return progress_percentage(self.status)

    @property
    def is_completed(self) -> bool:
        return self.status == JobStatus.COMPLETED.value

    @property
    def price_display(self) -> Any:
        """Final price, else quoted price, else the pending placeholder."""
        if self.final_price is not None:
            return self.final_price
        if self.quoted_price is not None:
            return self.quoted_price
        return PRICE_PENDING_LABEL

    def to_dict(self) -> Dict[str, Any]:
        """Row-shaped dictionary plus derived progress."""
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "customer_uuid": self.customer_uuid,
            "service_id": self.service_id,
            "quantity": self.quantity,
            "tracking_code": self.tracking_code,
            "quoted_price": self.quoted_price,
            "final_price": self.final_price,
            "delivery_method": self.delivery_method,
            "delivery_address": self.delivery_address,
            "description": self.description,
            "width": self.width,
            "length": self.length,
            "service_subtype": self.service_subtype,
            "paper_type": self.paper_type,
            "paper_weight": self.paper_weight,
            "finishing_options": list(self.finishing_options),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "due_date": self.due_date,
            "estimated_completion": self.estimated_completion,
            "actual_completion": self.actual_completion,
            "progress": round(self.progress, 1),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Job":
        """Create from a platform row (tolerates missing columns)."""
        return cls(
            id=row.get("id"),
            title=row.get("title") or "",
            status=row.get("status") or JobStatus.PENDING.value,
            customer_uuid=row.get("customer_uuid"),
            service_id=row.get("service_id"),
            quantity=row.get("quantity") or 1,
            tracking_code=row.get("tracking_code"),
            quoted_price=row.get("quoted_price"),
            final_price=row.get("final_price"),
            delivery_method=row.get("delivery_method") or DeliveryMethod.COLLECTION.value,
            delivery_address=row.get("delivery_address"),
            description=row.get("description"),
            width=row.get("width"),
            length=row.get("length"),
            service_subtype=row.get("service_subtype"),
            paper_type=row.get("paper_type"),
            paper_weight=row.get("paper_weight"),
            finishing_options=list(row.get("finishing_options") or []),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            due_date=row.get("due_date"),
            estimated_completion=row.get("estimated_completion"),
            actual_completion=row.get("actual_completion"),
            customer=row.get("customers") or {},
            service=row.get("services") or {},
        )
