"""
Service catalog data models.

A Service is a printable product type (banners, business cards, ...)
with its configurable options and base price. Finishing options are a
fixed price list added on top of the base price.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional


@dataclass(frozen=True)
class FinishingOption:
    """One finishing step with a flat per-copy price."""

    id: str
    name: str
    category: str
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "category": self.category, "price": self.price}


FINISHING_OPTIONS: Dict[str, FinishingOption] = {
    option.id: option
    for option in (
        FinishingOption("lamination", "Lamination", "protection", 5.00),
        FinishingOption("binding", "Binding", "assembly", 3.00),
        FinishingOption("cutting", "Professional Cutting", "finishing", 2.00),
        FinishingOption("folding", "Folding", "finishing", 1.50),
        FinishingOption("perforation", "Perforation", "finishing", 2.50),
        FinishingOption("embossing", "Embossing", "enhancement", 8.00),
        FinishingOption("uv_coating", "UV Coating", "protection", 6.00),
    )
}

PAPER_TYPES = (
    "A4 Paper", "A3 Paper", "A5 Paper", "Letter Paper", "Legal Paper",
    "Cardstock", "Photo Paper", "Canvas", "Vinyl", "Fabric",
)

PAPER_WEIGHTS = ("70gsm", "80gsm", "100gsm", "120gsm", "150gsm", "200gsm", "250gsm", "300gsm")


@dataclass
class Service:
    """A catalog entry customers can order."""

    id: Any
    name: str
    base_price: float = 0.0
    description: Optional[str] = None
    service_type: Optional[str] = None
    requires_dimensions: bool = False
    is_active: bool = True
    image_url: Optional[str] = None
    available_subtypes: List[str] = field(default_factory=list)
    available_paper_types: List[str] = field(default_factory=list)
    available_paper_weights: List[str] = field(default_factory=list)
    available_finishes: List[str] = field(default_factory=list)

    def finishing_choices(self) -> List[FinishingOption]:
        """Finishing options this service offers, in price-list order."""
        return [
            option for option_id, option in FINISHING_OPTIONS.items()
            if option_id in self.available_finishes
        ]

    def to_row(self) -> Dict[str, Any]:
        """Insertable row (no id)."""
        return {
            "name": self.name,
            "description": self.description,
            "service_type": self.service_type,
            "base_price": self.base_price,
            "requires_dimensions": self.requires_dimensions,
            "is_active": self.is_active,
            "image_url": self.image_url,
            "available_subtypes": list(self.available_subtypes),
            "available_paper_types": list(self.available_paper_types),
            "available_paper_weights": list(self.available_paper_weights),
            "available_finishes": list(self.available_finishes),
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_row()
        data["id"] = self.id
        data["finishing_options"] = [option.to_dict() for option in self.finishing_choices()]
        return data

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Service":
        return cls(
            id=row.get("id"),
            name=row.get("name") or "",
            base_price=float(row.get("base_price") or 0.0),
            description=row.get("description"),
            service_type=row.get("service_type"),
            requires_dimensions=bool(row.get("requires_dimensions")),
            is_active=row.get("is_active") is not False,
            image_url=row.get("image_url"),
            available_subtypes=list(row.get("available_subtypes") or []),
            available_paper_types=list(row.get("available_paper_types") or []),
            available_paper_weights=list(row.get("available_paper_weights") or []),
            available_finishes=list(row.get("available_finishes") or []),
        )


DEFAULT_SERVICES = (
    Service(
        id=None,
        name="SAV (Save the Date)",
        description="Custom save the date cards for weddings and events",
        service_type="SAV",
        base_price=25.00,
        available_subtypes=["Wedding SAV", "Birthday SAV", "Corporate SAV", "Event SAV", "Custom SAV"],
        available_paper_types=["Cardstock", "Photo Paper"],
        available_paper_weights=["150gsm", "200gsm", "250gsm"],
        available_finishes=["lamination", "uv_coating"],
    ),
    Service(
        id=None,
        name="Banner Printing",
        description="High-quality banners for indoor and outdoor use",
        service_type="Banner",
        base_price=35.00,
        requires_dimensions=True,
        available_subtypes=["Outdoor Banner", "Indoor Banner", "Vinyl Banner", "Mesh Banner", "Fabric Banner"],
        available_paper_types=["Vinyl", "Fabric", "Canvas"],
        available_paper_weights=["200gsm", "250gsm", "300gsm"],
        available_finishes=["cutting", "embossing"],
    ),
    Service(
        id=None,
        name="Business Cards",
        description="Professional business cards with premium finishes",
        service_type="Business Card",
        base_price=15.00,
        available_subtypes=["Standard", "Premium", "Luxury"],
        available_paper_types=["Cardstock"],
        available_paper_weights=["200gsm", "250gsm", "300gsm"],
        available_finishes=["lamination", "uv_coating", "embossing"],
    ),
    Service(
        id=None,
        name="Flyers & Leaflets",
        description="Eye-catching flyers for marketing and promotions",
        service_type="Flyer",
        base_price=12.00,
        available_subtypes=["A4 Flyer", "A5 Flyer", "Custom Size"],
        available_paper_types=["A4 Paper", "A5 Paper", "Cardstock"],
        available_paper_weights=["80gsm", "100gsm", "120gsm", "150gsm"],
        available_finishes=["folding", "cutting", "lamination"],
    ),
    Service(
        id=None,
        name="Brochures",
        description="Multi-fold brochures for detailed information",
        service_type="Brochure",
        base_price=20.00,
        available_subtypes=["Tri-fold", "Bi-fold", "Z-fold", "Custom"],
        available_paper_types=["A4 Paper", "Cardstock"],
        available_paper_weights=["100gsm", "120gsm", "150gsm", "200gsm"],
        available_finishes=["folding", "binding", "lamination"],
    ),
    Service(
        id=None,
        name="Posters",
        description="Large format posters for advertising and decoration",
        service_type="Poster",
        base_price=30.00,
        requires_dimensions=True,
        available_subtypes=["A3 Poster", "A2 Poster", "A1 Poster", "Custom Size"],
        available_paper_types=["Photo Paper", "Canvas", "Cardstock"],
        available_paper_weights=["150gsm", "200gsm", "250gsm"],
        available_finishes=["lamination", "cutting"],
    ),
)
