"""Price estimator for new jobs and quote requests."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, Iterable, Optional
import logging

from core.exceptions import ValidationError
from models.catalog import FINISHING_OPTIONS, Service


class PriceEstimator:
    """Produces an indicative price from the catalog.

    The estimate is ``(base_price + finishing per copy) * quantity``, scaled
    by the turnaround multiplier. Staff still set the quoted and final
    prices; this only fills in a starting figure.
    """

    TURNAROUND_MULTIPLIERS = {
        "rush": 1.4,        # Rush = +40%
        "standard": 1.0,    # Standard = list price
        "economy": 0.85,    # Economy = -15%
    }

    def __init__(self) -> None:
        self.logger = logging.getLogger(__name__)

    def estimate(
        self,
        service: Service,
        quantity: int,
        finishing_options: Optional[Iterable[str]] = None,
        turnaround: Optional[str] = None,
    ) -> Dict[str, Any]:
        if quantity is None or int(quantity) < 1:
            raise ValidationError("Quantity must be at least 1", field="quantity")
        quantity = int(quantity)

        finishes = []
        for option_id in finishing_options or []:
            option = FINISHING_OPTIONS.get(option_id)
            if option is None:
                raise ValidationError(f"Unknown finishing option: {option_id}", field="finishing_options")
            if service.available_finishes and option_id not in service.available_finishes:
                raise ValidationError(
                    f"{option.name} is not offered for {service.name}", field="finishing_options"
                )
            finishes.append(option)

        per_copy = Decimal(str(service.base_price)) + sum(
            (Decimal(str(option.price)) for option in finishes), Decimal("0")
        )
        multiplier = self._turnaround_multiplier(turnaround)
        total = (per_copy * quantity * Decimal(str(multiplier))).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )

        self.logger.debug(
            f"Estimate for {service.name}: per_copy={per_copy}, quantity={quantity}, "
            f"multiplier={multiplier}, total={total}"
        )

        return {
            "service_id": service.id,
            "service_name": service.name,
            "quantity": quantity,
            "base_price": float(service.base_price),
            "finishing": [option.to_dict() for option in finishes],
            "price_per_copy": float(per_copy),
            "turnaround_multiplier": multiplier,
            "estimated_total": float(total),
            "requires_dimensions": service.requires_dimensions,
        }

    @classmethod
    def _turnaround_multiplier(cls, turnaround: Optional[str]) -> float:
        return cls.TURNAROUND_MULTIPLIERS.get(turnaround or "standard", 1.0)
