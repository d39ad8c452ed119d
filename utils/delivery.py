"""Delivery cost and transit time estimates for a single transport service."""

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

from utils.distances import get_distance
from utils.tariffs import rate_card_for

CENTS = Decimal("0.01")
# Upper bound for each dimension (m) and the weight (kg) of a single cargo
MAX_CARGO_VALUE = Decimal("1000000")


@dataclass(frozen=True)
class DeliveryQuote:
    delivery_days: int = 0
    total_cost: Decimal = Decimal("0.00")
    distance: float = 0.0
    volume: float = 0.0
    is_valid: bool = False
    error_message: str = ""

    @classmethod
    def invalid(cls, message: str) -> "DeliveryQuote":
        return cls(is_valid=False, error_message=message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delivery_days": self.delivery_days,
            "total_cost": float(self.total_cost),
            "distance": self.distance,
            "volume": self.volume,
        }


def _to_decimal(value) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def calculate_delivery(service, from_city, to_city, length, width, height, weight) -> DeliveryQuote:
    """Quote ``service`` for one cargo on one route.

    Never raises for bad input: an invalid quote carries ``error_message``.
    Unknown city pairs are priced with the default distance.
    """
    if service is None:
        return DeliveryQuote.invalid("transport service is required")

    dimensions = {
        "length": _to_decimal(length),
        "width": _to_decimal(width),
        "height": _to_decimal(height),
        "weight": _to_decimal(weight),
    }
    unparsed = [name for name, value in dimensions.items() if value is None]
    if unparsed:
        return DeliveryQuote.invalid(f"{', '.join(unparsed)} must be numeric")
    if any(value <= 0 for value in dimensions.values()):
        return DeliveryQuote.invalid("length, width, height and weight must be greater than 0")
    if any(value > MAX_CARGO_VALUE for value in dimensions.values()):
        return DeliveryQuote.invalid(
            f"length, width, height and weight must not exceed {MAX_CARGO_VALUE}"
        )

    card = rate_card_for(getattr(service, "delivery_type", None))
    base_price = _to_decimal(getattr(service, "price", 0)) or Decimal("0")
    base_days = int(getattr(service, "delivery_days", 0) or 0)

    volume = dimensions["length"] * dimensions["width"] * dimensions["height"]
    cargo_weight = dimensions["weight"]
    distance = get_distance(from_city, to_city)

    total_cost = (
        base_price
        + card.volume_rate * volume
        + card.weight_rate * cargo_weight
        + card.distance_rate * Decimal(str(distance))
    ).quantize(CENTS, rounding=ROUND_HALF_UP)

    delivery_days = (
        base_days
        + int(cargo_weight // card.kg_per_extra_day)
        + math.ceil(distance / card.km_per_day)
    )

    return DeliveryQuote(
        delivery_days=delivery_days,
        total_cost=total_cost,
        distance=distance,
        volume=float(volume),
        is_valid=True,
    )
