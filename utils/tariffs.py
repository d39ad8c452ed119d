from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType


@dataclass(frozen=True)
class RateCard:
    volume_rate: Decimal    # per cubic metre
    weight_rate: Decimal    # per kg
    distance_rate: Decimal  # per km
    km_per_day: int
    kg_per_extra_day: int = 1000


DEFAULT_RATE_CARD = RateCard(
    volume_rate=Decimal("50"),
    weight_rate=Decimal("2"),
    distance_rate=Decimal("1.5"),
    km_per_day=500,
)

# Keyed by TransportService.delivery_type
RATE_CARDS = MappingProxyType({
    "fura": DEFAULT_RATE_CARD,
    "malotonnazhnyi": RateCard(
        volume_rate=Decimal("40"), weight_rate=Decimal("2.5"), distance_rate=Decimal("1.2"), km_per_day=600,
    ),
    "avia": RateCard(
        volume_rate=Decimal("120"), weight_rate=Decimal("6"), distance_rate=Decimal("4"), km_per_day=3000,
    ),
    "poezd": RateCard(
        volume_rate=Decimal("30"), weight_rate=Decimal("1"), distance_rate=Decimal("0.9"), km_per_day=700,
    ),
    "korabl": RateCard(
        volume_rate=Decimal("20"), weight_rate=Decimal("0.5"), distance_rate=Decimal("0.6"), km_per_day=300,
        kg_per_extra_day=5000,
    ),
    "multimodal": RateCard(
        volume_rate=Decimal("45"), weight_rate=Decimal("1.8"), distance_rate=Decimal("1.3"), km_per_day=450,
    ),
})


def rate_card_for(delivery_type) -> RateCard:
    if not delivery_type:
        return DEFAULT_RATE_CARD
    return RATE_CARDS.get(str(delivery_type).strip().lower(), DEFAULT_RATE_CARD)
