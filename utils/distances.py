"""Static road distances (km) between the cities we quote most often.

The table is a heuristic, not a routing engine: pairs that are missing fall
back to ``DEFAULT_DISTANCE_KM``.
"""

from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Tuple

DEFAULT_DISTANCE_KM = 500.0

CITY_ALIASES: Mapping[str, str] = MappingProxyType({
    "спб": "санкт-петербург",
    "питер": "санкт-петербург",
    "санкт петербург": "санкт-петербург",
    "мск": "москва",
    "екб": "екатеринбург",
    "нск": "новосибирск",
    "ростов": "ростов-на-дону",
    "нижний": "нижний новгород",
})

_ROUTES: Tuple[Tuple[str, str, float], ...] = (
    ("москва", "санкт-петербург", 635),
    ("москва", "екатеринбург", 1416),
    ("москва", "новосибирск", 3354),
    ("москва", "красноярск", 4205),
    ("москва", "иркутск", 5152),
    ("москва", "владивосток", 9100),
    ("москва", "ростов-на-дону", 1070),
    ("москва", "сочи", 1360),
    ("москва", "казань", 820),
    ("москва", "нижний новгород", 420),
    ("москва", "самара", 1050),
    ("москва", "волгоград", 970),
    ("москва", "воронеж", 520),
    ("москва", "саратов", 850),
    ("москва", "пермь", 1380),
    ("москва", "уфа", 1160),
    ("москва", "челябинск", 1510),
    ("москва", "омск", 2550),
    ("москва", "тюмень", 1720),
    ("санкт-петербург", "екатеринбург", 1780),
    ("санкт-петербург", "новосибирск", 3720),
    ("санкт-петербург", "калининград", 550),
    ("санкт-петербург", "мурманск", 1050),
    ("санкт-петербург", "архангельск", 1130),
    ("санкт-петербург", "петрозаводск", 320),
    ("санкт-петербург", "великий новгород", 180),
    ("екатеринбург", "новосибирск", 1940),
    ("екатеринбург", "челябинск", 200),
    ("екатеринбург", "пермь", 360),
    ("екатеринбург", "тюмень", 320),
    ("екатеринбург", "уфа", 520),
    ("новосибирск", "омск", 650),
    ("новосибирск", "красноярск", 850),
    ("новосибирск", "томск", 270),
    ("новосибирск", "барнаул", 230),
)


def _build_table(routes) -> Mapping[FrozenSet[str], float]:
    table: Dict[FrozenSet[str], float] = {}
    for origin, destination, km in routes:
        table[frozenset((origin, destination))] = float(km)
    return MappingProxyType(table)


# Keyed by an unordered pair, so lookups are symmetric by construction.
DISTANCES = _build_table(_ROUTES)


def normalise_city(name) -> str:
    city = " ".join(str(name or "").split()).casefold()
    return CITY_ALIASES.get(city, city)


def known_cities() -> FrozenSet[str]:
    return frozenset(city for pair in DISTANCES for city in pair)


def lookup_distance(from_city, to_city):
    """Return the tabled distance or ``None`` when the pair is unknown."""
    origin = normalise_city(from_city)
    destination = normalise_city(to_city)

    if origin and origin == destination:
        return 0.0
    return DISTANCES.get(frozenset((origin, destination)))


def get_distance(from_city, to_city) -> float:
    distance = lookup_distance(from_city, to_city)
    return DEFAULT_DISTANCE_KM if distance is None else distance
