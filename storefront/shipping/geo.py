from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal

from storefront.utils.money import D, round2

EARTH_RADIUS_KM = 6371


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


def haversine_km(a: Coordinates, b: Coordinates) -> Decimal:
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round2(EARTH_RADIUS_KM * c)


def shipping_cost_from_distance(distance_km, base_fee, per_km_rate) -> Decimal:
    base = D(base_fee)
    calculated = round2(base + D(distance_km) * D(per_km_rate))
    # never below the base fee, even for a negative rate
    return max(base, calculated)
