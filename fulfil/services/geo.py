# fulfil/services/geo.py
from __future__ import annotations

import math
from dataclasses import dataclass

from fulfil.services.order_errors import InvalidInput

# 赤道半径（km），与上游地理库一致
EARTH_RADIUS_KM = 6378.137


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        lat = float(self.latitude)
        lon = float(self.longitude)
        if math.isnan(lat) or not -90.0 <= lat <= 90.0:
            raise InvalidInput(f"latitude out of range: {self.latitude}", context={"latitude": self.latitude})
        if math.isnan(lon) or not -180.0 <= lon <= 180.0:
            raise InvalidInput(
                f"longitude out of range: {self.longitude}", context={"longitude": self.longitude}
            )
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)


def distance_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance (haversine), in km."""
    if a == b:
        return 0.0

    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    # 浮点误差可能让 h 略大于 1
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def shipping_cost(distance: float, weight_kg: float, rate_per_kg_per_km: float) -> float:
    """distance * weight * rate；距离或重量为 0 时为 0。"""
    if distance <= 0 or weight_kg <= 0:
        return 0.0
    return distance * weight_kg * rate_per_kg_per_km
