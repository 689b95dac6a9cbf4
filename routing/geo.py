"""
Purpose: Pure great-circle distance math.
What it does:
Validates (lat, lon) pairs and computes haversine distances in kilometers.
Used for deadhead distance (driver base -> pickup/dropoff) by the dispatch scoring layer.

Rule: Stateless. No HTTP, no dispatch rules.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0


class InvalidCoordinatesError(ValueError):
    """Raised when a coordinate pair is missing, non-finite or out of range."""
    pass


def validate_coordinates(coordinates: LatLon) -> LatLon:
    """
    Returns the pair as floats or raises InvalidCoordinatesError.
    Latitude must be within [-90, 90], longitude within [-180, 180].
    """
    if coordinates is None or len(coordinates) != 2:
        raise InvalidCoordinatesError(f"Expected a (lat, lon) pair, got {coordinates!r}")

    lat, lon = coordinates
    if lat is None or lon is None:
        raise InvalidCoordinatesError(f"Missing coordinate in {coordinates!r}")

    lat, lon = float(lat), float(lon)
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidCoordinatesError(f"Non-finite coordinate in {coordinates!r}")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinatesError(f"Latitude {lat} out of range")
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinatesError(f"Longitude {lon} out of range")

    return lat, lon


def is_valid_coordinates(coordinates) -> bool:
    try:
        validate_coordinates(coordinates)
    except (InvalidCoordinatesError, TypeError, ValueError):
        return False
    return True


def haversine_km(origin: LatLon, destination: LatLon) -> float:
    """
    Great-circle distance between two (lat, lon) points in kilometers.
    """
    lat1, lon1 = validate_coordinates(origin)
    lat2, lon2 = validate_coordinates(destination)

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


@dataclass(frozen=True)
class HaversineDistanceProvider:
    """
    Offline distance provider with the same call shape as OSRMClient.distance.
    Returns straight-line meters, scaled by an optional road detour factor.
    """
    detour_factor: float = 1.0

    def distance(self, origin: LatLon, destination: LatLon) -> float:
        return haversine_km(origin, destination) * 1000.0 * self.detour_factor
