"""
Purpose: Get rides ready for an optimization run.
What it does:
- Geocodes pickup/dropoff locations that only carry an address
- Records the pickup -> dropoff road distance when a distance provider is configured

Rides whose coordinates are still invalid afterwards are passed through untouched;
the engine treats malformed coordinates as an optimization failure.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Protocol, Tuple

from .models import Location, Ride

logger = logging.getLogger(__name__)

LatLon = Tuple[float, float]


class Geocoder(Protocol):
    def geocode(self, address: Optional[str]): ...


class DistanceProvider(Protocol):
    def distance(self, origin: LatLon, destination: LatLon) -> float: ...


def geocode_location(location: Location, geocoder: Geocoder) -> Location:
    if location.has_coordinates() or not location.address:
        return location

    point = geocoder.geocode(location.address)
    if point is None:
        logger.warning(f"Could not geocode '{location.address}', keeping location without coordinates")
        return location

    return replace(location, lat=point.lat, lng=point.lng)


def prepare_rides(
    rides: List[Ride],
    geocoder: Optional[Geocoder] = None,
    distance_provider: Optional[DistanceProvider] = None,
) -> List[Ride]:
    """
    Mutates and returns the given rides.
    """
    for ride in rides:
        if geocoder is not None:
            ride.pickup = geocode_location(ride.pickup, geocoder)
            ride.dropoff = geocode_location(ride.dropoff, geocoder)

        if distance_provider is None or ride.route_distance_m is not None:
            continue
        if not (ride.pickup.has_coordinates() and ride.dropoff.has_coordinates()):
            continue

        try:
            ride.route_distance_m = distance_provider.distance(ride.pickup.coordinates, ride.dropoff.coordinates)
        except Exception as e:
            logger.warning(f"Distance lookup failed for ride {ride.id}: {e}")

    return rides
