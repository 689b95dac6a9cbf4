#Marks routing as a package.
#Re-exports the geo/distance providers so other modules import from routing
#without knowing internal file names.
#No business logic.

from .geo import (
    HaversineDistanceProvider,
    InvalidCoordinatesError,
    haversine_km,
    is_valid_coordinates,
    validate_coordinates,
)
from .geocoding import GeoPoint, GoogleGeocoder
from .osrm_client import OSRMClient, OSRMError

__all__ = [
    "haversine_km",
    "validate_coordinates",
    "is_valid_coordinates",
    "InvalidCoordinatesError",
    "HaversineDistanceProvider",
    "OSRMClient",
    "OSRMError",
    "GoogleGeocoder",
    "GeoPoint",
]
