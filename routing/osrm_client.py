#Purpose: The OSRM "adapter/client" used as the road-distance provider.
#Sole responsibility: talk to OSRM via HTTP and return normalized outputs.
#Encapsulates OSRM-specific details:
#coordinate formatting (lon,lat)
#URL construction (/route)
#timeouts and error handling
#It should not contain dispatch rules or scoring.

from dotenv import load_dotenv
import logging
import os
from typing import List, Tuple, Dict, Optional
import requests

from .geo import validate_coordinates

# Read OSRM base URL from environment
# Example in .env:
# OSRM_BASE_URL=http://router.project-osrm.org
load_dotenv()

logger = logging.getLogger(__name__)

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]


class OSRMError(Exception):
    """Raised when OSRM is unreachable or answers with a non-Ok code."""
    pass


class OSRMClient:
    """
    OSRM Adapter / Client

    Sole responsibility:
    - Talk to OSRM via HTTP
    - Convert internal (lat, lon) -> OSRM (lon,lat)
    - Return normalized outputs (meters / seconds)
    """
    def __init__(self, base_url: Optional[str] = None, profile: str = "driving", timeout: int = 5,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or os.getenv("OSRM_BASE_URL") or "").rstrip("/")
        self.timeout = timeout  # seconds to wait for OSRM before giving up
        self.profile = profile  # driving, walking, cycling
        self.session = session or requests.Session()

        if not self.base_url:
            raise ValueError("OSRM base URL not set. Please set OSRM_BASE_URL in the .env file.")

    def format_coordinates(self, coords: List[LatLon]) -> str:
        """Convert list of (lat, lon) to OSRM format 'lon,lat;lon,lat;...'"""
        return ';'.join(f"{lon},{lat}" for lat, lon in (validate_coordinates(c) for c in coords))

    def compute_route(self, coordinates: List[LatLon]) -> Dict[str, float]:
        """
        Calls the OSRM /route endpoint with the given coordinates.

        Returns:
            {
                "distance": float, # in meters
                "duration": float, # in seconds
            }
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(coordinates)}"

        try:
            response = self.session.get(
                url,
                params={"overview": "false"},  # geometry is not needed
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise OSRMError(f"OSRM request failed: {e}") from e

        if data.get("code") != "Ok" or not data.get("routes"):
            raise OSRMError(f"OSRM error: {data.get('message', 'Unknown error')}")

        route = data["routes"][0]  # OSRM may return alternatives, first is best
        return {
            "distance": float(route["distance"]),
            "duration": float(route["duration"]),
        }

    def distance(self, origin: LatLon, destination: LatLon) -> float:
        """
        Road distance in meters between two points.
        """
        route = self.compute_route([origin, destination])
        logger.debug(f"OSRM distance {origin} -> {destination}: {route['distance']:.0f}m")
        return route["distance"]
