"""
Purpose: Address -> coordinate geocoding.
What it does:
Calls the Google Geocoding API and returns the first match as a GeoPoint.
Lookups are cached per normalized address; misses and failures return None
so ride preparation can carry on with the coordinates it already has.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Dict, Optional

import requests
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def to_osrm_format(self) -> str:
        return f"{self.lng},{self.lat}"


class GoogleGeocoder:
    """
    geocode(address) -> GeoPoint | None
    """
    def __init__(self, api_key: Optional[str] = None, timeout: int = 5,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key or os.getenv("GOOGLE_MAPS_API_KEY")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._cache: Dict[str, GeoPoint] = {}
        self._lock = threading.Lock()

        if not self.api_key:
            raise ValueError("Google Maps API key not set. Please set GOOGLE_MAPS_API_KEY in the .env file.")

    @staticmethod
    def normalize(address: str) -> str:
        return " ".join(address.strip().lower().split())

    def geocode(self, address: Optional[str]) -> Optional[GeoPoint]:
        if address is None or not address.strip():
            return None

        key = self.normalize(address)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            response = self.session.get(
                GEOCODE_URL,
                params={"address": address, "key": self.api_key},
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to geocode address '{address}': {e}")
            return None

        results = data.get("results") or []
        if not results:
            logger.warning(f"No geocoding result for address '{address}' (status={data.get('status')})")
            return None

        try:
            location = results[0]["geometry"]["location"]
            point = GeoPoint(lat=float(location["lat"]), lng=float(location["lng"]))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed geocoding response for '{address}': {e}")
            return None

        with self._lock:
            self._cache[key] = point
        return point
