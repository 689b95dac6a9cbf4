"""
Purpose: In-memory driver repository.
What it does:
Holds Driver snapshots keyed by id and bumps a version on every write,
so an optimization run can detect that a driver changed after it was read.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .models import Driver


class StaleRecordError(Exception):
    """Raised when a record is written with a version that is no longer current."""
    pass


class DriverStore:
    def __init__(self, drivers: Iterable[Driver] = ()):
        self._drivers: Dict[str, Driver] = {}
        self._lock = threading.Lock()
        for driver in drivers:
            self.add(driver)

    def add(self, driver: Driver) -> Driver:
        with self._lock:
            self._drivers[driver.id] = driver
            return driver

    def get(self, driver_id: str) -> Optional[Driver]:
        with self._lock:
            return self._drivers.get(driver_id)

    def all(self) -> List[Driver]:
        # insertion order is the tie-break order used by scoring
        with self._lock:
            return list(self._drivers.values())

    def current_version(self, driver_id: str) -> Optional[int]:
        driver = self.get(driver_id)
        return driver.version if driver else None

    def save(self, driver: Driver) -> Driver:
        """
        Compare-and-set write. The caller's snapshot must carry the current version.
        """
        with self._lock:
            current = self._drivers.get(driver.id)
            if current is not None and current.version != driver.version:
                raise StaleRecordError(
                    f"Driver {driver.id} is at version {current.version}, write was based on {driver.version}"
                )
            stored = replace(driver, version=driver.version + 1)
            self._drivers[driver.id] = stored
            return stored
