"""
Purpose: In-memory ride repository.
What it does:
- Owns the ride records by id
- Hands out copies so an optimization run works on a snapshot
- Writes back with optimistic versioning: a save based on an old version fails

Provides operations:
   - add(ride)
   - get(ride_id) / get_many(ride_ids)
   - find_unassigned_for_date(date)
   - save(ride)

Rule: Store owns persistence and versions, the engine owns assignment logic.
"""

from __future__ import annotations

import copy
import threading
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from drivers.store import StaleRecordError
from .models import Ride, RideStatus

ASSIGNABLE_STATUSES = (RideStatus.REQUESTED, RideStatus.SCHEDULED)


class RideStore:
    def __init__(self, rides: Iterable[Ride] = ()):
        self._rides: Dict[str, Ride] = {}
        self._lock = threading.Lock()
        for ride in rides:
            self.add(ride)

    def add(self, ride: Ride) -> None:
        with self._lock:
            if ride.id in self._rides:
                # idempotency : dont double insert
                return
            self._rides[ride.id] = copy.deepcopy(ride)

    def get(self, ride_id: str) -> Optional[Ride]:
        with self._lock:
            ride = self._rides.get(ride_id)
            return copy.deepcopy(ride) if ride else None

    def get_many(self, ride_ids: Iterable[str]) -> Tuple[List[Ride], List[str]]:
        """
        Returns (found rides in request order, missing ids). Repeated ids are
        returned once.
        """
        found: List[Ride] = []
        missing: List[str] = []
        with self._lock:
            for ride_id in dict.fromkeys(ride_ids):
                ride = self._rides.get(ride_id)
                if ride is None:
                    missing.append(ride_id)
                else:
                    found.append(copy.deepcopy(ride))
        return found, missing

    def all(self) -> List[Ride]:
        with self._lock:
            return [copy.deepcopy(ride) for ride in self._rides.values()]

    def find_unassigned_for_date(self, target_date: date) -> List[Ride]:
        """
        Rides picked up on target_date that still have no pickup driver
        and are in a state the optimizer may assign.
        """
        with self._lock:
            rides = [
                ride for ride in self._rides.values()
                if ride.pickup_time.date() == target_date
                and ride.pickup_driver_id is None
                and ride.status in ASSIGNABLE_STATUSES
            ]
            rides.sort(key=lambda ride: ride.pickup_time)
            return [copy.deepcopy(ride) for ride in rides]

    def save(self, ride: Ride) -> Ride:
        """
        Compare-and-set write. Raises StaleRecordError if someone else saved the
        ride since this copy was read. Returns the stored copy with its new version.
        """
        with self._lock:
            current = self._rides.get(ride.id)
            if current is not None and current.version != ride.version:
                raise StaleRecordError(
                    f"Ride {ride.id} is at version {current.version}, write was based on {ride.version}"
                )
            stored = copy.deepcopy(ride)
            stored.version = ride.version + 1
            self._rides[ride.id] = stored
            ride.version = stored.version
            return copy.deepcopy(stored)
