"""
Purpose: Accumulates the outcome of one optimization run.
What it does:
- Tracks driver -> assigned ride ids and unassigned ride -> reason
- Keeps the ordered list of assignment decisions (used for audit detail order)
- Merges phase results into the batch result
- Derives counts and the success rate

Rule: Bookkeeping only. No driver selection here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set

from drivers.models import VehicleType


class AssignmentMethod:
    EMERGENCY = "EMERGENCY_ASSIGNMENT"
    ROUND_TRIP = "ROUND_TRIP_ASSIGNMENT"
    ONE_WAY = "ONE_WAY_ASSIGNMENT"
    SIMPLE_FALLBACK = "SIMPLE_FALLBACK"


class OptimizationStrategy:
    PHASED_GREEDY = "PHASED_GREEDY"
    SIMPLE_FALLBACK = "SIMPLE_FALLBACK"


@dataclass(frozen=True)
class RideAssignment:
    """
    One planned decision: which driver(s) carry a ride and why.
    """
    ride_id: str
    pickup_driver_id: str
    dropoff_driver_id: str
    phase: str
    method: str
    vehicle_type: Optional[VehicleType] = None
    score: Optional[float] = None
    distance_km: Optional[float] = None
    sequence: int = 0
    decided_at: Optional[datetime] = None


@dataclass
class OptimizationResult:
    batch_id: str
    total_rides: int = 0
    driver_assignments: Dict[str, List[str]] = field(default_factory=dict)
    unassigned_rides: Dict[str, str] = field(default_factory=dict)
    assignments: List[RideAssignment] = field(default_factory=list)
    strategy: str = OptimizationStrategy.PHASED_GREEDY

    @classmethod
    def create(cls, batch_id: str, total_rides: int = 0) -> OptimizationResult:
        return cls(batch_id=batch_id, total_rides=total_rides)

    @classmethod
    def empty(cls, batch_id: str = "") -> OptimizationResult:
        return cls(batch_id=batch_id)

    def add_assigned_ride(self, driver_id: str, ride_id: str) -> None:
        self.driver_assignments.setdefault(driver_id, []).append(ride_id)
        self.unassigned_rides.pop(ride_id, None)

    def add_assignment(self, assignment: RideAssignment) -> None:
        self.assignments.append(assignment)
        self.add_assigned_ride(assignment.pickup_driver_id, assignment.ride_id)

    def add_unassigned_ride(self, ride_id: str, reason: str) -> None:
        if self.is_assigned(ride_id):
            return
        self.unassigned_rides[ride_id] = reason

    def is_assigned(self, ride_id: str) -> bool:
        return any(ride_id in ride_ids for ride_ids in self.driver_assignments.values())

    def merge(self, other: OptimizationResult) -> None:
        """
        Folds a phase result into this one. A ride already assigned here is
        never turned back into an unassigned ride by the other result.
        """
        for driver_id, ride_ids in other.driver_assignments.items():
            for ride_id in ride_ids:
                self.add_assigned_ride(driver_id, ride_id)

        for ride_id, reason in other.unassigned_rides.items():
            self.add_unassigned_ride(ride_id, reason)

        self.assignments.extend(other.assignments)

    def revoke_assignment(self, ride_id: str, reason: str) -> Optional[RideAssignment]:
        """
        Undoes a planned decision (e.g. the commit lost a version race)
        and records the ride as unassigned.
        """
        revoked = None
        for assignment in self.assignments:
            if assignment.ride_id == ride_id:
                revoked = assignment
                break
        if revoked is not None:
            self.assignments.remove(revoked)

        for driver_id in list(self.driver_assignments):
            ride_ids = self.driver_assignments[driver_id]
            if ride_id in ride_ids:
                ride_ids.remove(ride_id)
            if not ride_ids:
                del self.driver_assignments[driver_id]

        self.unassigned_rides[ride_id] = reason
        return revoked

    def assignment_for(self, ride_id: str) -> Optional[RideAssignment]:
        for assignment in self.assignments:
            if assignment.ride_id == ride_id:
                return assignment
        return None

    @property
    def assigned_ride_count(self) -> int:
        return sum(len(ride_ids) for ride_ids in self.driver_assignments.values())

    @property
    def unassigned_ride_count(self) -> int:
        return len(self.unassigned_rides)

    @property
    def assigned_driver_ids(self) -> Set[str]:
        return {driver_id for driver_id, ride_ids in self.driver_assignments.items() if ride_ids}

    @property
    def assigned_driver_count(self) -> int:
        return len(self.assigned_driver_ids)

    @property
    def success_rate(self) -> float:
        if self.total_rides == 0:
            return 0.0
        return self.assigned_ride_count * 100.0 / self.total_rides
