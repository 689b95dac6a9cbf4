"""
Purpose: Immutable record of what one optimization run did.
What it does:
- Builds an AssignmentAudit from the run result, the rides and their categorization
- Persists it through an AuditStore
- Never lets an audit problem fail the run: persistence errors are logged and dropped
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from rides.categorizer import RideCategorization, categorize_rides
from rides.models import Ride

from .policy import DEFAULT_ASSIGNED_BY
from .result import OptimizationResult, RideAssignment

logger = logging.getLogger(__name__)

FAILED_STRATEGY = "FAILED"


@dataclass(frozen=True)
class RideAssignmentDetail:
    ride_id: str
    patient_name: str
    pickup_address: str
    dropoff_address: str
    pickup_driver_id: Optional[str]
    dropoff_driver_id: Optional[str]
    vehicle_type: Optional[str]
    priority: str
    structure: str
    phase: Optional[str]
    method: Optional[str]
    assigned_at: Optional[datetime]
    route_distance_m: Optional[float] = None


@dataclass(frozen=True)
class AssignmentAudit:
    batch_id: str
    assignment_date: date
    assignment_time: datetime
    total_rides: int
    assigned_rides: int
    unassigned_rides: int
    assigned_drivers: int
    success_rate: float
    emergency_rides: int
    wheelchair_rides: int
    stretcher_rides: int
    round_trip_rides: int
    triggered_by: str
    optimization_strategy: str
    # driver id -> ride ids
    ride_assignments_summary: Tuple[Tuple[str, Tuple[str, ...]], ...]
    ride_assignments_detail: Tuple[RideAssignmentDetail, ...]
    unassigned_reasons: Tuple[Tuple[str, str], ...]
    error: Optional[str] = None

    @property
    def summary(self) -> Dict[str, List[str]]:
        return {driver_id: list(ride_ids) for driver_id, ride_ids in self.ride_assignments_summary}

    @property
    def reasons(self) -> Dict[str, str]:
        return dict(self.unassigned_reasons)


class AuditStore:
    """In-memory audit log, one entry per batch run."""

    def __init__(self):
        self._audits: List[AssignmentAudit] = []
        self._lock = threading.Lock()

    def save(self, audit: AssignmentAudit) -> AssignmentAudit:
        with self._lock:
            self._audits.append(audit)
            return audit

    def find_by_batch_id(self, batch_id: str) -> Optional[AssignmentAudit]:
        with self._lock:
            for audit in self._audits:
                if audit.batch_id == batch_id:
                    return audit
            return None

    def all(self) -> List[AssignmentAudit]:
        with self._lock:
            return list(self._audits)


def _detail_for(ride: Ride, assignment: Optional[RideAssignment]) -> RideAssignmentDetail:
    return RideAssignmentDetail(
        ride_id=ride.id,
        patient_name=ride.patient_name,
        pickup_address=ride.pickup.address,
        dropoff_address=ride.dropoff.address,
        pickup_driver_id=assignment.pickup_driver_id if assignment else None,
        dropoff_driver_id=assignment.dropoff_driver_id if assignment else None,
        vehicle_type=assignment.vehicle_type.value if assignment and assignment.vehicle_type else None,
        priority=ride.priority.value,
        structure=ride.structure.value,
        phase=assignment.phase if assignment else None,
        method=assignment.method if assignment else None,
        assigned_at=assignment.decided_at if assignment else None,
        route_distance_m=ride.route_distance_m,
    )


def build_ride_details(rides: Sequence[Ride], result: OptimizationResult) -> Tuple[RideAssignmentDetail, ...]:
    """
    Assigned rides in decision order, then the remaining rides in input order.
    """
    rides_by_id: Mapping[str, Ride] = {ride.id: ride for ride in rides}

    details = []
    seen = set()
    for assignment in result.assignments:
        ride = rides_by_id.get(assignment.ride_id)
        if ride is None or ride.id in seen:
            continue
        details.append(_detail_for(ride, assignment))
        seen.add(ride.id)

    for ride in rides:
        if ride.id not in seen:
            details.append(_detail_for(ride, None))

    return tuple(details)


class AuditRecorder:
    def __init__(
        self,
        store: Optional[AuditStore] = None,
        clock: Callable[[], datetime] = datetime.now,
        triggered_by: str = DEFAULT_ASSIGNED_BY,
    ):
        self.store = store if store is not None else AuditStore()
        self.clock = clock
        self.triggered_by = triggered_by

    def build(
        self,
        rides: Sequence[Ride],
        result: OptimizationResult,
        categorization: Optional[RideCategorization] = None,
        error: Optional[str] = None,
    ) -> AssignmentAudit:
        categorization = categorization or categorize_rides(list(rides))
        now = self.clock()
        total = len(rides)
        assigned = result.assigned_ride_count

        return AssignmentAudit(
            batch_id=result.batch_id,
            assignment_date=rides[0].pickup_time.date() if rides else now.date(),
            assignment_time=now,
            total_rides=total,
            assigned_rides=assigned,
            unassigned_rides=total - assigned,
            assigned_drivers=result.assigned_driver_count,
            success_rate=result.success_rate,
            emergency_rides=categorization.emergency_ride_count,
            wheelchair_rides=categorization.wheelchair_ride_count,
            stretcher_rides=categorization.stretcher_ride_count,
            round_trip_rides=categorization.round_trip_ride_count,
            triggered_by=self.triggered_by,
            optimization_strategy=FAILED_STRATEGY if error else result.strategy,
            ride_assignments_summary=tuple(
                (driver_id, tuple(ride_ids)) for driver_id, ride_ids in result.driver_assignments.items()
            ),
            ride_assignments_detail=build_ride_details(rides, result),
            unassigned_reasons=tuple(result.unassigned_rides.items()),
            error=error,
        )

    def record(
        self,
        rides: Sequence[Ride],
        result: OptimizationResult,
        categorization: Optional[RideCategorization] = None,
    ) -> Optional[AssignmentAudit]:
        try:
            audit = self.store.save(self.build(rides, result, categorization))
        except Exception as e:
            logger.exception(f"Failed to create audit record for batch {result.batch_id}: {e}")
            return None

        logger.info(
            f"Audit record created for batch {audit.batch_id}: "
            f"{audit.assigned_rides}/{audit.total_rides} assigned, "
            f"wheelchair={audit.wheelchair_rides}, stretcher={audit.stretcher_rides}, "
            f"round_trip={audit.round_trip_rides}, emergency={audit.emergency_rides}"
        )
        return audit

    def record_failure(
        self,
        rides: Sequence[Ride],
        batch_id: str,
        error: str,
        categorization: Optional[RideCategorization] = None,
    ) -> Optional[AssignmentAudit]:
        """
        Audit for a run where both the phased engine and the fallback failed.
        Every ride is listed as unassigned with the error as reason.
        """
        result = OptimizationResult.create(batch_id, total_rides=len(rides))
        for ride in rides:
            result.add_unassigned_ride(ride.id, f"Optimization failed: {error}")

        try:
            audit = self.store.save(self.build(rides, result, categorization, error=error))
        except Exception as e:
            logger.exception(f"Failed to create failure audit record for batch {batch_id}: {e}")
            return None

        logger.info(f"Failure audit record created for batch {batch_id}")
        return audit
