"""
Purpose: The assignment "orchestrator" (single entry point for a batch of rides).
What it does:

Coordinates the pipeline end-to-end:

- filters the driver pool once (drivers/selection.py)

- categorizes rides (rides/categorizer.py)

- runs the phases in fixed order: emergency -> round-trip buckets -> one-way buckets

- scores & selects drivers per ride (candidate_filter.py, scoring.py)

- falls back to a single nearest-driver pass if the phased run raises

- commits decisions to the ride records (optimistic versioning) and records the audit

Typical public call:

- AssignmentEngine(driver_store, ride_store).optimize(rides) -> OptimizationResult

Rule: Engine is the only file other modules should call directly for assignment.
"""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence

from drivers.models import Driver, VehicleType
from drivers.selection import available_drivers, drivers_for_vehicle_type, filter_qualified_drivers
from drivers.store import DriverStore, StaleRecordError
from rides.categorizer import RideCategorization, categorize_rides, determine_required_vehicle_type
from rides.models import Ride
from rides.store import RideStore

from .audit import AuditRecorder
from .candidate_filter import build_candidates
from .policy import AssignmentPolicy, default_assignment_policy
from .result import AssignmentMethod, OptimizationResult, OptimizationStrategy, RideAssignment
from .scoring import ScoredCandidate, select_best_driver, select_nearest_driver
from .state_machines.ride_state import RideStateException, assign_ride

logger = logging.getLogger(__name__)

NO_QUALIFIED_DRIVERS = "No qualified drivers available"
NO_EMERGENCY_DRIVER = "No qualified emergency driver available"
NO_COMPATIBLE_DRIVER = "No compatible driver available"

PHASE_EMERGENCY = "EMERGENCY"
PHASE_ROUND_TRIP = "ROUND_TRIP"
PHASE_ONE_WAY = "ONE_WAY"
PHASE_FALLBACK = "FALLBACK"


class OptimizationError(Exception):
    """Raised when both the phased run and the fallback pass failed."""

    def __init__(self, message: str, batch_id: Optional[str] = None):
        super().__init__(message)
        self.batch_id = batch_id


def generate_batch_id(now: datetime) -> str:
    return f"MEDICAL_{now:%Y%m%d_%H%M%S}_{uuid.uuid4().hex[:8]}"


def no_compatible_vehicle_reason(vehicle_type: VehicleType) -> str:
    return f"No compatible {vehicle_type.value} drivers available"


def _ride_order_key(ride: Ride):
    return (ride.priority.rank, ride.pickup_time)


class AssignmentEngine:
    """
    Phased greedy matcher. One instance can serve many batches; per-batch
    state (assignment counts, driver snapshot) lives inside optimize().
    """

    def __init__(
        self,
        driver_store: DriverStore,
        ride_store: Optional[RideStore] = None,
        audit_recorder: Optional[AuditRecorder] = None,
        policy: Optional[AssignmentPolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
        today: Optional[date] = None,
    ):
        self.driver_store = driver_store
        self.ride_store = ride_store
        self.policy = policy or default_assignment_policy()
        self.audit_recorder = audit_recorder or AuditRecorder(clock=clock, triggered_by=self.policy.assigned_by)
        self.clock = clock
        self.today = today

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def optimize(self, rides: Sequence[Ride], drivers: Optional[Sequence[Driver]] = None) -> OptimizationResult:
        rides = list(rides)
        drivers = list(drivers) if drivers is not None else self.driver_store.all()
        batch_id = generate_batch_id(self.clock())

        logger.info(f"Starting optimization batch {batch_id}: {len(rides)} rides, {len(drivers)} drivers")

        categorization: Optional[RideCategorization] = None
        try:
            categorization = categorize_rides(rides, self.policy.short_appointment_threshold_minutes)
            result = self._run_phases(rides, drivers, categorization, batch_id)
        except Exception as e:
            if not self.policy.enable_fallback:
                self.audit_recorder.record_failure(rides, batch_id, str(e), categorization)
                raise OptimizationError(f"Optimization failed for batch {batch_id}: {e}", batch_id) from e

            logger.exception(f"Phased optimization failed for batch {batch_id}, trying simple fallback: {e}")
            try:
                result = self._run_fallback(rides, drivers, batch_id)
            except Exception as fallback_error:
                self.audit_recorder.record_failure(rides, batch_id, str(fallback_error), categorization)
                raise OptimizationError(
                    f"Optimization failed for batch {batch_id}: {fallback_error}", batch_id
                ) from fallback_error

        self._commit(rides, drivers, result)
        self.audit_recorder.record(rides, result, categorization)

        logger.info(
            f"Batch {batch_id} complete: {result.assigned_ride_count}/{result.total_rides} rides assigned "
            f"to {result.assigned_driver_count} drivers ({result.success_rate:.1f}%)"
        )
        for ride_id, reason in result.unassigned_rides.items():
            logger.warning(f"Ride {ride_id} unassigned: {reason}")

        return result

    # ------------------------------------------------------------------
    # Phased algorithm
    # ------------------------------------------------------------------

    def _run_phases(
        self,
        rides: List[Ride],
        drivers: List[Driver],
        categorization: RideCategorization,
        batch_id: str,
    ) -> OptimizationResult:
        result = OptimizationResult.create(batch_id, total_rides=len(rides))

        qualified = filter_qualified_drivers(drivers, self._today(), self.policy.driver_policy)
        logger.info(f"Batch {batch_id}: {len(qualified)} of {len(drivers)} drivers qualified")

        if not qualified:
            for ride in rides:
                result.add_unassigned_ride(ride.id, NO_QUALIFIED_DRIVERS)
            return result

        assignment_counts: Dict[str, int] = {}

        # 1. emergencies first, ignoring vehicle buckets
        if categorization.emergency_rides:
            result.merge(self._assign_emergency_rides(
                categorization.emergency_rides, qualified, assignment_counts, batch_id, len(result.assignments)
            ))

        # 2. round trips, most specialised vehicles first
        for vehicle_type, bucket in categorization.round_trip_buckets():
            result.merge(self._assign_bucket(
                vehicle_type, bucket, qualified, assignment_counts, batch_id,
                round_trip=True, sequence_start=len(result.assignments),
            ))

        # 3. one-way rides
        for vehicle_type, bucket in categorization.one_way_buckets():
            result.merge(self._assign_bucket(
                vehicle_type, bucket, qualified, assignment_counts, batch_id,
                round_trip=False, sequence_start=len(result.assignments),
            ))

        return result

    def _assign_emergency_rides(
        self,
        rides: List[Ride],
        qualified: List[Driver],
        assignment_counts: Dict[str, int],
        batch_id: str,
        sequence_start: int,
    ) -> OptimizationResult:
        phase_result = OptimizationResult.create(batch_id)
        logger.info(f"Emergency phase: {len(rides)} rides")

        for ride in sorted(rides, key=lambda ride: ride.pickup_time):
            pool = available_drivers(qualified, assignment_counts, self.policy.driver_policy)
            best = select_nearest_driver(build_candidates(pool, ride), ride.pickup.coordinates)

            if best is None:
                phase_result.add_unassigned_ride(ride.id, NO_EMERGENCY_DRIVER)
                continue

            self._record(
                phase_result, ride, best, best.driver.id, PHASE_EMERGENCY, AssignmentMethod.EMERGENCY,
                best.driver.vehicle_type, sequence_start, assignment_counts,
            )

        return phase_result

    def _assign_bucket(
        self,
        vehicle_type: VehicleType,
        rides: List[Ride],
        qualified: List[Driver],
        assignment_counts: Dict[str, int],
        batch_id: str,
        round_trip: bool,
        sequence_start: int,
    ) -> OptimizationResult:
        phase_result = OptimizationResult.create(batch_id)
        phase = PHASE_ROUND_TRIP if round_trip else PHASE_ONE_WAY
        method = AssignmentMethod.ROUND_TRIP if round_trip else AssignmentMethod.ONE_WAY

        typed_pool = drivers_for_vehicle_type(
            available_drivers(qualified, assignment_counts, self.policy.driver_policy), vehicle_type
        )
        logger.info(f"{phase} phase [{vehicle_type.value}]: {len(rides)} rides, {len(typed_pool)} compatible drivers")

        if not typed_pool:
            reason = no_compatible_vehicle_reason(vehicle_type)
            for ride in rides:
                phase_result.add_unassigned_ride(ride.id, reason)
            return phase_result

        for ride in sorted(rides, key=_ride_order_key):
            pool = available_drivers(typed_pool, assignment_counts, self.policy.driver_policy)
            candidates = build_candidates(pool, ride)
            best = select_best_driver(candidates, ride.pickup.coordinates, vehicle_type, self.policy)

            if best is None:
                phase_result.add_unassigned_ride(ride.id, NO_COMPATIBLE_DRIVER)
                continue

            dropoff_driver_id = best.driver.id
            if not round_trip and self.policy.assign_separate_dropoff_driver:
                others = [driver for driver in candidates if driver.id != best.driver.id]
                dropoff = select_best_driver(others, ride.dropoff.coordinates, vehicle_type, self.policy)
                if dropoff is not None:
                    dropoff_driver_id = dropoff.driver.id

            self._record(
                phase_result, ride, best, dropoff_driver_id, phase, method,
                vehicle_type, sequence_start, assignment_counts,
            )

        return phase_result

    # ------------------------------------------------------------------
    # Fallback
    # ------------------------------------------------------------------

    def _run_fallback(self, rides: List[Ride], drivers: List[Driver], batch_id: str) -> OptimizationResult:
        """
        Single pass, nearest compatible driver, same driver on both legs.
        """
        result = OptimizationResult.create(batch_id, total_rides=len(rides))
        result.strategy = OptimizationStrategy.SIMPLE_FALLBACK

        qualified = filter_qualified_drivers(drivers, self._today(), self.policy.driver_policy)
        assignment_counts: Dict[str, int] = {}

        for ride in sorted(rides, key=_ride_order_key):
            vehicle_type = determine_required_vehicle_type(ride)
            pool = available_drivers(qualified, assignment_counts, self.policy.driver_policy)
            best = select_nearest_driver(build_candidates(pool, ride, vehicle_type), ride.pickup.coordinates)

            if best is None:
                reason = NO_QUALIFIED_DRIVERS if not qualified else NO_COMPATIBLE_DRIVER
                result.add_unassigned_ride(ride.id, reason)
                continue

            self._record(
                result, ride, best, best.driver.id, PHASE_FALLBACK, AssignmentMethod.SIMPLE_FALLBACK,
                vehicle_type, 0, assignment_counts,
            )

        logger.info(f"Fallback assigned {result.assigned_ride_count}/{len(rides)} rides for batch {batch_id}")
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _record(
        self,
        result: OptimizationResult,
        ride: Ride,
        pickup: ScoredCandidate,
        dropoff_driver_id: str,
        phase: str,
        method: str,
        vehicle_type: Optional[VehicleType],
        sequence_start: int,
        assignment_counts: Dict[str, int],
    ) -> None:
        result.add_assignment(RideAssignment(
            ride_id=ride.id,
            pickup_driver_id=pickup.driver.id,
            dropoff_driver_id=dropoff_driver_id,
            phase=phase,
            method=method,
            vehicle_type=vehicle_type,
            score=pickup.score,
            distance_km=pickup.distance_km,
            sequence=sequence_start + len(result.assignments),
            decided_at=self.clock(),
        ))
        assignment_counts[pickup.driver.id] = assignment_counts.get(pickup.driver.id, 0) + 1

    def _today(self) -> date:
        return self.today or self.clock().date()

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def _commit(self, rides: List[Ride], drivers: List[Driver], result: OptimizationResult) -> None:
        """
        Writes every planned decision to its ride. A decision whose ride or
        driver changed since it was read is revoked and reported as unassigned.
        """
        rides_by_id = {ride.id: ride for ride in rides}
        read_versions = {driver.id: driver.version for driver in drivers}
        assigned_at = self.clock()

        for assignment in list(result.assignments):
            ride = rides_by_id[assignment.ride_id]

            changed_driver = self._changed_driver(assignment, read_versions)
            if changed_driver is not None:
                reason = f"Driver {changed_driver} was modified during optimization"
                logger.warning(f"Revoking assignment of ride {ride.id}: {reason}")
                result.revoke_assignment(ride.id, reason)
                continue

            updated = copy.copy(ride)
            try:
                assign_ride(
                    updated,
                    pickup_driver_id=assignment.pickup_driver_id,
                    dropoff_driver_id=assignment.dropoff_driver_id,
                    batch_id=result.batch_id,
                    assigned_at=assigned_at,
                    method=assignment.method,
                    assigned_by=self.policy.assigned_by,
                )
                if self.ride_store is not None:
                    self.ride_store.save(updated)
            except StaleRecordError as e:
                logger.warning(f"Revoking assignment of ride {ride.id}: {e}")
                result.revoke_assignment(ride.id, "Ride was modified concurrently (version conflict)")
                continue
            except RideStateException as e:
                logger.warning(f"Revoking assignment of ride {ride.id}: {e}")
                result.revoke_assignment(ride.id, f"Ride cannot be assigned from status {ride.status.value}")
                continue

            _copy_assignment_fields(updated, ride)

    def _changed_driver(self, assignment: RideAssignment, read_versions: Dict[str, int]) -> Optional[str]:
        for driver_id in {assignment.pickup_driver_id, assignment.dropoff_driver_id}:
            current = self.driver_store.current_version(driver_id)
            if current is not None and current != read_versions.get(driver_id, current):
                return driver_id
        return None


def _copy_assignment_fields(source: Ride, target: Ride) -> None:
    target.status = source.status
    target.pickup_driver_id = source.pickup_driver_id
    target.dropoff_driver_id = source.dropoff_driver_id
    target.optimization_batch_id = source.optimization_batch_id
    target.assigned_at = source.assigned_at
    target.assignment_method = source.assignment_method
    target.assigned_by = source.assigned_by
    target.version = source.version
