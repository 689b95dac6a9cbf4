"""
Purpose: Split a batch of rides into the buckets the assignment engine works through.
What it does:

- EMERGENCY rides go to their own bucket and skip vehicle-type bucketing.
- Every other ride gets a required vehicle type (explicit, or derived from the patient)
  and is filed under round-trip or one-way for that vehicle type.
- Short appointments (<= 15 minutes by default) are treated as round trips:
  the same driver waits and brings the patient back.

Rule: Categorization only. No driver lookups here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from drivers.models import VehicleType
from .models import Priority, Ride, RideStructure

logger = logging.getLogger(__name__)

SHORT_APPOINTMENT_THRESHOLD_MINUTES = 15


def determine_required_vehicle_type(ride: Ride) -> VehicleType:
    """
    Explicit ride requirement wins, otherwise derive it from the patient's needs.
    """
    if ride.required_vehicle_type is not None:
        return VehicleType.parse(ride.required_vehicle_type)

    patient = ride.patient
    if patient is None:
        return VehicleType.SEDAN

    if patient.needs_stretcher:
        return VehicleType.STRETCHER_VAN
    if patient.needs_wheelchair or patient.requires_oxygen:
        return VehicleType.WHEELCHAIR_VAN

    return VehicleType.SEDAN


def is_round_trip(ride: Ride, short_appointment_threshold: int = SHORT_APPOINTMENT_THRESHOLD_MINUTES) -> bool:
    return (
        ride.is_round_trip
        or ride.structure == RideStructure.ROUND_TRIP
        or (
            ride.appointment_duration_minutes is not None
            and ride.appointment_duration_minutes <= short_appointment_threshold
        )
    )


def _ordered_buckets(buckets: Dict[VehicleType, List[Ride]]) -> List[Tuple[VehicleType, List[Ride]]]:
    return sorted(buckets.items(), key=lambda item: item[0].dispatch_rank)


@dataclass
class RideCategorization:
    emergency_rides: List[Ride] = field(default_factory=list)
    round_trip_by_vehicle_type: Dict[VehicleType, List[Ride]] = field(default_factory=dict)
    one_way_by_vehicle_type: Dict[VehicleType, List[Ride]] = field(default_factory=dict)

    def add_emergency_ride(self, ride: Ride) -> None:
        self.emergency_rides.append(ride)

    def add_round_trip_ride(self, vehicle_type: VehicleType, ride: Ride) -> None:
        self.round_trip_by_vehicle_type.setdefault(vehicle_type, []).append(ride)

    def add_one_way_ride(self, vehicle_type: VehicleType, ride: Ride) -> None:
        self.one_way_by_vehicle_type.setdefault(vehicle_type, []).append(ride)

    def round_trip_buckets(self) -> List[Tuple[VehicleType, List[Ride]]]:
        return _ordered_buckets(self.round_trip_by_vehicle_type)

    def one_way_buckets(self) -> List[Tuple[VehicleType, List[Ride]]]:
        return _ordered_buckets(self.one_way_by_vehicle_type)

    def _count_for_vehicle_type(self, vehicle_type: VehicleType) -> int:
        return (
            len(self.round_trip_by_vehicle_type.get(vehicle_type, []))
            + len(self.one_way_by_vehicle_type.get(vehicle_type, []))
        )

    @property
    def emergency_ride_count(self) -> int:
        return len(self.emergency_rides)

    @property
    def wheelchair_ride_count(self) -> int:
        return self._count_for_vehicle_type(VehicleType.WHEELCHAIR_VAN)

    @property
    def stretcher_ride_count(self) -> int:
        return self._count_for_vehicle_type(VehicleType.STRETCHER_VAN)

    @property
    def round_trip_ride_count(self) -> int:
        return sum(len(rides) for rides in self.round_trip_by_vehicle_type.values())

    @property
    def total_ride_count(self) -> int:
        return (
            self.emergency_ride_count
            + self.round_trip_ride_count
            + sum(len(rides) for rides in self.one_way_by_vehicle_type.values())
        )


def categorize_rides(
    rides: List[Ride],
    short_appointment_threshold: int = SHORT_APPOINTMENT_THRESHOLD_MINUTES,
) -> RideCategorization:
    categorization = RideCategorization()

    for ride in rides:
        if ride.priority == Priority.EMERGENCY:
            categorization.add_emergency_ride(ride)
            continue

        vehicle_type = determine_required_vehicle_type(ride)

        if is_round_trip(ride, short_appointment_threshold):
            categorization.add_round_trip_ride(vehicle_type, ride)
        else:
            categorization.add_one_way_ride(vehicle_type, ride)

    logger.info(
        f"Ride categorization complete: emergency={categorization.emergency_ride_count}, "
        f"round_trip={_summarize(categorization.round_trip_buckets())}, "
        f"one_way={_summarize(categorization.one_way_buckets())}"
    )
    return categorization


def _summarize(buckets: List[Tuple[VehicleType, List[Ride]]]) -> str:
    if not buckets:
        return "none"
    return ", ".join(f"{vehicle_type.value}={len(rides)}" for vehicle_type, rides in buckets)
