"""
Purpose: Domain models for the Rides capability.
What it does:
- Defines core data structures:
- Patient (medical needs that constrain which vehicle can carry them)
- Location (address + lat/lng)
- Ride (pickup/dropoff, timing, priority, structure, assignment fields)

Defines enums/constants:
- Priority = EMERGENCY | URGENT | ROUTINE
- RideStructure = ONE_WAY | ROUND_TRIP | RECURRING
- RideStatus = REQUESTED | SCHEDULED | ASSIGNED | IN_PROGRESS | COMPLETED | CANCELLED | NO_SHOW
- MobilityLevel = AMBULATORY | WHEELCHAIR | STRETCHER

Rule: No routing calls, no assignment logic. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from drivers.models import VehicleType
from routing.geo import is_valid_coordinates

LatLon = Tuple[float, float]


class Priority(Enum):
    EMERGENCY = "EMERGENCY"
    URGENT = "URGENT"
    ROUTINE = "ROUTINE"

    @property
    def rank(self) -> int:
        # EMERGENCY < URGENT < ROUTINE
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.EMERGENCY: 0,
    Priority.URGENT: 1,
    Priority.ROUTINE: 2,
}


class RideStructure(Enum):
    ONE_WAY = "ONE_WAY"
    ROUND_TRIP = "ROUND_TRIP"
    RECURRING = "RECURRING"


class RideStatus(Enum):
    REQUESTED = "REQUESTED"
    SCHEDULED = "SCHEDULED"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class MobilityLevel(Enum):
    AMBULATORY = "AMBULATORY"
    WHEELCHAIR = "WHEELCHAIR"
    STRETCHER = "STRETCHER"


@dataclass(frozen=True)
class Location:
    address: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def coordinates(self) -> LatLon:
        return (self.lat, self.lng)

    def has_coordinates(self) -> bool:
        return is_valid_coordinates(self.coordinates)


@dataclass(frozen=True)
class Patient:
    id: str
    name: str = ""
    requires_wheelchair: bool = False
    requires_stretcher: bool = False
    requires_oxygen: bool = False
    mobility_level: MobilityLevel = MobilityLevel.AMBULATORY

    @property
    def needs_stretcher(self) -> bool:
        return self.requires_stretcher or self.mobility_level == MobilityLevel.STRETCHER

    @property
    def needs_wheelchair(self) -> bool:
        return self.requires_wheelchair or self.mobility_level == MobilityLevel.WHEELCHAIR


@dataclass
class Ride:
    """
    A single patient transport request and its assignment state.
    """

    id: str
    pickup: Location
    dropoff: Location
    pickup_time: datetime
    patient: Optional[Patient] = None

    # +/- minutes around pickup_time the patient can be collected
    pickup_window_minutes: int = 5

    required_vehicle_type: Optional[VehicleType] = None
    required_skills: List[str] = field(default_factory=list)

    priority: Priority = Priority.ROUTINE
    structure: RideStructure = RideStructure.ONE_WAY
    is_round_trip: bool = False
    appointment_duration_minutes: Optional[int] = None

    status: RideStatus = RideStatus.REQUESTED

    pickup_driver_id: Optional[str] = None
    dropoff_driver_id: Optional[str] = None
    optimization_batch_id: Optional[str] = None
    assigned_at: Optional[datetime] = None
    assignment_method: Optional[str] = None
    assigned_by: Optional[str] = None

    # pickup -> dropoff road distance, filled during preparation
    route_distance_m: Optional[float] = None

    version: int = 0

    @property
    def is_assigned(self) -> bool:
        return self.pickup_driver_id is not None

    @property
    def patient_name(self) -> str:
        return self.patient.name if self.patient and self.patient.name else "Unknown"
