"""
Purpose: Core data models for the drivers domain.
What it does:
Defines the Driver record, its medical capabilities and the closed set of
vehicle types a ride can require, without relying on any ORM.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional, Tuple, Union

LatLon = Tuple[float, float]


class Capability(str, Enum):
    """
    Medical equipment a vehicle/driver can carry.
    """
    WHEELCHAIR = "wheelchair"
    STRETCHER = "stretcher"
    OXYGEN = "oxygen"


class VehicleType(str, Enum):
    """
    Closed set of vehicle type tags a ride can require.
    Each member knows which capabilities a driver needs to serve it.
    """
    SEDAN = "sedan"
    VAN = "van"
    WHEELCHAIR_VAN = "wheelchair_van"
    STRETCHER_VAN = "stretcher_van"
    AMBULANCE = "ambulance"

    @classmethod
    def parse(cls, value: Union[str, "VehicleType"]) -> "VehicleType":
        """
        Accepts an enum member or a tag such as "Wheelchair-Van".
        Unknown tags raise ValueError.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            raise ValueError("Vehicle type is required")

        normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(normalized)
        except ValueError:
            known = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown vehicle type '{value}'. Expected one of: {known}") from None

    @property
    def required_capabilities(self) -> FrozenSet[Capability]:
        return _REQUIRED_CAPABILITIES[self]

    @property
    def dispatch_rank(self) -> int:
        """Lower rank is dispatched first (most specialised vehicles first)."""
        return _DISPATCH_RANK[self]

    def accepts(self, driver: "Driver") -> bool:
        return self.required_capabilities <= driver.capabilities


_REQUIRED_CAPABILITIES: Dict[VehicleType, FrozenSet[Capability]] = {
    VehicleType.SEDAN: frozenset(),
    VehicleType.VAN: frozenset(),
    VehicleType.WHEELCHAIR_VAN: frozenset({Capability.WHEELCHAIR}),
    VehicleType.STRETCHER_VAN: frozenset({Capability.STRETCHER}),
    VehicleType.AMBULANCE: frozenset({Capability.STRETCHER, Capability.OXYGEN}),
}

_DISPATCH_RANK: Dict[VehicleType, int] = {
    VehicleType.AMBULANCE: 0,
    VehicleType.STRETCHER_VAN: 1,
    VehicleType.WHEELCHAIR_VAN: 2,
    VehicleType.VAN: 3,
    VehicleType.SEDAN: 4,
}


@dataclass(frozen=True)
class Driver:
    """
    A read-only snapshot of a driver record as seen by one optimization run.
    `version` is bumped by the driver store on every write.
    """
    id: str
    name: str
    base_location: LatLon
    vehicle_type: VehicleType = VehicleType.SEDAN

    active: bool = True
    training_complete: bool = False

    wheelchair_accessible: bool = False
    stretcher_capable: bool = False
    oxygen_equipped: bool = False

    # Declared capacity. Only enforced when the pool runs in capacity mode.
    max_daily_rides: int = 8
    skills: Mapping[str, bool] = field(default_factory=dict)

    drivers_license_expiry: Optional[date] = None
    medical_transport_license_expiry: Optional[date] = None
    insurance_expiry: Optional[date] = None

    base_address: str = ""
    version: int = 0

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        flags = {
            Capability.WHEELCHAIR: self.wheelchair_accessible,
            Capability.STRETCHER: self.stretcher_capable,
            Capability.OXYGEN: self.oxygen_equipped,
        }
        return frozenset(capability for capability, enabled in flags.items() if enabled)

    @property
    def license_expiries(self) -> Tuple[Optional[date], Optional[date], Optional[date]]:
        return (
            self.drivers_license_expiry,
            self.medical_transport_license_expiry,
            self.insurance_expiry,
        )

    def has_skill(self, skill: str) -> bool:
        return self.skills.get(skill) is True

    @classmethod
    def new(
        cls,
        driver_id: str,
        lat: float,
        lon: float,
        vehicle_type: Union[str, VehicleType] = VehicleType.SEDAN,
        name: Optional[str] = None,
        **kwargs,
    ) -> Driver:
        return cls(
            id=driver_id,
            name=name or driver_id,
            base_location=(lat, lon),
            vehicle_type=VehicleType.parse(vehicle_type),
            **kwargs,
        )
