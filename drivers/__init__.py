"""
Drivers domain package.

Public API:
- Domain models: Driver, VehicleType, Capability
- Pool rules: filter_qualified_drivers, available_drivers, drivers_for_vehicle_type
- Configuration: DriverPolicy, ExclusionMode
- Storage: DriverStore, StaleRecordError
"""
from .models import Capability, Driver, VehicleType
from .policy import DriverPolicy, ExclusionMode, capacity_aware_driver_policy, default_driver_policy
from .selection import (
    available_drivers,
    drivers_for_vehicle_type,
    filter_qualified_drivers,
    is_license_expiring_soon,
    is_qualified,
)
from .store import DriverStore, StaleRecordError

__all__ = [
    "Capability",
    "Driver",
    "VehicleType",
    "DriverPolicy",
    "ExclusionMode",
    "default_driver_policy",
    "capacity_aware_driver_policy",
    "available_drivers",
    "drivers_for_vehicle_type",
    "filter_qualified_drivers",
    "is_license_expiring_soon",
    "is_qualified",
    "DriverStore",
    "StaleRecordError",
]
