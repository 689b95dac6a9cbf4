"""
Purpose: Central configuration for the driver pool.
What it does:

Stores the tunable thresholds for deciding who may be dispatched:

LICENSE_EXPIRY_HORIZON_DAYS = 30
EXCLUSION_MODE = SINGLE_ASSIGNMENT | CAPACITY

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ExclusionMode(str, Enum):
    """
    How drivers leave the pool while a batch is being assigned.

    SINGLE_ASSIGNMENT: a driver with any assignment in the batch is no longer available.
    CAPACITY: a driver stays available until their max_daily_rides is used up.
    """
    SINGLE_ASSIGNMENT = "single_assignment"
    CAPACITY = "capacity"


@dataclass(frozen=True)
class DriverPolicy:
    """
    Central configuration for driver qualification and pool pruning.
    """

    # --- Compliance ---
    # A license expiring before today + horizon disqualifies the driver.
    license_expiry_horizon_days: int = 30

    # --- Pool pruning between phases ---
    exclusion_mode: ExclusionMode = ExclusionMode.SINGLE_ASSIGNMENT

    def validate(self) -> None:
        if self.license_expiry_horizon_days < 0:
            raise ValueError("license_expiry_horizon_days must be >= 0")

        if not isinstance(self.exclusion_mode, ExclusionMode):
            raise ValueError(f"Unknown exclusion mode: {self.exclusion_mode!r}")


def default_driver_policy() -> DriverPolicy:
    """
    Convenience factory for the default policy.
    """
    p = DriverPolicy()
    p.validate()
    return p


def capacity_aware_driver_policy() -> DriverPolicy:
    """
    Keeps drivers in the pool until their declared daily capacity is reached.
    """
    p = DriverPolicy(exclusion_mode=ExclusionMode.CAPACITY)
    p.validate()
    return p
