"""
Purpose: Central configuration for ride assignment (single source of truth).
What it does:

Stores the scoring weights and engine switches:

DISTANCE_WEIGHT = 100 (per km, driver base -> pickup)

EXACT_VEHICLE_MATCH_BONUS = 50

CAPACITY_WEIGHT = 5 (per declared max daily ride)

SHORT_APPOINTMENT_THRESHOLD_MINUTES = 15

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from drivers.policy import DriverPolicy, capacity_aware_driver_policy, default_driver_policy

DEFAULT_ASSIGNED_BY = "MEDICAL_TRANSPORT_OPTIMIZER"


@dataclass(frozen=True)
class AssignmentPolicy:
    """
    Central configuration for the assignment engine.

    Notes:
    - score = distance_weight * km - exact_vehicle_match_bonus (if types match)
              - capacity_weight * max_daily_rides
      Lower score wins.
    - driver_policy controls qualification and how drivers leave the pool.
    """

    # --- Scoring weights ---
    distance_weight: float = 100.0
    exact_vehicle_match_bonus: float = 50.0
    capacity_weight: float = 5.0

    # --- Categorization ---
    # Appointments at or under this many minutes are handled as round trips.
    short_appointment_threshold_minutes: int = 15

    # --- One-way rides ---
    # Pick a different driver for the dropoff leg when one is available.
    assign_separate_dropoff_driver: bool = True

    # --- Failure handling ---
    enable_fallback: bool = True

    # Actor written onto assigned rides and audits.
    assigned_by: str = DEFAULT_ASSIGNED_BY

    driver_policy: DriverPolicy = field(default_factory=default_driver_policy)

    def validate(self) -> None:
        """
        Basic sanity checks. Call once at startup if you want.
        """
        if self.distance_weight <= 0:
            raise ValueError("distance_weight must be > 0")

        if self.exact_vehicle_match_bonus < 0:
            raise ValueError("exact_vehicle_match_bonus must be >= 0")

        if self.capacity_weight < 0:
            raise ValueError("capacity_weight must be >= 0")

        if self.short_appointment_threshold_minutes < 0:
            raise ValueError("short_appointment_threshold_minutes must be >= 0")

        if not self.assigned_by:
            raise ValueError("assigned_by must not be empty")

        self.driver_policy.validate()


def default_assignment_policy() -> AssignmentPolicy:
    """
    Convenience factory for the default policy.
    """
    p = AssignmentPolicy()
    p.validate()
    return p


def capacity_aware_policy() -> AssignmentPolicy:
    """
    Drivers keep receiving rides until their max_daily_rides is reached,
    instead of leaving the pool after their first assignment.
    """
    p = AssignmentPolicy(driver_policy=capacity_aware_driver_policy())
    p.validate()
    return p
