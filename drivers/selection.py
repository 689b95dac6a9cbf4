"""
Purpose: Business rules for deciding which drivers are in the dispatch pool.
What it does:
Filters out drivers that are not qualified for medical transport,
prunes drivers who already received work in the current batch,
and narrows the pool to a vehicle type.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, List, Mapping, Optional

from .models import Driver, VehicleType
from .policy import DriverPolicy, ExclusionMode, default_driver_policy

logger = logging.getLogger(__name__)


def is_license_expiring_soon(driver: Driver, today: date, horizon_days: int = 30) -> bool:
    """
    True if any of the three licenses expires before today + horizon.
    Missing expiry dates are not treated as expiring.
    """
    cutoff = today + timedelta(days=horizon_days)
    return any(expiry is not None and expiry < cutoff for expiry in driver.license_expiries)


def is_qualified(driver: Driver, today: date, policy: Optional[DriverPolicy] = None) -> bool:
    policy = policy or default_driver_policy()
    return (
        driver.active
        and driver.training_complete
        and not is_license_expiring_soon(driver, today, policy.license_expiry_horizon_days)
    )


def filter_qualified_drivers(
    drivers: Iterable[Driver],
    today: Optional[date] = None,
    policy: Optional[DriverPolicy] = None,
) -> List[Driver]:
    """
    Returns only drivers who are active, have completed training and
    hold no license that expires within the compliance horizon.
    Input order is preserved.
    """
    policy = policy or default_driver_policy()
    today = today or date.today()

    qualified = []
    for driver in drivers:
        if not driver.active:
            continue

        if not driver.training_complete:
            continue

        if is_license_expiring_soon(driver, today, policy.license_expiry_horizon_days):
            logger.debug(f"Driver {driver.id} excluded: license expiring before {today + timedelta(days=policy.license_expiry_horizon_days)}")
            continue

        qualified.append(driver)

    return qualified


def available_drivers(
    drivers: Iterable[Driver],
    assignment_counts: Mapping[str, int],
    policy: Optional[DriverPolicy] = None,
) -> List[Driver]:
    """
    The single pool-pruning rule used by the assignment engine.

    SINGLE_ASSIGNMENT drops every driver that already has an assignment in the batch.
    CAPACITY drops a driver only once their max_daily_rides is used up.
    """
    policy = policy or default_driver_policy()

    if policy.exclusion_mode == ExclusionMode.CAPACITY:
        return [
            driver for driver in drivers
            if assignment_counts.get(driver.id, 0) < driver.max_daily_rides
        ]

    return [driver for driver in drivers if assignment_counts.get(driver.id, 0) == 0]


def drivers_for_vehicle_type(drivers: Iterable[Driver], vehicle_type: VehicleType) -> List[Driver]:
    return [driver for driver in drivers if vehicle_type.accepts(driver)]
