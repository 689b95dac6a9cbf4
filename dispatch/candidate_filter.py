#Purpose: Non-routing hard eligibility filtering (rule gates).
#Builds the candidate set for a single ride before scoring.
#Responsibilities:
#medical compatibility with the patient (wheelchair / stretcher / oxygen)
#required skill tags
#vehicle type compatibility (optional, for the fallback pass)

#Output: "rule-qualified drivers" (still not ranked), in pool order.

from typing import Iterable, List, Optional

from drivers.models import Driver, VehicleType
from rides.models import MobilityLevel, Patient, Ride


def can_handle_patient(driver: Driver, patient: Optional[Patient]) -> bool:
    # no patient on file means no medical constraint
    if patient is None:
        return True

    if patient.requires_wheelchair and not driver.wheelchair_accessible:
        return False

    if patient.requires_stretcher and not driver.stretcher_capable:
        return False

    if patient.requires_oxygen and not driver.oxygen_equipped:
        return False

    if patient.mobility_level == MobilityLevel.STRETCHER and not driver.stretcher_capable:
        return False

    if patient.mobility_level == MobilityLevel.WHEELCHAIR and not driver.wheelchair_accessible:
        return False

    return True


def has_required_skills(driver: Driver, required_skills: Iterable[str]) -> bool:
    return all(driver.has_skill(skill) for skill in required_skills)


def is_candidate(driver: Driver, ride: Ride, vehicle_type: Optional[VehicleType] = None) -> bool:
    if vehicle_type is not None and not vehicle_type.accepts(driver):
        return False
    return can_handle_patient(driver, ride.patient) and has_required_skills(driver, ride.required_skills)


def build_candidates(
    drivers: Iterable[Driver],
    ride: Ride,
    vehicle_type: Optional[VehicleType] = None,
) -> List[Driver]:
    """
    Drivers from the pool that can legally carry this ride.
    Pool order is kept so ties resolve to the earlier driver.
    """
    return [driver for driver in drivers if is_candidate(driver, ride, vehicle_type)]
