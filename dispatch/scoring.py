#Purpose: Ranking/selection model (the "who is best" layer).
#Takes candidates (already eligible) + ride locations
#Produces a score per driver; lower is better.
#  score = distance_weight * km(base -> leg start)
#          - exact_vehicle_match_bonus (driver type == bucket type)
#          - capacity_weight * max_daily_rides
#Tie-breaking is deterministic: first minimum in candidate order wins.

from dataclasses import dataclass
from typing import Iterable, Optional

from drivers.models import Driver, VehicleType
from rides.models import Ride
from routing.geo import LatLon, haversine_km

from .policy import AssignmentPolicy, default_assignment_policy


@dataclass(frozen=True)
class ScoredCandidate:
    driver: Driver
    score: float
    distance_km: float


def distance_to_pickup_km(driver: Driver, ride: Ride) -> float:
    return haversine_km(driver.base_location, ride.pickup.coordinates)


def distance_to_dropoff_km(driver: Driver, ride: Ride) -> float:
    return haversine_km(driver.base_location, ride.dropoff.coordinates)


def score_driver(
    driver: Driver,
    distance_km: float,
    vehicle_type: Optional[VehicleType] = None,
    policy: Optional[AssignmentPolicy] = None,
) -> float:
    policy = policy or default_assignment_policy()

    score = distance_km * policy.distance_weight
    if vehicle_type is not None and driver.vehicle_type == vehicle_type:
        score -= policy.exact_vehicle_match_bonus
    score -= driver.max_daily_rides * policy.capacity_weight
    return score


def select_best_driver(
    candidates: Iterable[Driver],
    target: LatLon,
    vehicle_type: Optional[VehicleType] = None,
    policy: Optional[AssignmentPolicy] = None,
) -> Optional[ScoredCandidate]:
    """
    Scores every candidate against target and returns the first minimum,
    or None if there are no candidates.
    """
    best: Optional[ScoredCandidate] = None
    for driver in candidates:
        distance_km = haversine_km(driver.base_location, target)
        score = score_driver(driver, distance_km, vehicle_type, policy)
        if best is None or score < best.score:
            best = ScoredCandidate(driver=driver, score=score, distance_km=distance_km)
    return best


def select_nearest_driver(candidates: Iterable[Driver], target: LatLon) -> Optional[ScoredCandidate]:
    """
    Pure distance selection (emergency and fallback passes). Score is the distance in km.
    """
    best: Optional[ScoredCandidate] = None
    for driver in candidates:
        distance_km = haversine_km(driver.base_location, target)
        if best is None or distance_km < best.distance_km:
            best = ScoredCandidate(driver=driver, score=distance_km, distance_km=distance_km)
    return best
