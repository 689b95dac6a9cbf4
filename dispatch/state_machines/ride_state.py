from datetime import datetime
from typing import Optional

from rides.models import Ride, RideStatus

ASSIGNABLE_FROM = (RideStatus.REQUESTED, RideStatus.SCHEDULED, RideStatus.ASSIGNED)


class RideStateException(Exception):
    """Raised when an invalid ride transition is attempted."""
    pass


def assign_ride(
    ride: Ride,
    pickup_driver_id: str,
    dropoff_driver_id: Optional[str],
    batch_id: str,
    assigned_at: datetime,
    method: str,
    assigned_by: str,
) -> Ride:
    """
    Called when the engine commits a decision.
    A ride may be (re)assigned until the trip has started.
    """
    if ride.status not in ASSIGNABLE_FROM:
        raise RideStateException(f"Cannot assign ride {ride.id} from {ride.status.value}")

    ride.pickup_driver_id = pickup_driver_id
    ride.dropoff_driver_id = dropoff_driver_id or pickup_driver_id
    ride.optimization_batch_id = batch_id
    ride.assigned_at = assigned_at
    ride.assignment_method = method
    ride.assigned_by = assigned_by
    ride.status = RideStatus.ASSIGNED
    return ride
