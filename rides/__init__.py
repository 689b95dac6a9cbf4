"""
Rides domain package.

Public API:
- Domain models: Ride, Patient, Location, Priority, RideStructure, RideStatus, MobilityLevel
- Categorization: categorize_rides, RideCategorization
- Storage: RideStore
- Preparation: prepare_rides
"""
from .models import Location, MobilityLevel, Patient, Priority, Ride, RideStatus, RideStructure
from .categorizer import RideCategorization, categorize_rides, determine_required_vehicle_type, is_round_trip
from .preparation import prepare_rides
from .store import RideStore

__all__ = ["Ride",
           "Patient",
             "Location",
               "Priority",
               "RideStructure",
               "RideStatus",
               "MobilityLevel",
               "RideCategorization",
               "categorize_rides",
               "determine_required_vehicle_type",
               "is_round_trip",
               "prepare_rides",
               "RideStore",
               ]
