import pytest
from datetime import date, datetime, timedelta

from drivers.models import Driver, VehicleType
from rides.models import Location, Patient, Ride

TODAY = date(2026, 3, 2)
RIDE_DAY = datetime(2026, 3, 2, 9, 0)

# ~1 km of latitude
KM_LAT = 1 / 111.195


@pytest.fixture
def city_center():
    # Example: Center of a city
    return (40.7128, -74.0060)


@pytest.fixture
def make_driver(city_center):
    base_lat, base_lon = city_center

    def _make(driver_id, km_north=0.0, vehicle_type=VehicleType.SEDAN, **kwargs):
        kwargs.setdefault("training_complete", True)
        kwargs.setdefault("drivers_license_expiry", TODAY + timedelta(days=365))
        kwargs.setdefault("medical_transport_license_expiry", TODAY + timedelta(days=365))
        kwargs.setdefault("insurance_expiry", TODAY + timedelta(days=365))
        return Driver.new(
            driver_id,
            base_lat + km_north * KM_LAT,
            base_lon,
            vehicle_type=vehicle_type,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_ride(city_center):
    base_lat, base_lon = city_center

    def _make(
        ride_id,
        pickup_km_north=0.0,
        dropoff_km_north=5.0,
        pickup_time=RIDE_DAY,
        patient=None,
        **kwargs,
    ):
        return Ride(
            id=ride_id,
            pickup=Location(f"{ride_id} pickup", base_lat + pickup_km_north * KM_LAT, base_lon),
            dropoff=Location(f"{ride_id} dropoff", base_lat + dropoff_km_north * KM_LAT, base_lon),
            pickup_time=pickup_time,
            patient=patient,
            **kwargs,
        )

    return _make


@pytest.fixture
def wheelchair_patient():
    return Patient(id="p-wc", name="Wanda Chair", requires_wheelchair=True)


@pytest.fixture
def stretcher_patient():
    return Patient(id="p-st", name="Stan Stretch", requires_stretcher=True)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def ride_day():
    return RIDE_DAY
