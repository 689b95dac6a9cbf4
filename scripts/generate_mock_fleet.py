import csv
import os
import random
from datetime import date, datetime, timedelta

VEHICLE_MIX = [
    # (vehicle_type, wheelchair, stretcher, oxygen, weight)
    ("sedan", False, False, False, 40),
    ("van", False, False, False, 15),
    ("wheelchair_van", True, False, False, 25),
    ("stretcher_van", False, True, False, 12),
    ("ambulance", True, True, True, 8),
]


def _pick_vehicle():
    weights = [entry[-1] for entry in VEHICLE_MIX]
    return random.choices(VEHICLE_MIX, weights=weights, k=1)[0]


def generate_mock_drivers(filename, count=40, base_lat=40.7128, base_lon=-74.0060):
    today = date.today()

    with open(filename, mode='w', newline='') as file:
        writer = csv.writer(file)
        writer.writerow([
            "driver_id", "name", "lat", "lon", "vehicle_type", "active", "training_complete",
            "wheelchair_accessible", "stretcher_capable", "oxygen_equipped", "max_daily_rides",
            "drivers_license_expiry", "medical_transport_license_expiry", "insurance_expiry",
        ])

        for i in range(count):
            driver_id = f"DRV-{str(i+1).zfill(3)}"
            vehicle_type, wheelchair, stretcher, oxygen, _ = _pick_vehicle()

            # Scatter drivers randomly around the city center (roughly +/- 10km)
            lat = base_lat + (random.random() - 0.5) * 0.18
            lon = base_lon + (random.random() - 0.5) * 0.18

            # ~10% of licenses run out inside the compliance window
            expiry_days = random.randint(5, 25) if random.random() < 0.1 else random.randint(60, 720)

            writer.writerow([
                driver_id,
                f"Driver {i+1}",
                round(lat, 6),
                round(lon, 6),
                vehicle_type,
                random.random() < 0.9,
                random.random() < 0.9,
                wheelchair,
                stretcher,
                oxygen,
                random.randint(4, 10),
                (today + timedelta(days=expiry_days)).isoformat(),
                (today + timedelta(days=random.randint(60, 720))).isoformat(),
                (today + timedelta(days=random.randint(60, 720))).isoformat(),
            ])

    print(f"Successfully generated {count} mock drivers into '{filename}'.")


def generate_mock_rides(filename, count=60, ride_date=None, base_lat=40.7128, base_lon=-74.0060):
    ride_date = ride_date or date.today()
    day_start = datetime.combine(ride_date, datetime.min.time()).replace(hour=7)

    with open(filename, mode='w', newline='') as file:
        writer = csv.writer(file)
        writer.writerow([
            "ride_id", "patient_name", "pickup_lat", "pickup_lon", "dropoff_lat", "dropoff_lon",
            "pickup_time", "priority", "requires_wheelchair", "requires_stretcher", "requires_oxygen",
            "appointment_duration_minutes", "is_round_trip",
        ])

        for i in range(count):
            needs = random.random()
            pickup_time = day_start + timedelta(minutes=random.randint(0, 10 * 60))

            writer.writerow([
                f"RIDE-{str(i+1).zfill(4)}",
                f"Patient {i+1}",
                round(base_lat + (random.random() - 0.5) * 0.2, 6),
                round(base_lon + (random.random() - 0.5) * 0.2, 6),
                round(base_lat + (random.random() - 0.5) * 0.2, 6),
                round(base_lon + (random.random() - 0.5) * 0.2, 6),
                pickup_time.isoformat(),
                random.choices(["EMERGENCY", "URGENT", "ROUTINE"], weights=[5, 20, 75], k=1)[0],
                needs < 0.25,
                0.25 <= needs < 0.35,
                random.random() < 0.1,
                random.choice(["", "10", "15", "45", "90"]),
                random.random() < 0.15,
            ])

    print(f"Successfully generated {count} mock rides into '{filename}'.")


if __name__ == "__main__":
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    data_dir = os.path.join(base_dir, "sampledata")
    os.makedirs(data_dir, exist_ok=True)

    generate_mock_drivers(os.path.join(data_dir, "drivers.csv"))
    generate_mock_rides(os.path.join(data_dir, "rides.csv"))
