import csv
import logging
import os
import time
from datetime import date, datetime
from typing import List, Optional

from dispatch.engine import AssignmentEngine
from dispatch.audit import AuditRecorder, AuditStore
from drivers.models import Driver
from drivers.store import DriverStore
from jobs.service import OptimizationJobService
from rides.models import Location, Patient, Priority, Ride
from rides.store import RideStore
from routing.geo import HaversineDistanceProvider
from routing.osrm_client import OSRMClient


def _flag(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _date(value: str) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def load_drivers(filepath="sampledata/drivers.csv") -> List[Driver]:
    drivers = []

    # Resolve the correct path depending on where the user runs the script from.
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    absolute_path = os.path.join(base_dir, filepath)

    with open(absolute_path, 'r') as file:
        reader = csv.DictReader(file)
        for row in reader:
            drivers.append(
                Driver.new(
                    row['driver_id'],
                    float(row['lat']),
                    float(row['lon']),
                    vehicle_type=row['vehicle_type'],
                    name=row['name'],
                    active=_flag(row['active']),
                    training_complete=_flag(row['training_complete']),
                    wheelchair_accessible=_flag(row['wheelchair_accessible']),
                    stretcher_capable=_flag(row['stretcher_capable']),
                    oxygen_equipped=_flag(row['oxygen_equipped']),
                    max_daily_rides=int(row['max_daily_rides']),
                    drivers_license_expiry=_date(row['drivers_license_expiry']),
                    medical_transport_license_expiry=_date(row['medical_transport_license_expiry']),
                    insurance_expiry=_date(row['insurance_expiry']),
                )
            )
    return drivers


def load_rides(filepath="sampledata/rides.csv") -> List[Ride]:
    rides = []
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

    with open(os.path.join(base_dir, filepath), 'r') as file:
        reader = csv.DictReader(file)
        for row in reader:
            patient = Patient(
                id=f"PAT-{row['ride_id']}",
                name=row['patient_name'],
                requires_wheelchair=_flag(row['requires_wheelchair']),
                requires_stretcher=_flag(row['requires_stretcher']),
                requires_oxygen=_flag(row['requires_oxygen']),
            )
            duration = row['appointment_duration_minutes']
            rides.append(
                Ride(
                    id=row['ride_id'],
                    pickup=Location(f"{row['ride_id']} pickup", float(row['pickup_lat']), float(row['pickup_lon'])),
                    dropoff=Location(f"{row['ride_id']} dropoff", float(row['dropoff_lat']), float(row['dropoff_lon'])),
                    pickup_time=datetime.fromisoformat(row['pickup_time']),
                    patient=patient,
                    priority=Priority(row['priority']),
                    appointment_duration_minutes=int(duration) if duration else None,
                    is_round_trip=_flag(row['is_round_trip']),
                )
            )
    return rides


def run_simulation():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print("=== STARTING END-TO-END RIDE OPTIMIZATION SIMULATION ===")

    # 1. Load Data
    drivers = load_drivers()
    rides = load_rides()
    print(f"Loaded {len(rides)} Rides and {len(drivers)} Drivers.\n")

    # 2. Configure System
    ride_store = RideStore(rides)
    audit_store = AuditStore()
    engine = AssignmentEngine(DriverStore(drivers), ride_store=ride_store, audit_recorder=AuditRecorder(audit_store))

    # Road distances from OSRM when configured, straight-line otherwise
    distance_provider = OSRMClient() if os.getenv("OSRM_BASE_URL") else HaversineDistanceProvider(detour_factor=1.3)
    service = OptimizationJobService(engine=engine, ride_store=ride_store, distance_provider=distance_provider)

    # 3. Submit one job per ride date and wait for it
    ride_dates = sorted({ride.pickup_time.date() for ride in rides})
    start_time = time.time()
    jobs = []
    for ride_date in ride_dates:
        submission = service.submit_for_date(ride_date, idempotency_key="simulation")
        jobs.append(service.wait_for(submission.job_id))
    service.shutdown()
    print(f"Optimized {len(ride_dates)} day(s) in {time.time() - start_time:.2f}s.\n")

    # 4. Report
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    output_path = os.path.join(base_dir, "optimization_results.csv")

    with open(output_path, "w", newline='') as file:
        writer = csv.writer(file)
        writer.writerow(["ride_id", "priority", "pickup_driver", "dropoff_driver", "method", "batch_id", "route_distance_m", "unassigned_reason"])

        for job in jobs:
            print(f"Job {job.id} -> {job.status.value} (batch {job.batch_id})")
            if job.error:
                print(f"  [FAILED] {job.error}")
                continue

            audit = audit_store.find_by_batch_id(job.batch_id)
            reasons = audit.reasons
            for detail in audit.ride_assignments_detail:
                writer.writerow([
                    detail.ride_id,
                    detail.priority,
                    detail.pickup_driver_id or "UNASSIGNED",
                    detail.dropoff_driver_id or "",
                    detail.method or "",
                    audit.batch_id,
                    "" if detail.route_distance_m is None else round(detail.route_distance_m),
                    reasons.get(detail.ride_id, ""),
                ])

            print(f"  Assigned {audit.assigned_rides}/{audit.total_rides} rides "
                  f"to {audit.assigned_drivers} drivers ({audit.success_rate:.1f}%)")
            print(f"  Emergency: {audit.emergency_rides}, Wheelchair: {audit.wheelchair_rides}, "
                  f"Stretcher: {audit.stretcher_rides}, Round trip: {audit.round_trip_rides}")

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Results written to '{output_path}'.")


if __name__ == "__main__":
    run_simulation()
