from datetime import timedelta

import pytest

from dispatch.engine import AssignmentEngine
from drivers.store import DriverStore
from jobs.idempotency import InMemoryIdempotencyStore, build_idempotency_key, hash_ride_ids
from jobs.models import EVENT_HEARTBEAT, EVENT_JOB_STATUS, JobKind, JobStatus, OptimizationJob
from jobs.policy import JobPolicy
from jobs.service import OptimizationJobService
from jobs.store import JobStore
from rides.models import RideStatus
from rides.store import RideStore
from routing.geo import HaversineDistanceProvider


class RecordingJobStore(JobStore):
    """Remembers every status a job was written with."""

    def __init__(self):
        super().__init__()
        self.history = []

    def create(self, job):
        self.history.append(job.status)
        return super().create(job)

    def save(self, job):
        self.history.append(job.status)
        return super().save(job)


class RecordingNotifier:
    def __init__(self):
        self.jobs = []

    def notify(self, job):
        self.jobs.append(job)
        return True


class ExplodingEngine:
    def optimize(self, rides):
        raise RuntimeError("engine exploded")


@pytest.fixture
def ride_store(make_ride, ride_day):
    return RideStore([
        make_ride("r1", pickup_time=ride_day),
        make_ride("r2", pickup_time=ride_day + timedelta(hours=1), pickup_km_north=2.0),
        make_ride("next_day", pickup_time=ride_day + timedelta(days=1)),
    ])


@pytest.fixture
def driver_store(make_driver):
    return DriverStore([make_driver("d1"), make_driver("d2", km_north=2.0)])


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(driver_store, ride_store, notifier, today):
    svc = OptimizationJobService(
        engine=AssignmentEngine(driver_store, ride_store=ride_store, today=today),
        ride_store=ride_store,
        job_store=RecordingJobStore(),
        notifier=notifier,
        policy=JobPolicy(max_workers=2),
    )
    yield svc
    svc.shutdown()


def test_submit_for_date_runs_to_completion(service, ride_store, ride_day):
    submission = service.submit_for_date(ride_day.date())

    assert submission.status == "PENDING"
    assert submission.duplicate is False

    job = service.wait_for(submission.job_id, timeout=5)

    # 1. lifecycle PENDING -> RUNNING -> COMPLETED
    assert service.job_store.history == [JobStatus.PENDING, JobStatus.RUNNING, JobStatus.COMPLETED]
    assert job.status == JobStatus.COMPLETED
    assert job.batch_id.startswith("MEDICAL_")
    assert job.started_at is not None and job.completed_at is not None
    assert job.error is None

    # 2. only that date's rides were touched
    assert ride_store.get("r1").status == RideStatus.ASSIGNED
    assert ride_store.get("r2").optimization_batch_id == job.batch_id
    assert ride_store.get("next_day").pickup_driver_id is None


def test_scenario_d_duplicate_submission(service, ride_day):
    first = service.submit_for_date(ride_day.date(), idempotency_key="abc")
    second = service.submit_for_date(ride_day.date(), idempotency_key="abc")

    assert second.duplicate is True
    assert second.status == "DUPLICATE"
    assert second.job_id == first.job_id
    assert len(service.job_store.all()) == 1

    # another key or another date is a new job
    third = service.submit_for_date(ride_day.date(), idempotency_key="xyz")
    fourth = service.submit_for_date(ride_day.date() + timedelta(days=1), idempotency_key="abc")
    assert not third.duplicate and not fourth.duplicate
    assert len(service.job_store.all()) == 3


def test_duplicate_ride_submission_ignores_id_order(service):
    first = service.submit_for_rides(["r1", "r2"], idempotency_key="k")
    second = service.submit_for_rides(["r2", "r1"], idempotency_key="k")

    assert second.duplicate is True
    assert second.job_id == first.job_id


def test_scenario_e_engine_failure_marks_job_failed(ride_store, ride_day, notifier):
    job_store = RecordingJobStore()
    service = OptimizationJobService(
        engine=ExplodingEngine(),
        ride_store=ride_store,
        job_store=job_store,
        notifier=notifier,
    )

    submission = service.submit_for_date(ride_day.date(), callback_url="https://hooks.example.com/jobs")
    job = service.wait_for(submission.job_id, timeout=5)
    service.shutdown()

    assert job_store.history == [JobStatus.PENDING, JobStatus.RUNNING, JobStatus.FAILED]
    assert job.status == JobStatus.FAILED
    assert job.error == "engine exploded"

    # webhook still fires with the failure
    assert len(notifier.jobs) == 1
    assert notifier.jobs[0].to_payload()["status"] == "FAILED"
    assert notifier.jobs[0].to_payload()["error"] == "engine exploded"


def test_no_webhook_without_callback(service, notifier, ride_day):
    submission = service.submit_for_date(ride_day.date())
    service.wait_for(submission.job_id, timeout=5)

    assert notifier.jobs == []


def test_submit_for_rides_skips_unknown_ids(service, ride_store):
    submission = service.submit_for_rides(["r1", "ghost"])
    job = service.wait_for(submission.job_id, timeout=5)

    assert job.kind == JobKind.BY_RIDE_IDS
    assert job.status == JobStatus.COMPLETED
    assert ride_store.get("r1").status == RideStatus.ASSIGNED
    assert ride_store.get("r2").status == RideStatus.REQUESTED


def test_submit_for_rides_requires_ids(service):
    with pytest.raises(ValueError):
        service.submit_for_rides([])


def test_repeated_ride_id_is_planned_once(service, ride_store):
    submission = service.submit_for_rides(["r1", "r1"])
    job = service.wait_for(submission.job_id, timeout=5)

    assert job.ride_ids == ["r1"]
    assert job.status == JobStatus.COMPLETED

    # 1. one ride in the batch, one pickup driver, the nearest one
    audit = service.engine.audit_recorder.store.find_by_batch_id(job.batch_id)
    assert audit.total_rides == 1
    assert audit.assigned_rides == 1
    assert ride_store.get("r1").pickup_driver_id == "d1"


def test_get_many_returns_repeated_ids_once(ride_store):
    rides, missing = ride_store.get_many(["r1", "ghost", "r1", "ghost"])

    assert [ride.id for ride in rides] == ["r1"]
    assert missing == ["ghost"]


def test_finished_futures_are_released(service, ride_day):
    submission = service.submit_for_date(ride_day.date())
    service.shutdown()

    assert service._futures == {}
    assert service.wait_for(submission.job_id).status == JobStatus.COMPLETED


class FailOnceJobStore(JobStore):
    def __init__(self):
        super().__init__()
        self.failed = False

    def create(self, job):
        if not self.failed:
            self.failed = True
            raise RuntimeError("job store unavailable")
        return super().create(job)


def test_failed_create_releases_idempotency_key(driver_store, ride_store, notifier, today, ride_day):
    service = OptimizationJobService(
        engine=AssignmentEngine(driver_store, ride_store=ride_store, today=today),
        ride_store=ride_store,
        job_store=FailOnceJobStore(),
        notifier=notifier,
    )

    with pytest.raises(RuntimeError):
        service.submit_for_date(ride_day.date(), idempotency_key="abc")

    retry = service.submit_for_date(ride_day.date(), idempotency_key="abc")
    job = service.wait_for(retry.job_id, timeout=5)
    service.shutdown()

    assert retry.duplicate is False
    assert job.status == JobStatus.COMPLETED
    assert service.idempotency_store.get(build_idempotency_key("abc", target_date=ride_day.date())) == job.id


def test_route_distance_reaches_audit_detail(driver_store, ride_store, notifier, today, ride_day):
    service = OptimizationJobService(
        engine=AssignmentEngine(driver_store, ride_store=ride_store, today=today),
        ride_store=ride_store,
        notifier=notifier,
        distance_provider=HaversineDistanceProvider(),
    )

    submission = service.submit_for_rides(["r1", "r2"])
    job = service.wait_for(submission.job_id, timeout=5)
    service.shutdown()

    audit = service.engine.audit_recorder.store.find_by_batch_id(job.batch_id)
    distances = {detail.ride_id: detail.route_distance_m for detail in audit.ride_assignments_detail}
    assert distances["r1"] == pytest.approx(5000, rel=0.01)
    assert distances["r2"] == pytest.approx(3000, rel=0.01)


def test_finished_job_is_not_run_again(service, ride_day):
    submission = service.submit_for_date(ride_day.date())
    first = service.wait_for(submission.job_id, timeout=5)

    again = service.run_job(submission.job_id)

    assert again.status == JobStatus.COMPLETED
    assert again.batch_id == first.batch_id
    assert service.job_store.history.count(JobStatus.RUNNING) == 1


def test_run_unknown_job_returns_none(service):
    assert service.run_job("missing") is None
    assert service.get_job("missing") is None


def test_stream_heartbeats_while_job_unknown(service):
    sleeps = []

    events = list(service.stream_job_events("missing", max_polls=3, sleep=sleeps.append))

    assert [event.event for event in events] == [EVENT_HEARTBEAT] * 3
    assert sleeps == [1.0, 1.0]


def test_stream_stops_after_terminal_status(ride_store, ride_day):
    job_store = JobStore()
    job = OptimizationJob.new_for_date(ride_day.date())
    job.status = JobStatus.RUNNING
    job_store.create(job)

    service = OptimizationJobService(engine=ExplodingEngine(), ride_store=ride_store, job_store=job_store)

    def finish_job(_interval):
        stored = job_store.get(job.id)
        stored.status = JobStatus.COMPLETED
        stored.batch_id = "MEDICAL_20260302_090000_deadbeef"
        job_store.save(stored)

    events = list(service.stream_job_events(job.id, poll_interval=0.5, sleep=finish_job))
    service.shutdown()

    assert [event.status for event in events] == ["RUNNING", "COMPLETED"]
    assert all(event.event == EVENT_JOB_STATUS for event in events)
    assert events[-1].batch_id == "MEDICAL_20260302_090000_deadbeef"
    assert events[-1].to_sse().startswith("event: job-status\ndata: {")
    assert events[-1].to_sse().endswith("\n\n")


def test_idempotency_store_expires_entries():
    now = [0.0]
    store = InMemoryIdempotencyStore(clock=lambda: now[0])

    assert store.set_if_absent("k", "job-1", 60) is True
    assert store.set_if_absent("k", "job-2", 60) is False
    assert store.get("k") == "job-1"

    now[0] = 61.0
    assert store.get("k") is None
    assert store.set_if_absent("k", "job-2", 60) is True


def test_idempotency_key_format(ride_day):
    assert build_idempotency_key("abc", target_date=ride_day.date()) == "optimize:abc:date:2026-03-02"
    assert build_idempotency_key("abc", ride_ids=["b", "a"]) == f"optimize:abc:rides:{hash_ride_ids(['a', 'b'])}"
    with pytest.raises(ValueError):
        build_idempotency_key("abc")


def test_job_policy_from_env(monkeypatch):
    monkeypatch.setenv("OPTIMIZER_MAX_WORKERS", "8")
    monkeypatch.setenv("OPTIMIZER_SSE_POLL_SECONDS", "0.25")

    policy = JobPolicy.from_env()

    assert policy.max_workers == 8
    assert policy.sse_poll_interval_seconds == 0.25
    assert policy.idempotency_ttl_seconds == 24 * 60 * 60


def test_job_policy_validation():
    with pytest.raises(ValueError):
        JobPolicy(max_workers=0).validate()
