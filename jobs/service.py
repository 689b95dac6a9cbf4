"""
Purpose: The job "orchestrator" (what thin API controllers call).
What it does:

- submit_for_date / submit_for_rides: create a PENDING job, schedule it on the
  worker pool and return immediately (duplicate submissions are detected via
  the idempotency store)

- run_job: PENDING -> RUNNING -> COMPLETED | FAILED around one engine run,
  then fires the webhook if the job has a callback URL

- get_job / stream_job_events: read-only views for status polling and SSE

Rule: Service owns job transitions, the engine owns assignment logic.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date, datetime
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from dispatch.engine import AssignmentEngine, OptimizationError
from dispatch.state_machines import job_state
from rides.models import Ride
from rides.preparation import prepare_rides
from rides.store import RideStore

from .idempotency import IdempotencyStore, InMemoryIdempotencyStore, build_idempotency_key
from .models import DUPLICATE_STATUS, JobEvent, JobKind, JobSubmission, OptimizationJob
from .notifier import WebhookNotifier
from .policy import JobPolicy, default_job_policy
from .store import JobStore

logger = logging.getLogger(__name__)


class OptimizationJobService:
    def __init__(
        self,
        engine: AssignmentEngine,
        ride_store: RideStore,
        job_store: Optional[JobStore] = None,
        idempotency_store: Optional[IdempotencyStore] = None,
        notifier: Optional[WebhookNotifier] = None,
        policy: Optional[JobPolicy] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        geocoder=None,
        distance_provider=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.engine = engine
        self.ride_store = ride_store
        self.job_store = job_store if job_store is not None else JobStore()
        self.idempotency_store = idempotency_store if idempotency_store is not None else InMemoryIdempotencyStore()
        self.policy = policy or default_job_policy()
        self.notifier = notifier or WebhookNotifier(timeout=self.policy.webhook_timeout_seconds)
        self.executor = executor or ThreadPoolExecutor(
            max_workers=self.policy.max_workers, thread_name_prefix="optimization-job"
        )
        self.geocoder = geocoder
        self.distance_provider = distance_provider
        self.clock = clock
        self._futures: Dict[str, Future] = {}
        self._futures_lock = threading.Lock()

    # --- Submission ---

    def submit_for_date(
        self,
        target_date: date,
        callback_url: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> JobSubmission:
        job = OptimizationJob.new_for_date(target_date, callback_url, idempotency_key, self.clock())
        dedupe_key = build_idempotency_key(idempotency_key, target_date=target_date) if idempotency_key else None
        return self._submit(job, dedupe_key)

    def submit_for_rides(
        self,
        ride_ids: Sequence[str],
        callback_url: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> JobSubmission:
        if not ride_ids:
            raise ValueError("At least one ride id is required")

        ride_ids = list(dict.fromkeys(ride_ids))
        job = OptimizationJob.new_for_rides(ride_ids, callback_url, idempotency_key, self.clock())
        dedupe_key = build_idempotency_key(idempotency_key, ride_ids=ride_ids) if idempotency_key else None
        return self._submit(job, dedupe_key)

    def _submit(self, job: OptimizationJob, dedupe_key: Optional[str]) -> JobSubmission:
        if dedupe_key is not None:
            if not self.idempotency_store.set_if_absent(dedupe_key, job.id, self.policy.idempotency_ttl_seconds):
                original_job_id = self.idempotency_store.get(dedupe_key)
                logger.info(f"Duplicate submission for {dedupe_key}, returning job {original_job_id}")
                return JobSubmission(job_id=original_job_id, status=DUPLICATE_STATUS, duplicate=True)

        try:
            self.job_store.create(job)
        except Exception:
            if dedupe_key is not None:
                self.idempotency_store.delete(dedupe_key)
            raise
        logger.info(f"Job {job.id} submitted ({job.kind.value})")

        self.run_job_async(job.id)
        return JobSubmission(job_id=job.id, status=job.status.value)

    # --- Execution ---

    def run_job_async(self, job_id: str) -> Future:
        future = self.executor.submit(self.run_job, job_id)
        with self._futures_lock:
            self._futures[job_id] = future
        # finished jobs are read back from the job store
        future.add_done_callback(lambda _f: self._forget_future(job_id))
        return future

    def _forget_future(self, job_id: str) -> None:
        with self._futures_lock:
            self._futures.pop(job_id, None)

    def wait_for(self, job_id: str, timeout: Optional[float] = None) -> Optional[OptimizationJob]:
        """
        Blocks until a scheduled job has finished running. Mostly for scripts and tests.
        """
        with self._futures_lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.get_job(job_id)

    def run_job(self, job_id: str) -> Optional[OptimizationJob]:
        job = self.job_store.get(job_id)
        if job is None:
            logger.warning(f"Job {job_id} not found, nothing to run")
            return None

        try:
            job_state.start_job(job, self.clock())
        except job_state.JobStateException as e:
            logger.warning(f"Refusing to run job {job_id}: {e}")
            return job

        self.job_store.save(job)
        logger.info(f"Job {job.id} running")

        try:
            rides = self._load_rides(job)
            prepare_rides(rides, self.geocoder, self.distance_provider)
            result = self.engine.optimize(rides)
            job_state.complete_job(job, result.batch_id, self.clock())
            logger.info(f"Job {job.id} completed with batch {result.batch_id}")
        except Exception as e:
            logger.exception(f"Job {job.id} failed: {e}")
            if isinstance(e, OptimizationError):
                job.batch_id = e.batch_id
            job_state.fail_job(job, str(e), self.clock())

        self.job_store.save(job)

        if job.callback_url:
            self.notifier.notify(job)

        return job

    def _load_rides(self, job: OptimizationJob) -> List[Ride]:
        if job.kind == JobKind.BY_DATE:
            rides = self.ride_store.find_unassigned_for_date(job.target_date)
            logger.info(f"Job {job.id}: {len(rides)} unassigned rides on {job.target_date.isoformat()}")
            return rides

        rides, missing = self.ride_store.get_many(job.ride_ids)
        if missing:
            logger.warning(f"Job {job.id}: skipping unknown ride ids {missing}")
        return rides

    # --- Read side ---

    def get_job(self, job_id: str) -> Optional[OptimizationJob]:
        return self.job_store.get(job_id)

    def stream_job_events(
        self,
        job_id: str,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Iterator[JobEvent]:
        """
        Polls the job and yields one event per poll: a heartbeat while the job
        is unknown, its status otherwise. Stops after a COMPLETED/FAILED event,
        or after max_polls events when given.
        """
        interval = poll_interval if poll_interval is not None else self.policy.sse_poll_interval_seconds
        polls = 0

        while True:
            job = self.get_job(job_id)
            if job is None:
                yield JobEvent.heartbeat(job_id)
            else:
                yield JobEvent.from_job(job)
                if job.status.is_terminal:
                    return

            polls += 1
            if max_polls is not None and polls >= max_polls:
                return
            sleep(interval)

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
