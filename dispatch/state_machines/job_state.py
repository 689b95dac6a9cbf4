from datetime import datetime
from typing import Optional

from jobs.models import JobStatus, OptimizationJob


class JobStateException(Exception):
    """Raised when an invalid job transition is attempted."""
    pass


def start_job(job: OptimizationJob, started_at: datetime) -> OptimizationJob:
    """
    PENDING -> RUNNING. A job is only ever run once.
    """
    if job.status != JobStatus.PENDING:
        raise JobStateException(f"Cannot start job {job.id} from {job.status.value}")

    job.status = JobStatus.RUNNING
    job.started_at = started_at
    return job


def complete_job(job: OptimizationJob, batch_id: str, completed_at: datetime) -> OptimizationJob:
    if job.status != JobStatus.RUNNING:
        raise JobStateException(f"Cannot complete job {job.id} from {job.status.value}")

    job.status = JobStatus.COMPLETED
    job.batch_id = batch_id
    job.completed_at = completed_at
    return job


def fail_job(job: OptimizationJob, error: Optional[str], completed_at: datetime) -> OptimizationJob:
    """
    PENDING/RUNNING -> FAILED, keeping the error text for the caller.
    """
    if job.status.is_terminal:
        raise JobStateException(f"Job {job.id} already finished with {job.status.value}")

    job.status = JobStatus.FAILED
    job.error = error or "Unknown error"
    job.completed_at = completed_at
    return job
