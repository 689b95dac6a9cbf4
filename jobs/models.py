"""
Purpose: Domain models for the optimization job lifecycle.
What it does:
- Defines core data structures:
- OptimizationJob (what to optimize, status, outcome, timestamps)
- JobSubmission (what submit hands back to the caller)
- JobEvent (one status update on the event stream)

Defines enums/constants:
- JobKind = BY_DATE | BY_RIDE_IDS
- JobStatus = PENDING | RUNNING | COMPLETED | FAILED

Rule: No engine calls, no HTTP. Models only.
"""
from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

EVENT_JOB_STATUS = "job-status"
EVENT_HEARTBEAT = "heartbeat"

DUPLICATE_STATUS = "DUPLICATE"


class JobKind(Enum):
    BY_DATE = "BY_DATE"
    BY_RIDE_IDS = "BY_RIDE_IDS"


class JobStatus(Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class OptimizationJob:
    id: str
    kind: JobKind
    target_date: Optional[date] = None
    ride_ids: List[str] = field(default_factory=list)

    status: JobStatus = JobStatus.PENDING
    batch_id: Optional[str] = None
    error: Optional[str] = None

    callback_url: Optional[str] = None
    idempotency_key: Optional[str] = None

    submitted_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @staticmethod
    def new_for_date(
        target_date: date,
        callback_url: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        submitted_at: Optional[datetime] = None,
    ) -> OptimizationJob:
        return OptimizationJob(
            id=str(uuid.uuid4()),
            kind=JobKind.BY_DATE,
            target_date=target_date,
            callback_url=callback_url,
            idempotency_key=idempotency_key,
            submitted_at=submitted_at or datetime.now(),
        )

    @staticmethod
    def new_for_rides(
        ride_ids: List[str],
        callback_url: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        submitted_at: Optional[datetime] = None,
    ) -> OptimizationJob:
        return OptimizationJob(
            id=str(uuid.uuid4()),
            kind=JobKind.BY_RIDE_IDS,
            ride_ids=list(ride_ids),
            callback_url=callback_url,
            idempotency_key=idempotency_key,
            submitted_at=submitted_at or datetime.now(),
        )

    def to_payload(self) -> Dict[str, Any]:
        """
        Webhook body: {jobId, status, batchId, error, submittedAt, startedAt, completedAt}
        """
        return {
            "jobId": self.id,
            "status": self.status.value,
            "batchId": self.batch_id,
            "error": self.error,
            "submittedAt": _iso(self.submitted_at),
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
        }


@dataclass(frozen=True)
class JobSubmission:
    job_id: str
    status: str
    duplicate: bool = False


@dataclass(frozen=True)
class JobEvent:
    event: str
    job_id: str
    status: Optional[str] = None
    batch_id: Optional[str] = None
    error: Optional[str] = None

    @staticmethod
    def from_job(job: OptimizationJob) -> JobEvent:
        return JobEvent(
            event=EVENT_JOB_STATUS,
            job_id=job.id,
            status=job.status.value,
            batch_id=job.batch_id,
            error=job.error,
        )

    @staticmethod
    def heartbeat(job_id: str) -> JobEvent:
        return JobEvent(event=EVENT_HEARTBEAT, job_id=job_id)

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED.value, JobStatus.FAILED.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event,
            "jobId": self.job_id,
            "status": self.status,
            "batchId": self.batch_id,
            "error": self.error,
        }

    def to_sse(self) -> str:
        # text/event-stream framing: event line, data line, blank line
        return f"event: {self.event}\ndata: {json.dumps(self.to_dict())}\n\n"
