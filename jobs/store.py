"""
Purpose: In-memory job repository.
What it does:
- Owns OptimizationJob records by id
- Hands out copies so readers (status polling, streaming) never see a half-written job

Rule: Store owns persistence, the service owns transitions.
"""

from __future__ import annotations

import copy
import threading
from typing import Dict, List, Optional

from .models import JobStatus, OptimizationJob


class JobNotFoundError(Exception):
    """Raised when a job id is not in the store."""
    pass


class JobStore:
    def __init__(self):
        self._jobs: Dict[str, OptimizationJob] = {}
        self._lock = threading.Lock()

    def create(self, job: OptimizationJob) -> OptimizationJob:
        with self._lock:
            self._jobs[job.id] = copy.deepcopy(job)
            return copy.deepcopy(job)

    def get(self, job_id: str) -> Optional[OptimizationJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job else None

    def require(self, job_id: str) -> OptimizationJob:
        job = self.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    def save(self, job: OptimizationJob) -> OptimizationJob:
        with self._lock:
            if job.id not in self._jobs:
                raise JobNotFoundError(f"Job {job.id} not found")
            self._jobs[job.id] = copy.deepcopy(job)
            return copy.deepcopy(job)

    def find_by_status(self, status: JobStatus) -> List[OptimizationJob]:
        with self._lock:
            return [copy.deepcopy(job) for job in self._jobs.values() if job.status == status]

    def all(self) -> List[OptimizationJob]:
        with self._lock:
            return [copy.deepcopy(job) for job in self._jobs.values()]
