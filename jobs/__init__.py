"""
Optimization jobs package.

Public API:
- Domain models: OptimizationJob, JobKind, JobStatus, JobSubmission, JobEvent
- Orchestration: OptimizationJobService
- Collaborators: JobStore, InMemoryIdempotencyStore, WebhookNotifier
- Configuration: JobPolicy
"""
from .models import JobEvent, JobKind, JobStatus, JobSubmission, OptimizationJob
from .store import JobNotFoundError, JobStore
from .idempotency import InMemoryIdempotencyStore, build_idempotency_key
from .notifier import WebhookNotifier
from .policy import JobPolicy, default_job_policy
from .service import OptimizationJobService

__all__ = ["OptimizationJob",
           "JobKind",
             "JobStatus",
               "JobSubmission",
               "JobEvent",
               "JobStore",
               "JobNotFoundError",
               "InMemoryIdempotencyStore",
               "build_idempotency_key",
               "WebhookNotifier",
               "JobPolicy",
               "default_job_policy",
               "OptimizationJobService",
               ]
