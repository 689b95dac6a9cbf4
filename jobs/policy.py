"""
Purpose: Central configuration for job execution.
What it does:

Stores the tunables of the job layer:

MAX_WORKERS = 4 (jobs running at once)

IDEMPOTENCY_TTL_SECONDS = 86400 (24h)

SSE_POLL_INTERVAL_SECONDS = 1.0

WEBHOOK_TIMEOUT_SECONDS = 5

Values can be overridden from the environment (.env is loaded via python-dotenv):
OPTIMIZER_MAX_WORKERS, OPTIMIZER_IDEMPOTENCY_TTL_SECONDS,
OPTIMIZER_SSE_POLL_SECONDS, OPTIMIZER_WEBHOOK_TIMEOUT_SECONDS

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .idempotency import DEFAULT_TTL_SECONDS


@dataclass(frozen=True)
class JobPolicy:
    # --- Worker pool ---
    max_workers: int = 4

    # --- Duplicate submission window ---
    idempotency_ttl_seconds: int = DEFAULT_TTL_SECONDS

    # --- Event stream ---
    sse_poll_interval_seconds: float = 1.0

    # --- Webhook ---
    webhook_timeout_seconds: float = 5.0

    def validate(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        if self.idempotency_ttl_seconds <= 0:
            raise ValueError("idempotency_ttl_seconds must be > 0")

        if self.sse_poll_interval_seconds <= 0:
            raise ValueError("sse_poll_interval_seconds must be > 0")

        if self.webhook_timeout_seconds <= 0:
            raise ValueError("webhook_timeout_seconds must be > 0")

    @staticmethod
    def from_env() -> JobPolicy:
        load_dotenv()
        defaults = JobPolicy()
        p = JobPolicy(
            max_workers=int(os.getenv("OPTIMIZER_MAX_WORKERS", defaults.max_workers)),
            idempotency_ttl_seconds=int(
                os.getenv("OPTIMIZER_IDEMPOTENCY_TTL_SECONDS", defaults.idempotency_ttl_seconds)
            ),
            sse_poll_interval_seconds=float(
                os.getenv("OPTIMIZER_SSE_POLL_SECONDS", defaults.sse_poll_interval_seconds)
            ),
            webhook_timeout_seconds=float(
                os.getenv("OPTIMIZER_WEBHOOK_TIMEOUT_SECONDS", defaults.webhook_timeout_seconds)
            ),
        )
        p.validate()
        return p


def default_job_policy() -> JobPolicy:
    """
    Convenience factory for the default policy.
    """
    p = JobPolicy()
    p.validate()
    return p
