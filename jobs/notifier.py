#Purpose: Best-effort webhook delivery for finished jobs.
#POSTs the job payload to the job's callback URL once it reaches a terminal state.
#No retries, no backoff: a failed delivery is logged and forgotten,
#and never changes the job.

import logging
from typing import Optional

import requests

from .models import OptimizationJob

logger = logging.getLogger(__name__)


class WebhookNotifier:
    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 5.0):
        self.session = session or requests.Session()
        self.timeout = timeout  # seconds to wait for the receiver

    def notify(self, job: OptimizationJob) -> bool:
        """
        Returns True if the receiver answered with a 2xx status.
        """
        if not job.callback_url:
            return False

        try:
            response = self.session.post(job.callback_url, json=job.to_payload(), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Webhook delivery for job {job.id} to {job.callback_url} failed: {e}")
            return False

        logger.info(f"Webhook delivered for job {job.id} ({job.status.value}) to {job.callback_url}")
        return True
