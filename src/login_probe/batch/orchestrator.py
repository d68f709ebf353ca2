"""Sequential batch runner for credential submissions."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Dict, Iterable, Optional

from ..core.artifacts import (
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PENDING,
    JOB_RUNNING,
    BatchJob,
    LoginAttemptResult,
    utc_now,
)
from ..core.errors import InputError, PersistenceError
from ..core.models import Credentials, SubmitOptions
from ..core.storage import BATCH_JOBS, Store

logger = logging.getLogger(__name__)

SubmitFn = Callable[[str, Credentials, SubmitOptions], LoginAttemptResult]


def _progress(done: int, total: int) -> int:
    # 100 is reserved for the completed transition.
    return min(99, round(100 * done / total))


class BatchOrchestrator:
    """Owns batch jobs: creates them, runs targets one at a time, records progress."""

    def __init__(self, store: Store, submit_fn: SubmitFn) -> None:
        self.store = store
        self.submit_fn = submit_fn

    def create_job(
        self,
        job_name: str,
        target_urls: Iterable[str],
        credentials: Credentials,
        options: Optional[SubmitOptions] = None,
    ) -> BatchJob:
        urls = tuple(url.strip() for url in (target_urls or ()) if url and url.strip())
        if not job_name:
            raise InputError("Missing required field: job_name")
        if not urls:
            raise InputError("Missing required field: target_urls (non-empty list)")
        if not credentials or not credentials.username or not credentials.password:
            raise InputError("Missing required fields: credentials.username, credentials.password")

        job = BatchJob(
            id=uuid.uuid4().hex,
            job_name=job_name,
            target_urls=urls,
            credentials_ref={"username": credentials.username},
            options=(options or SubmitOptions()).to_dict(),
            status=JOB_PENDING,
        )
        self.store.insert(BATCH_JOBS, job.to_dict())
        logger.info("Created batch job %s (%s) with %d target(s)", job.id, job_name, len(urls))
        return job

    def get(self, job_id: str) -> BatchJob:
        record = self.store.get(BATCH_JOBS, job_id)
        if record is None:
            raise InputError(f"Job not found: {job_id}")
        return BatchJob.from_dict(record)

    def start(self, job: BatchJob, credentials: Credentials) -> threading.Thread:
        thread = threading.Thread(
            target=self.run,
            args=(job, credentials),
            name=f"batch-{job.id[:8]}",
            daemon=True,
        )
        thread.start()
        return thread

    def run(self, job: BatchJob, credentials: Credentials) -> BatchJob:
        """Attempts every target in order; per-target errors never abort the job."""

        options = SubmitOptions.from_dict(job.options)
        total = len(job.target_urls)
        try:
            self._persist(job, status=JOB_RUNNING)
            for index, url in enumerate(job.target_urls, start=1):
                logger.info("[%s] %d/%d %s", job.id[:8], index, total, url)
                job.results.append(self._attempt(url, credentials, options))
                if index < total:
                    self._persist(
                        job,
                        progress=max(job.progress, _progress(index, total)),
                        results=list(job.results),
                    )
            self._persist(
                job,
                status=JOB_COMPLETED,
                progress=100,
                results=list(job.results),
                completed_at=utc_now(),
            )
        except Exception as exc:
            logger.error("Batch job %s failed: %s", job.id, exc, exc_info=True)
            job.status = JOB_FAILED
            job.error = str(exc) or exc.__class__.__name__
            try:
                self.store.update(BATCH_JOBS, job.id, {"status": JOB_FAILED, "error": job.error})
            except PersistenceError:
                logger.error("Could not record failure of batch job %s", job.id)
        return job

    def _attempt(self, url: str, credentials: Credentials, options: SubmitOptions) -> Dict[str, Any]:
        try:
            return self.submit_fn(url, credentials, options).to_dict()
        except Exception as exc:
            logger.warning("Target %s raised %s", url, exc, exc_info=True)
            return {"url": url, "success": False, "errors": [str(exc) or exc.__class__.__name__]}

    def _persist(self, job: BatchJob, **patch: Any) -> None:
        # The store is written first so a rejected write leaves the job unchanged.
        self.store.update(BATCH_JOBS, job.id, patch)
        for key, value in patch.items():
            setattr(job, key, value)
