"""
Background Job Queue
====================
In-memory, thread-backed fire-and-forget job queue. Jobs are dispatched by
name with a payload; handlers are registered per job type.

Callers never wait on a job: dispatch returns the job id immediately and
the outcome is only visible through get_job.
"""

import uuid
import threading
from typing import Dict, Any, Optional, Callable
from datetime import datetime, timedelta
from enum import Enum

from ..config import Config
from ..utils.logger import get_logger, log_with_context

logger = get_logger(__name__)

JobHandler = Callable[[Dict[str, Any]], Any]


class JobStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class UnknownJobTypeError(KeyError):
    """No handler registered for a dispatched job type"""


class SimpleJobManager:
    """In-memory job queue running each job on a daemon thread"""

    def __init__(
        self,
        max_jobs: Optional[int] = None,
        job_ttl_hours: Optional[int] = None,
        run_inline: bool = False,
    ):
        """
        Args:
            max_jobs: Job records kept before finished ones are pruned
            job_ttl_hours: Age after which finished jobs may be pruned
            run_inline: Run jobs on the calling thread (tests, scripts)
        """
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.handlers: Dict[str, JobHandler] = {}
        self.lock = threading.Lock()
        self.max_jobs = max_jobs or Config.JOB_MAX_JOBS
        self.job_ttl = timedelta(hours=job_ttl_hours or Config.JOB_TTL_HOURS)
        self.run_inline = run_inline

    def register_handler(self, job_type: str, handler: JobHandler) -> None:
        with self.lock:
            self.handlers[job_type] = handler

    def dispatch(self, job_type: str, data: Dict[str, Any]) -> str:
        """
        Queue a job and start it.

        Raises:
            UnknownJobTypeError: If no handler is registered for job_type
        """
        with self.lock:
            handler = self.handlers.get(job_type)
        if handler is None:
            raise UnknownJobTypeError(job_type)

        job_id = self.create_job(job_type, data)
        if self.run_inline:
            self._run(job_id, handler)
        else:
            self.start_job(job_id, handler)
        return job_id

    def create_job(self, job_type: str, data: Dict[str, Any]) -> str:
        """Create a new job and return job_id"""
        job_id = str(uuid.uuid4())

        with self.lock:
            if len(self.jobs) >= self.max_jobs:
                self._cleanup_old_jobs()

            self.jobs[job_id] = {
                "job_id": job_id,
                "job_type": job_type,
                "status": JobStatus.PENDING.value,
                "data": data,
                "result": None,
                "error": None,
                "created_at": datetime.now(),
                "updated_at": datetime.now(),
                "started_at": None,
                "completed_at": None,
            }

        return job_id

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Snapshot of a job record"""
        with self.lock:
            job = self.jobs.get(job_id)
            return job.copy() if job else None

    def update_job(self, job_id: str, **updates):
        with self.lock:
            if job_id in self.jobs:
                self.jobs[job_id].update(updates)
                self.jobs[job_id]["updated_at"] = datetime.now()

    def start_job(self, job_id: str, handler: JobHandler) -> threading.Thread:
        """Run a job on a background thread"""
        thread = threading.Thread(target=self._run, args=(job_id, handler), daemon=True)
        thread.start()
        return thread

    def _run(self, job_id: str, handler: JobHandler) -> None:
        job = self.get_job(job_id)
        if not job:
            return

        self.update_job(job_id, status=JobStatus.PROCESSING.value, started_at=datetime.now())
        try:
            result = handler(job["data"])
        except Exception as e:
            self.update_job(
                job_id,
                status=JobStatus.FAILED.value,
                error=str(e),
                completed_at=datetime.now(),
            )
            log_with_context(
                logger, "ERROR", "Background job failed",
                job_id=job_id, job_type=job["job_type"], error=str(e),
            )
            return

        self.update_job(
            job_id,
            status=JobStatus.COMPLETED.value,
            result=result,
            completed_at=datetime.now(),
        )
        log_with_context(logger, "INFO", "Background job completed", job_id=job_id, job_type=job["job_type"])

    def _cleanup_old_jobs(self):
        """Remove finished jobs older than the TTL"""
        now = datetime.now()
        expired = [
            job_id for job_id, job in self.jobs.items()
            if job["status"] in (JobStatus.COMPLETED.value, JobStatus.FAILED.value)
            and now - job["updated_at"] > self.job_ttl
        ]
        for job_id in expired:
            del self.jobs[job_id]


# Global job manager instance
_job_manager = None


def get_job_manager() -> SimpleJobManager:
    """Get or create global job manager instance"""
    global _job_manager
    if _job_manager is None:
        _job_manager = SimpleJobManager()
    return _job_manager
