"""Fire-and-forget background jobs"""

from .job_manager import JobStatus, SimpleJobManager, get_job_manager

__all__ = [
    "JobStatus",
    "SimpleJobManager",
    "get_job_manager",
]
