"""
Tests for the in-memory job queue.
"""

from datetime import datetime, timedelta

import pytest

from marketsync.workers.job_manager import JobStatus, SimpleJobManager, UnknownJobTypeError


@pytest.fixture
def job_manager():
    """Job manager running handlers on the calling thread."""
    return SimpleJobManager(max_jobs=10, job_ttl_hours=1, run_inline=True)


def test_dispatch_runs_handler(job_manager):
    """Test a completed job records its result."""
    job_manager.register_handler("double", lambda data: data["n"] * 2)

    job_id = job_manager.dispatch("double", {"n": 21})

    job = job_manager.get_job(job_id)
    assert job["status"] == JobStatus.COMPLETED.value
    assert job["result"] == 42
    assert job["completed_at"] is not None


def test_failed_handler_is_recorded(job_manager):
    """Test that a handler exception marks the job failed."""
    def explode(data):
        raise RuntimeError("platform unavailable")

    job_manager.register_handler("explode", explode)

    job_id = job_manager.dispatch("explode", {})

    job = job_manager.get_job(job_id)
    assert job["status"] == JobStatus.FAILED.value
    assert job["error"] == "platform unavailable"


def test_unknown_job_type(job_manager):
    """Test dispatching a job nobody handles."""
    with pytest.raises(UnknownJobTypeError):
        job_manager.dispatch("missing", {})


def test_background_thread():
    """Test that non-inline jobs run on their own thread."""
    manager = SimpleJobManager()
    job_id = manager.create_job("echo", {"value": "ok"})

    thread = manager.start_job(job_id, lambda data: data["value"])
    thread.join(timeout=5)

    assert manager.get_job(job_id)["result"] == "ok"


def test_get_job_returns_copy(job_manager):
    """Test that callers cannot mutate stored jobs."""
    job_id = job_manager.create_job("noop", {})

    job_manager.get_job(job_id)["status"] = "hacked"

    assert job_manager.get_job(job_id)["status"] == JobStatus.PENDING.value
    assert job_manager.get_job("nope") is None


def test_old_finished_jobs_pruned():
    """Test pruning when the job table is full."""
    manager = SimpleJobManager(max_jobs=1, job_ttl_hours=1, run_inline=True)
    old_id = manager.create_job("noop", {})
    manager.jobs[old_id]["status"] = JobStatus.COMPLETED.value
    manager.jobs[old_id]["updated_at"] = datetime.now() - timedelta(hours=2)

    new_id = manager.create_job("noop", {})

    assert manager.get_job(old_id) is None
    assert manager.get_job(new_id) is not None
