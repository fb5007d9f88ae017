"""Aggregate progress helpers for jobs."""

from __future__ import annotations

from ..exceptions import InvalidArgumentError, ensure_present
from .models import Job


def overall_progress(job: Job | None) -> float:
    """Return the arithmetic mean of the job's task progress values.

    The mean is undefined for a job without tasks; such jobs are rejected
    with :class:`InvalidArgumentError` instead of dividing by zero.
    """

    job = ensure_present(job, "job")
    if not job.tasks:
        raise InvalidArgumentError(f"Job '{job.name}' has no tasks to aggregate.")
    return sum(task.progress for task in job.tasks) / len(job.tasks)


def progress_snapshot(job: Job) -> float | None:
    """Like :func:`overall_progress` but ``None`` for task-less jobs."""

    if not job.tasks:
        return None
    return overall_progress(job)


__all__ = ["overall_progress", "progress_snapshot"]
