"""Job preparation and completion monitoring."""

from .monitor import JobChangeCallback, JobMonitor
from .preparation import (
    MediaProcessorNames,
    get_latest_media_processor,
    prepare_job_with_single_task,
)

__all__ = [
    "JobChangeCallback",
    "JobMonitor",
    "MediaProcessorNames",
    "get_latest_media_processor",
    "prepare_job_with_single_task",
]
