"""Domain entities and helpers shared by the transfer and job layers."""

from .models import (
    MANIFEST_FILE_EXTENSION,
    TERMINAL_JOB_STATES,
    AccessPermissions,
    AccessPolicy,
    Asset,
    AssetCreationOptions,
    AssetFile,
    Job,
    JobState,
    JobTask,
    Locator,
    LocatorType,
    MediaProcessor,
    OutputAssetRequest,
)
from .progress import overall_progress, progress_snapshot

__all__ = [
    "MANIFEST_FILE_EXTENSION",
    "TERMINAL_JOB_STATES",
    "AccessPermissions",
    "AccessPolicy",
    "Asset",
    "AssetCreationOptions",
    "AssetFile",
    "Job",
    "JobState",
    "JobTask",
    "Locator",
    "LocatorType",
    "MediaProcessor",
    "OutputAssetRequest",
    "overall_progress",
    "progress_snapshot",
]
