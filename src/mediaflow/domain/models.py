"""Domain models for the remote media store entities.

The dataclasses mirror the entities exchanged with the remote service:
assets with their files and locators, access policies backing locators,
and jobs composed of tasks. They carry structure only; the store adapters
translate them to and from the wire representation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum, IntFlag, StrEnum

MANIFEST_FILE_EXTENSION = ".ism"


class AssetCreationOptions(IntFlag):
    """Encryption options requested when an asset is created."""

    NONE = 0
    STORAGE_ENCRYPTED = 1
    COMMON_ENCRYPTION_PROTECTED = 2
    ENVELOPE_ENCRYPTION_PROTECTED = 4


class AccessPermissions(IntFlag):
    """Permissions granted by an :class:`AccessPolicy`."""

    NONE = 0
    READ = 1
    WRITE = 2
    DELETE = 4
    LIST = 8


class LocatorType(Enum):
    """Kinds of locator understood by the remote store."""

    NONE = 0
    SAS = 1
    ON_DEMAND_ORIGIN = 2


class JobState(StrEnum):
    """Lifecycle states reported for a job."""

    QUEUED = "Queued"
    SCHEDULED = "Scheduled"
    PROCESSING = "Processing"
    FINISHED = "Finished"
    ERROR = "Error"
    CANCELED = "Canceled"
    CANCELING = "Canceling"


TERMINAL_JOB_STATES = frozenset({JobState.FINISHED, JobState.ERROR, JobState.CANCELED})


@dataclass(slots=True)
class AccessPolicy:
    """Permission and duration pair backing one locator."""

    id: str
    name: str
    permissions: AccessPermissions
    duration: timedelta


@dataclass(slots=True)
class Locator:
    """Time-boxed access path into an asset's storage."""

    id: str
    asset_id: str
    type: LocatorType
    path: str
    access_policy_id: str | None = None
    start_time: datetime | None = None
    expiration: datetime | None = None


@dataclass(slots=True)
class AssetFile:
    """One object stored inside an asset."""

    id: str
    asset_id: str
    name: str
    size: int = 0
    is_primary: bool = False
    mime_type: str | None = None

    @property
    def is_manifest(self) -> bool:
        return self.name.lower().endswith(MANIFEST_FILE_EXTENSION)


@dataclass(slots=True)
class Asset:
    """Remote container owning files and locators."""

    id: str
    name: str
    storage_account: str = ""
    options: AssetCreationOptions = AssetCreationOptions.NONE
    files: list[AssetFile] = field(default_factory=list)
    locators: list[Locator] = field(default_factory=list)


@dataclass(slots=True)
class MediaProcessor:
    """Processor available to jobs, identified by name and dotted version."""

    id: str
    name: str
    version: str
    vendor: str = ""


@dataclass(slots=True)
class OutputAssetRequest:
    """Output asset a task should produce once the job runs."""

    name: str
    storage_account: str
    options: AssetCreationOptions = AssetCreationOptions.NONE


@dataclass(slots=True)
class JobTask:
    """Single step of a job with a progress percentage in ``[0, 100]``."""

    name: str
    media_processor_id: str
    configuration: str = ""
    id: str | None = None
    progress: float = 0.0
    state: JobState = JobState.QUEUED
    input_assets: list[Asset] = field(default_factory=list)
    output_assets: list[OutputAssetRequest] = field(default_factory=list)


@dataclass(slots=True)
class Job:
    """Unit of remote work. ``id`` stays ``None`` until the job is submitted."""

    name: str
    id: str | None = None
    state: JobState = JobState.QUEUED
    tasks: list[JobTask] = field(default_factory=list)
    input_assets: list[Asset] = field(default_factory=list)
    output_assets: list[Asset] = field(default_factory=list)
    created: datetime | None = None
    last_modified: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_JOB_STATES


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
]
