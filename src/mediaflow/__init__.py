"""mediaflow: transfer and job monitoring on top of a remote media service.

The package adds the operational pieces the service API lacks: bulk file
transfer under short-lived access grants, and completion monitoring for
submitted jobs.
"""

from .client import MediaFlowClient
from .config import TransferSettings
from .domain import (
    AccessPermissions,
    Asset,
    AssetCreationOptions,
    AssetFile,
    Job,
    JobState,
    JobTask,
    Locator,
    LocatorType,
    overall_progress,
)
from .error_parser import parse_service_error
from .exceptions import (
    EmptyFolderError,
    InvalidArgumentError,
    MediaFlowError,
    NotFoundError,
    RemoteServiceError,
    TransferBatchError,
    UnknownMediaProcessorError,
)
from .jobs import JobMonitor, MediaProcessorNames
from .streaming import StreamingFormat, resolve_streaming_uri
from .transfer import AccessGrantManager, FileTransferOrchestrator, TransferProgress

__version__ = "0.3.0"

__all__ = [
    "AccessGrantManager",
    "AccessPermissions",
    "Asset",
    "AssetCreationOptions",
    "AssetFile",
    "EmptyFolderError",
    "FileTransferOrchestrator",
    "InvalidArgumentError",
    "Job",
    "JobMonitor",
    "JobState",
    "JobTask",
    "Locator",
    "LocatorType",
    "MediaFlowClient",
    "MediaFlowError",
    "MediaProcessorNames",
    "NotFoundError",
    "RemoteServiceError",
    "StreamingFormat",
    "TransferBatchError",
    "TransferProgress",
    "TransferSettings",
    "UnknownMediaProcessorError",
    "overall_progress",
    "parse_service_error",
    "resolve_streaming_uri",
]
