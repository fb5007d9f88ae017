"""Transient grants, blob clients and the multi-file transfer orchestrator."""

from .blob_client import BlobTransferClient, HttpBlobTransferClient, build_blob_url
from .grants import AccessGrantManager
from .orchestrator import FileTransferOrchestrator
from .progress import ProgressCallback, TransferProgress, relay_to

__all__ = [
    "AccessGrantManager",
    "BlobTransferClient",
    "FileTransferOrchestrator",
    "HttpBlobTransferClient",
    "ProgressCallback",
    "TransferProgress",
    "build_blob_url",
    "relay_to",
]
