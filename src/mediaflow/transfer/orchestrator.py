"""Parallel multi-file upload and download under a transient grant.

Each batch follows the same shape: validate local inputs, acquire one
grant for the asset, run one transfer per file concurrently, wait until
every transfer has settled, revoke the grant, then report the outcome.
The grant is revoked on success, failure and cancellation alike.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import TypeVar

from ..config import TransferSettings
from ..domain.models import (
    AccessPermissions,
    Asset,
    AssetCreationOptions,
    AssetFile,
    Locator,
)
from ..exceptions import (
    EmptyFolderError,
    InvalidArgumentError,
    TransferBatchError,
    ensure_present,
)
from ..store.base import RemoteMediaStore
from .blob_client import BlobTransferClient, raise_if_cancelled
from .grants import AccessGrantManager
from .progress import ProgressCallback, relay_to

logger = logging.getLogger(__name__)

T = TypeVar("T")

UPLOAD_PERMISSIONS = AccessPermissions.WRITE | AccessPermissions.LIST
DOWNLOAD_PERMISSIONS = AccessPermissions.READ


@dataclass(slots=True)
class FileTransferOrchestrator:
    """Materialize assets from local files and pull asset files back to disk."""

    store: RemoteMediaStore
    grants: AccessGrantManager
    blob_client: BlobTransferClient
    settings: TransferSettings
    log: logging.Logger = field(default_factory=lambda: logger)

    async def upload_file(
        self,
        file_path: str | PathLike[str] | None,
        *,
        storage_account: str | None = None,
        options: AssetCreationOptions = AssetCreationOptions.NONE,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Asset:
        """Create an asset named after ``file_path`` holding that single file."""
        path = Path(ensure_present(file_path, "file path"))
        if not path.is_file():
            raise InvalidArgumentError(f"The file '{path}' does not exist.")
        return await self._upload_batch(
            path.name,
            [path],
            storage_account=storage_account,
            options=options,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

    async def upload_folder(
        self,
        folder_path: str | PathLike[str] | None,
        *,
        storage_account: str | None = None,
        options: AssetCreationOptions = AssetCreationOptions.NONE,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Asset:
        """Create an asset named after the folder from its immediate files."""
        folder = Path(ensure_present(folder_path, "folder path"))
        files = sorted(p for p in folder.iterdir() if p.is_file()) if folder.is_dir() else []
        if not files:
            raise EmptyFolderError(
                f"No files in directory, check the folder path: '{folder}'"
            )
        return await self._upload_batch(
            folder.resolve().name,
            files,
            storage_account=storage_account,
            options=options,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

    async def download_all(
        self,
        asset: Asset | None,
        folder_path: str | PathLike[str] | None,
        *,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[Path]:
        """Download every file of ``asset`` into an existing local folder."""
        asset = ensure_present(asset, "asset")
        folder = Path(ensure_present(folder_path, "folder path"))
        if not folder.is_dir():
            raise InvalidArgumentError(f"The folder '{folder}' does not exist.")
        raise_if_cancelled(cancel_event)

        asset_files = list(asset.files) or await self.store.list_asset_files(asset)
        if not asset_files:
            self.log.info("transfer.download.empty_asset", extra={"asset_id": asset.id})
            return []
        targets = [self._download_target(folder, asset_file) for asset_file in asset_files]

        async with self.grants.scoped(
            asset, DOWNLOAD_PERMISSIONS, self.settings.access_policy_duration
        ) as locator:
            results = await asyncio.gather(
                *(
                    self._download_one(asset_file, target, locator, on_progress, cancel_event)
                    for asset_file, target in zip(asset_files, targets)
                ),
                return_exceptions=True,
            )
            paths = self._settle(
                asset,
                [af.name for af in asset_files],
                results,
                direction="download",
                cancel_event=cancel_event,
            )
        return paths

    async def create_asset_files(self, asset: Asset | None) -> list[AssetFile]:
        """Rescan storage for blobs uploaded out-of-band and refresh ``asset.files``."""
        asset = ensure_present(asset, "asset")
        await self.store.create_file_infos(asset)
        asset.files = await self.store.list_asset_files(asset)
        self.log.info(
            "transfer.asset.files_generated",
            extra={"asset_id": asset.id, "file_count": len(asset.files)},
        )
        return asset.files

    # ------------------------------------------------------------------

    async def _upload_batch(
        self,
        asset_name: str,
        files: Sequence[Path],
        *,
        storage_account: str | None,
        options: AssetCreationOptions,
        on_progress: ProgressCallback | None,
        cancel_event: asyncio.Event | None,
    ) -> Asset:
        raise_if_cancelled(cancel_event)
        account = (
            storage_account
            if (storage_account or "").strip()
            else self.settings.default_storage_account
        )
        asset = await self.store.create_asset(asset_name, storage_account=account, options=options)
        self.log.info(
            "transfer.upload.start",
            extra={"asset_id": asset.id, "asset_name": asset_name, "file_count": len(files)},
        )
        async with self.grants.scoped(
            asset, UPLOAD_PERMISSIONS, self.settings.access_policy_duration
        ) as locator:
            results = await asyncio.gather(
                *(self._upload_one(asset, path, locator, on_progress, cancel_event) for path in files),
                return_exceptions=True,
            )
            asset.files = self._settle(
                asset,
                [path.name for path in files],
                results,
                direction="upload",
                cancel_event=cancel_event,
            )
        return asset

    async def _upload_one(
        self,
        asset: Asset,
        path: Path,
        locator: Locator,
        on_progress: ProgressCallback | None,
        cancel_event: asyncio.Event | None,
    ) -> AssetFile:
        raise_if_cancelled(cancel_event)
        asset_file = await self.store.create_asset_file(asset, path.name)
        asset_file.size = await self.blob_client.upload(
            path,
            locator,
            asset_file.name,
            on_progress=relay_to(asset_file, on_progress),
            cancel_event=cancel_event,
        )
        if asset_file.is_manifest:
            asset_file.is_primary = True
            await self.store.update_asset_file(asset_file)
        self.log.info(
            "transfer.upload.file.done",
            extra={
                "asset_id": asset.id,
                "file": asset_file.name,
                "size": asset_file.size,
                "is_primary": asset_file.is_primary,
            },
        )
        return asset_file

    @staticmethod
    def _download_target(folder: Path, asset_file: AssetFile) -> Path:
        root = folder.resolve()
        target = (root / asset_file.name).resolve()
        if target.parent != root:
            raise InvalidArgumentError(
                f"The file name '{asset_file.name}' resolves outside the folder '{folder}'."
            )
        return target

    async def _download_one(
        self,
        asset_file: AssetFile,
        target: Path,
        locator: Locator,
        on_progress: ProgressCallback | None,
        cancel_event: asyncio.Event | None,
    ) -> Path:
        raise_if_cancelled(cancel_event)
        await self.blob_client.download(
            locator,
            asset_file.name,
            target.resolve(),
            on_progress=relay_to(asset_file, on_progress),
            cancel_event=cancel_event,
        )
        self.log.info(
            "transfer.download.file.done",
            extra={"asset_id": asset_file.asset_id, "file": asset_file.name, "path": str(target)},
        )
        return target

    def _settle(
        self,
        asset: Asset,
        names: Sequence[str],
        results: Sequence[T | BaseException],
        *,
        direction: str,
        cancel_event: asyncio.Event | None = None,
    ) -> list[T]:
        """Split settled results into completed values, failures and cancellation."""
        completed: list[T] = []
        failures: list[tuple[str, BaseException]] = []
        cancelled = cancel_event is not None and cancel_event.is_set()
        for name, result in zip(names, results):
            if isinstance(result, asyncio.CancelledError):
                cancelled = True
            elif isinstance(result, BaseException):
                failures.append((name, result))
            else:
                completed.append(result)

        if cancelled:
            self.log.warning(
                "transfer.batch.cancelled",
                extra={"direction": direction, "asset_id": asset.id, "completed": len(completed)},
            )
            raise asyncio.CancelledError
        if failures:
            self.log.error(
                "transfer.batch.failed",
                extra={
                    "direction": direction,
                    "asset_id": asset.id,
                    "failed": [name for name, _ in failures],
                    "completed": len(completed),
                },
            )
            raise TransferBatchError(failures)
        return completed


__all__ = ["DOWNLOAD_PERMISSIONS", "UPLOAD_PERMISSIONS", "FileTransferOrchestrator"]
