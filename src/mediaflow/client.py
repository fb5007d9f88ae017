"""High level facade wiring settings, store, transfers and job monitoring."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from os import PathLike
from pathlib import Path

from .config import TransferSettings
from .domain.models import (
    AccessPermissions,
    Asset,
    AssetCreationOptions,
    AssetFile,
    Job,
    Locator,
    LocatorType,
)
from .exceptions import ensure_present
from .jobs.monitor import JobChangeCallback, JobMonitor
from .jobs.preparation import prepare_job_with_single_task
from .store.base import RemoteMediaStore
from .store.http import HttpMediaStore
from .streaming import StreamingFormat, get_sas_uri, resolve_streaming_uri
from .transfer.blob_client import BlobTransferClient, HttpBlobTransferClient
from .transfer.grants import AccessGrantManager
from .transfer.orchestrator import FileTransferOrchestrator
from .transfer.progress import ProgressCallback

logger = logging.getLogger(__name__)


class MediaFlowClient:
    """Single entry point for the upload, encode, publish and download workflow."""

    def __init__(
        self,
        settings: TransferSettings,
        store: RemoteMediaStore,
        blob_client: BlobTransferClient | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.blob_client = blob_client or HttpBlobTransferClient.from_settings(settings)
        self.grants = AccessGrantManager(store)
        self.transfers = FileTransferOrchestrator(
            store=store,
            grants=self.grants,
            blob_client=self.blob_client,
            settings=settings,
        )
        self.monitor_service = JobMonitor(store=store, settings=settings)

    @classmethod
    def from_settings(cls, settings: TransferSettings | None = None) -> "MediaFlowClient":
        settings = settings or TransferSettings.build_default()
        return cls(
            settings,
            HttpMediaStore.from_settings(settings),
            HttpBlobTransferClient.from_settings(settings),
        )

    # Transfers -----------------------------------------------------------

    async def upload_file(
        self,
        file_path: str | PathLike[str] | None,
        *,
        storage_account: str | None = None,
        options: AssetCreationOptions = AssetCreationOptions.NONE,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Asset:
        return await self.transfers.upload_file(
            file_path,
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
        return await self.transfers.upload_folder(
            folder_path,
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
        return await self.transfers.download_all(
            asset, folder_path, on_progress=on_progress, cancel_event=cancel_event
        )

    async def create_asset_files(self, asset: Asset | None) -> list[AssetFile]:
        return await self.transfers.create_asset_files(asset)

    async def create_locator(
        self,
        asset: Asset | None,
        locator_type: LocatorType,
        permissions: AccessPermissions,
        duration: timedelta,
        *,
        start_time: datetime | None = None,
    ) -> Locator:
        """Create a long-lived locator and attach it to ``asset``.

        Unlike transfer grants these locators are owned by the caller and are
        not revoked automatically.
        """
        asset = ensure_present(asset, "asset")
        locator = await self.grants.grant(
            asset,
            permissions,
            duration,
            locator_type=locator_type,
            start_time=start_time,
        )
        asset.locators.append(locator)
        return locator

    # Jobs ----------------------------------------------------------------

    async def prepare_job_with_single_task(
        self,
        processor_name: str,
        task_configuration: str,
        input_asset: Asset | None,
        output_asset_name: str,
        *,
        storage_account: str | None = None,
        output_options: AssetCreationOptions = AssetCreationOptions.NONE,
    ) -> Job:
        return await prepare_job_with_single_task(
            self.store,
            processor_name,
            task_configuration,
            input_asset,
            output_asset_name,
            storage_account=storage_account,
            output_options=output_options,
            default_storage_account=self.settings.default_storage_account,
        )

    async def submit_job(self, job: Job | None) -> Job:
        job = ensure_present(job, "job")
        submitted = await self.store.submit_job(job)
        logger.info("jobs.submitted", extra={"job_id": submitted.id, "job_name": submitted.name})
        return submitted

    async def monitor(
        self,
        job: Job | None,
        *,
        refresh_interval_ms: int | None = None,
        on_change: JobChangeCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Job:
        return await self.monitor_service.monitor(
            job,
            refresh_interval_ms=refresh_interval_ms,
            on_change=on_change,
            cancel_event=cancel_event,
        )

    # URLs ----------------------------------------------------------------

    def resolve_streaming_uri(
        self, asset: Asset | None, fmt: StreamingFormat = StreamingFormat.SMOOTH
    ) -> str | None:
        return resolve_streaming_uri(asset, fmt)

    def get_sas_uri(self, asset_file: AssetFile | None, asset: Asset | None) -> str | None:
        return get_sas_uri(asset_file, asset)


__all__ = ["MediaFlowClient"]
