"""Abstract interface of the remote media store.

The store owns CRUD for assets, asset files, access policies, locators,
jobs and media processors. Transfer and monitoring components depend only
on this interface, so the HTTP implementation and in-memory test fakes are
interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from ..domain.models import (
    AccessPermissions,
    AccessPolicy,
    Asset,
    AssetCreationOptions,
    AssetFile,
    Job,
    Locator,
    LocatorType,
    MediaProcessor,
)


class RemoteMediaStore(ABC):
    """Data API of the remote media-processing service."""

    # Assets -------------------------------------------------------------

    @abstractmethod
    async def create_asset(
        self,
        name: str,
        *,
        storage_account: str,
        options: AssetCreationOptions = AssetCreationOptions.NONE,
    ) -> Asset:
        """Create an empty asset in ``storage_account``."""

    @abstractmethod
    async def get_asset(self, asset_id: str) -> Asset:
        """Fetch an asset; raises ``NotFoundError`` when it does not exist."""

    @abstractmethod
    async def delete_asset(self, asset_id: str) -> None:
        """Delete an asset together with its storage container."""

    @abstractmethod
    async def list_asset_files(self, asset: Asset) -> list[AssetFile]:
        """Return the files currently recorded for ``asset``."""

    @abstractmethod
    async def create_asset_file(self, asset: Asset, name: str) -> AssetFile:
        """Register file metadata named ``name`` inside ``asset``."""

    @abstractmethod
    async def update_asset_file(self, asset_file: AssetFile) -> AssetFile:
        """Persist changed file metadata (size, primary flag, mime type)."""

    @abstractmethod
    async def create_file_infos(self, asset: Asset) -> None:
        """Rescan the asset container and create file records for its blobs."""

    @abstractmethod
    async def list_locators(self, asset: Asset) -> list[Locator]:
        """Return the locators granting access to ``asset``."""

    # Grants -------------------------------------------------------------

    @abstractmethod
    async def create_access_policy(
        self, name: str, duration: timedelta, permissions: AccessPermissions
    ) -> AccessPolicy:
        """Create an access policy with ``permissions`` valid for ``duration``."""

    @abstractmethod
    async def delete_access_policy(self, policy_id: str) -> None:
        """Delete an access policy."""

    @abstractmethod
    async def create_locator(
        self,
        locator_type: LocatorType,
        asset: Asset,
        policy: AccessPolicy,
        *,
        start_time: datetime | None = None,
    ) -> Locator:
        """Create a locator of ``locator_type`` bound to ``asset`` and ``policy``."""

    @abstractmethod
    async def delete_locator(self, locator_id: str) -> None:
        """Delete a locator, invalidating its path."""

    # Jobs ---------------------------------------------------------------

    @abstractmethod
    async def list_media_processors(self, name: str | None = None) -> list[MediaProcessor]:
        """Return media processors, optionally filtered by exact ``name``."""

    @abstractmethod
    async def submit_job(self, job: Job) -> Job:
        """Submit a prepared job and return it with identity and initial state."""

    @abstractmethod
    async def refresh_job(self, job: Job) -> Job:
        """Re-fetch ``job`` (state, timestamps and task progress)."""

    @abstractmethod
    async def cancel_job(self, job: Job) -> None:
        """Request cancellation of a submitted job."""


__all__ = ["RemoteMediaStore"]
