"""HTTP implementation of :class:`RemoteMediaStore` backed by httpx."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping
from urllib.parse import urljoin

import httpx

from ..config import TransferSettings
from ..domain.models import (
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
)
from ..exceptions import NotFoundError, RemoteServiceError
from .base import RemoteMediaStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HttpMediaStore(RemoteMediaStore):
    """Talk to the remote data API using JSON over HTTP."""

    service_url: str
    access_token: str = ""
    timeout_seconds: float = 30.0
    log: logging.Logger = field(default_factory=lambda: logger)

    @classmethod
    def from_settings(cls, settings: TransferSettings) -> "HttpMediaStore":
        return cls(
            service_url=settings.service_url,
            access_token=settings.access_token,
            timeout_seconds=settings.request_timeout_seconds,
        )

    # Assets -------------------------------------------------------------

    async def create_asset(
        self,
        name: str,
        *,
        storage_account: str,
        options: AssetCreationOptions = AssetCreationOptions.NONE,
    ) -> Asset:
        body = await self._request(
            "POST",
            "Assets",
            json={"Name": name, "StorageAccountName": storage_account, "Options": int(options)},
        )
        asset = _asset_from_json(body)
        self.log.info(
            "store.asset.created",
            extra={"asset_id": asset.id, "asset_name": asset.name, "storage_account": storage_account},
        )
        return asset

    async def get_asset(self, asset_id: str) -> Asset:
        body = await self._request("GET", f"Assets('{asset_id}')")
        return _asset_from_json(body)

    async def delete_asset(self, asset_id: str) -> None:
        await self._request("DELETE", f"Assets('{asset_id}')")

    async def list_asset_files(self, asset: Asset) -> list[AssetFile]:
        body = await self._request("GET", f"Assets('{asset.id}')/Files")
        return [_asset_file_from_json(item, asset_id=asset.id) for item in _items(body)]

    async def create_asset_file(self, asset: Asset, name: str) -> AssetFile:
        body = await self._request(
            "POST",
            "Files",
            json={"Name": name, "ParentAssetId": asset.id, "IsPrimary": False},
        )
        return _asset_file_from_json(body, asset_id=asset.id)

    async def update_asset_file(self, asset_file: AssetFile) -> AssetFile:
        await self._request(
            "PUT",
            f"Files('{asset_file.id}')",
            json={
                "Name": asset_file.name,
                "ParentAssetId": asset_file.asset_id,
                "ContentFileSize": asset_file.size,
                "IsPrimary": asset_file.is_primary,
                "MimeType": asset_file.mime_type,
            },
        )
        return asset_file

    async def create_file_infos(self, asset: Asset) -> None:
        await self._request("GET", "CreateFileInfos", params={"assetid": f"'{asset.id}'"})

    async def list_locators(self, asset: Asset) -> list[Locator]:
        body = await self._request("GET", f"Assets('{asset.id}')/Locators")
        return [_locator_from_json(item) for item in _items(body)]

    # Grants -------------------------------------------------------------

    async def create_access_policy(
        self, name: str, duration: timedelta, permissions: AccessPermissions
    ) -> AccessPolicy:
        body = await self._request(
            "POST",
            "AccessPolicies",
            json={
                "Name": name,
                "DurationInMinutes": duration.total_seconds() / 60,
                "Permissions": int(permissions),
            },
        )
        return AccessPolicy(
            id=str(body["Id"]),
            name=body.get("Name", name),
            permissions=AccessPermissions(int(body.get("Permissions", int(permissions)))),
            duration=timedelta(minutes=float(body.get("DurationInMinutes", duration.total_seconds() / 60))),
        )

    async def delete_access_policy(self, policy_id: str) -> None:
        await self._request("DELETE", f"AccessPolicies('{policy_id}')")

    async def create_locator(
        self,
        locator_type: LocatorType,
        asset: Asset,
        policy: AccessPolicy,
        *,
        start_time: datetime | None = None,
    ) -> Locator:
        payload: dict[str, Any] = {
            "Type": locator_type.value,
            "AssetId": asset.id,
            "AccessPolicyId": policy.id,
        }
        if start_time is not None:
            payload["StartTime"] = start_time.isoformat()
        body = await self._request("POST", "Locators", json=payload)
        return _locator_from_json(body)

    async def delete_locator(self, locator_id: str) -> None:
        await self._request("DELETE", f"Locators('{locator_id}')")

    # Jobs ---------------------------------------------------------------

    async def list_media_processors(self, name: str | None = None) -> list[MediaProcessor]:
        params = {"$filter": f"Name eq '{name}'"} if name else None
        body = await self._request("GET", "MediaProcessors", params=params)
        processors = [
            MediaProcessor(
                id=str(item["Id"]),
                name=item["Name"],
                version=str(item.get("Version", "0")),
                vendor=item.get("Vendor", ""),
            )
            for item in _items(body)
        ]
        if name:
            processors = [processor for processor in processors if processor.name == name]
        return processors

    async def submit_job(self, job: Job) -> Job:
        payload = {
            "Name": job.name,
            "InputMediaAssets": [{"Id": asset.id} for asset in job.input_assets],
            "Tasks": [
                {
                    "Name": task.name,
                    "MediaProcessorId": task.media_processor_id,
                    "Configuration": task.configuration,
                    "InputAssets": [asset.id for asset in task.input_assets],
                    "OutputAssets": [
                        {
                            "Name": output.name,
                            "StorageAccountName": output.storage_account,
                            "Options": int(output.options),
                        }
                        for output in task.output_assets
                    ],
                }
                for task in job.tasks
            ],
        }
        body = await self._request("POST", "Jobs", json=payload)
        submitted = _job_from_json(body, fallback=job)
        self.log.info(
            "store.job.submitted",
            extra={"job_id": submitted.id, "job_name": submitted.name, "state": str(submitted.state)},
        )
        return submitted

    async def refresh_job(self, job: Job) -> Job:
        body = await self._request(
            "GET",
            f"Jobs('{job.id}')",
            params={"$expand": "Tasks,OutputMediaAssets"},
        )
        return _job_from_json(body, fallback=job)

    async def cancel_job(self, job: Job) -> None:
        await self._request("GET", "CancelJob", params={"jobid": f"'{job.id}'"})

    # Transport ----------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        url = urljoin(self.service_url.rstrip("/") + "/", path)
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.request(
                method, url, headers=self._headers(), json=json, params=params
            )
        if response.status_code == 404:
            raise NotFoundError(f"{method} {path} returned 404")
        if response.status_code >= 400:
            self.log.warning(
                "store.request.failed",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            raise RemoteServiceError(
                f"{method} {path} failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        if response.status_code == 204 or not response.content:
            return {}
        payload = response.json()
        if isinstance(payload, dict) and isinstance(payload.get("d"), dict):
            payload = payload["d"]
        return payload


def _items(body: Mapping[str, Any]) -> list[dict[str, Any]]:
    if "value" in body:
        return list(body["value"])
    if "results" in body:
        return list(body["results"])
    return []


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _asset_file_from_json(item: Mapping[str, Any], *, asset_id: str) -> AssetFile:
    return AssetFile(
        id=str(item["Id"]),
        asset_id=str(item.get("ParentAssetId", asset_id)),
        name=item["Name"],
        size=int(item.get("ContentFileSize") or 0),
        is_primary=bool(item.get("IsPrimary", False)),
        mime_type=item.get("MimeType"),
    )


def _locator_from_json(item: Mapping[str, Any]) -> Locator:
    return Locator(
        id=str(item["Id"]),
        asset_id=str(item.get("AssetId", "")),
        type=LocatorType(int(item.get("Type", LocatorType.SAS.value))),
        path=item.get("Path", ""),
        access_policy_id=item.get("AccessPolicyId"),
        start_time=_parse_datetime(item.get("StartTime")),
        expiration=_parse_datetime(item.get("ExpirationDateTime")),
    )


def _asset_from_json(item: Mapping[str, Any]) -> Asset:
    asset_id = str(item["Id"])
    files = item.get("Files") or []
    locators = item.get("Locators") or []
    return Asset(
        id=asset_id,
        name=item.get("Name", ""),
        storage_account=item.get("StorageAccountName", ""),
        options=AssetCreationOptions(int(item.get("Options", 0))),
        files=[_asset_file_from_json(entry, asset_id=asset_id) for entry in _items_or_list(files)],
        locators=[_locator_from_json(entry) for entry in _items_or_list(locators)],
    )


def _items_or_list(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, Mapping):
        return _items(value)
    return list(value)


def _task_from_json(item: Mapping[str, Any]) -> JobTask:
    return JobTask(
        id=item.get("Id"),
        name=item.get("Name", ""),
        media_processor_id=str(item.get("MediaProcessorId", "")),
        configuration=item.get("Configuration") or "",
        progress=float(item.get("Progress") or 0.0),
        state=JobState(item.get("State", JobState.QUEUED.value)),
    )


def _job_from_json(item: Mapping[str, Any], *, fallback: Job) -> Job:
    tasks = item.get("Tasks")
    outputs = item.get("OutputMediaAssets")
    return Job(
        id=item.get("Id", fallback.id),
        name=item.get("Name", fallback.name),
        state=JobState(item.get("State", fallback.state.value)),
        tasks=[_task_from_json(task) for task in _items_or_list(tasks)] if tasks is not None else fallback.tasks,
        input_assets=fallback.input_assets,
        output_assets=(
            [_asset_from_json(asset) for asset in _items_or_list(outputs)]
            if outputs is not None
            else fallback.output_assets
        ),
        created=_parse_datetime(item.get("Created")) or fallback.created,
        last_modified=_parse_datetime(item.get("LastModified")) or fallback.last_modified,
    )


__all__ = ["HttpMediaStore"]
