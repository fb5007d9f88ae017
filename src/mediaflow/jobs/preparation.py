"""Media processor lookup and single-task job preparation."""

from __future__ import annotations

import logging

from ..domain.models import (
    Asset,
    AssetCreationOptions,
    Job,
    JobTask,
    MediaProcessor,
    OutputAssetRequest,
)
from ..exceptions import UnknownMediaProcessorError, ensure_present
from ..store.base import RemoteMediaStore

logger = logging.getLogger(__name__)


class MediaProcessorNames:
    """Well-known processor names exposed by the remote service."""

    WINDOWS_AZURE_MEDIA_ENCODER = "Windows Azure Media Encoder"
    WINDOWS_AZURE_MEDIA_PACKAGER = "Windows Azure Media Packager"
    WINDOWS_AZURE_MEDIA_ENCRYPTOR = "Windows Azure Media Encryptor"
    STORAGE_DECRYPTION = "Storage Decryption"


def _version_key(version: str) -> tuple[int, ...]:
    parts: list[int] = []
    for piece in (version or "").split("."):
        try:
            parts.append(int(piece))
        except ValueError:
            parts.append(0)
    return tuple(parts)


async def get_latest_media_processor(
    store: RemoteMediaStore | None, name: str
) -> MediaProcessor | None:
    """Return the highest dotted version of the processor called ``name``."""

    store = ensure_present(store, "media store")
    processors = [p for p in await store.list_media_processors(name) if p.name == name]
    if not processors:
        return None
    return max(processors, key=lambda processor: _version_key(processor.version))


async def prepare_job_with_single_task(
    store: RemoteMediaStore | None,
    processor_name: str,
    task_configuration: str,
    input_asset: Asset | None,
    output_asset_name: str,
    *,
    storage_account: str | None = None,
    output_options: AssetCreationOptions = AssetCreationOptions.NONE,
    default_storage_account: str = "",
) -> Job:
    """Build an unsubmitted job running one task of ``processor_name`` on ``input_asset``.

    The output asset lands in ``storage_account`` or, when none is given,
    in ``default_storage_account``.
    """

    store = ensure_present(store, "media store")
    input_asset = ensure_present(input_asset, "input asset")

    processor = await get_latest_media_processor(store, processor_name)
    if processor is None:
        raise UnknownMediaProcessorError(f"Unknown media processor: '{processor_name}'")

    account = storage_account if (storage_account or "").strip() else default_storage_account
    task = JobTask(
        name=f"Task for {input_asset.name}",
        media_processor_id=processor.id,
        configuration=task_configuration,
        input_assets=[input_asset],
        output_assets=[OutputAssetRequest(output_asset_name, account, output_options)],
    )
    job = Job(
        name=f"Job for {input_asset.name}",
        tasks=[task],
        input_assets=[input_asset],
    )
    logger.info(
        "jobs.prepared",
        extra={
            "job_name": job.name,
            "processor": processor.name,
            "processor_version": processor.version,
            "input_asset_id": input_asset.id,
        },
    )
    return job


__all__ = [
    "MediaProcessorNames",
    "get_latest_media_processor",
    "prepare_job_with_single_task",
]
