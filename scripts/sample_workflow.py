"""Console walkthrough of the video-on-demand workflow.

Uploads a local file, encodes it with a single-task job, publishes the
output for streaming and progressive download, and downloads the encoded
files back to a local folder.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

import structlog

from mediaflow import (
    AccessPermissions,
    Asset,
    AssetFile,
    Job,
    LocatorType,
    MediaFlowClient,
    MediaProcessorNames,
    StreamingFormat,
    TransferProgress,
    TransferSettings,
    overall_progress,
    parse_service_error,
)
from mediaflow.logging import configure_logging
from mediaflow.streaming import save_url

DEFAULT_PRESET = "H264 Adaptive Bitrate MP4 Set 720p"
PUBLISH_DURATION = timedelta(days=30)

log = structlog.get_logger(__name__)


@dataclass(slots=True)
class WorkflowSummary:
    input_asset_id: str
    output_asset_id: str
    job_state: str
    urls_saved: int
    files_downloaded: int


def build_client(settings: TransferSettings) -> MediaFlowClient:
    return MediaFlowClient.from_settings(settings)


def _print_upload(asset_file: AssetFile, progress: TransferProgress) -> None:
    print(f"Uploading '{asset_file.name}' - Progress: {progress.progress:.2f}%")


def _print_download(asset_file: AssetFile, progress: TransferProgress) -> None:
    print(f"Downloading '{asset_file.name}' - Progress: {progress.progress:.2f}%")


def _print_job(job: Job) -> None:
    print(f"Job state: {job.state}")
    if job.tasks:
        print(f"Job progress: {overall_progress(job):.2f}%")


async def run_workflow(
    client: MediaFlowClient,
    *,
    input_file: Path,
    preset: str,
    output_asset_name: str,
    urls_path: Path,
    output_folder: Path,
) -> WorkflowSummary:
    print("Creating new asset from local file...")
    input_asset = await client.upload_file(input_file, on_progress=_print_upload)
    print("Asset created.")

    job = await client.prepare_job_with_single_task(
        MediaProcessorNames.WINDOWS_AZURE_MEDIA_ENCODER,
        preset,
        input_asset,
        output_asset_name,
    )
    print("Submitting transcoding job...")
    job = await client.submit_job(job)
    job = await client.monitor(job, on_change=_print_job)
    print("Transcoding job finished.")
    log.info("sample.job.finished", job_id=job.id, state=str(job.state))

    output_asset = await _load_output_asset(client, job)

    print("Publishing output asset...")
    await client.create_locator(
        output_asset, LocatorType.ON_DEMAND_ORIGIN, AccessPermissions.READ, PUBLISH_DURATION
    )
    await client.create_locator(
        output_asset, LocatorType.SAS, AccessPermissions.READ, PUBLISH_DURATION
    )

    urls = [client.resolve_streaming_uri(output_asset, fmt) for fmt in StreamingFormat]
    urls.extend(
        client.get_sas_uri(asset_file, output_asset)
        for asset_file in output_asset.files
        if asset_file.name.lower().endswith(".mp4")
    )
    saved = 0
    for url in urls:
        if url is None:
            continue
        save_url(url, urls_path)
        saved += 1
    print("Output asset available for adaptive streaming and progressive download.")
    print(f"The URLs can be found at '{urls_path.resolve()}'.")

    output_folder.mkdir(parents=True, exist_ok=True)
    print("Downloading output asset files to local folder...")
    downloaded = await client.download_all(
        output_asset, output_folder, on_progress=_print_download
    )
    print(f"Output asset files available at '{output_folder.resolve()}'.")
    print("VOD workflow finished.")

    return WorkflowSummary(
        input_asset_id=input_asset.id,
        output_asset_id=output_asset.id,
        job_state=str(job.state),
        urls_saved=saved,
        files_downloaded=len(downloaded),
    )


async def _load_output_asset(client: MediaFlowClient, job: Job) -> Asset:
    if not job.output_assets:
        raise RuntimeError(f"Job '{job.name}' finished without output assets")
    output_asset = await client.store.get_asset(job.output_assets[0].id)
    if not output_asset.files:
        output_asset.files = await client.store.list_asset_files(output_asset)
    return output_asset


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the sample VOD workflow end to end.")
    parser.add_argument("input_file", type=Path, help="Local media file to upload.")
    parser.add_argument("--preset", default=DEFAULT_PRESET, help="Encoder task preset.")
    parser.add_argument(
        "--output-asset-name",
        default="Sample Adaptive Bitrate MP4",
        help="Name of the encoded output asset.",
    )
    parser.add_argument("--urls-file", type=Path, default=Path("asset-urls.txt"))
    parser.add_argument("--output-folder", type=Path, default=Path("job-output"))
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(args.log_level)
    client = build_client(TransferSettings())
    try:
        asyncio.run(
            run_workflow(
                client,
                input_file=args.input_file,
                preset=args.preset,
                output_asset_name=args.output_asset_name,
                urls_path=args.urls_file,
                output_folder=args.output_folder,
            )
        )
    except Exception as exc:
        error = parse_service_error(exc)
        print(f"workflow failed: {error}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
