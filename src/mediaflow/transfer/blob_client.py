"""Blob transfer clients moving bytes through a locator path."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from urllib.parse import quote, urlsplit, urlunsplit

import httpx

from ..config import TransferSettings
from ..domain.models import Locator
from ..exceptions import RemoteServiceError
from .progress import ProgressSink, TransferProgress

logger = logging.getLogger(__name__)


def build_blob_url(locator_path: str, blob_name: str) -> str:
    """Append ``blob_name`` to the URL path of ``locator_path``, keeping its query."""

    parts = urlsplit(locator_path)
    path = parts.path.rstrip("/") + "/" + quote(blob_name)
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def raise_if_cancelled(cancel_event: asyncio.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise asyncio.CancelledError


class BlobTransferClient(ABC):
    """Moves file contents to and from the storage behind a locator."""

    def __init__(
        self,
        *,
        number_of_concurrent_transfers: int = 2,
        parallel_transfer_thread_count: int = 10,
    ) -> None:
        self.number_of_concurrent_transfers = max(1, number_of_concurrent_transfers)
        self.parallel_transfer_thread_count = max(1, parallel_transfer_thread_count)

    @abstractmethod
    async def upload(
        self,
        local_path: Path,
        locator: Locator,
        blob_name: str,
        *,
        on_progress: ProgressSink | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        """Upload ``local_path`` as ``blob_name`` and return the bytes sent."""

    @abstractmethod
    async def download(
        self,
        locator: Locator,
        blob_name: str,
        local_path: Path,
        *,
        on_progress: ProgressSink | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        """Download ``blob_name`` into ``local_path`` and return the bytes received."""


class HttpBlobTransferClient(BlobTransferClient):
    """Streams blobs over HTTP using the SAS path of a locator."""

    def __init__(
        self,
        *,
        number_of_concurrent_transfers: int = 2,
        parallel_transfer_thread_count: int = 10,
        chunk_size: int = 4 * 1024 * 1024,
        timeout_seconds: float = 30.0,
    ) -> None:
        super().__init__(
            number_of_concurrent_transfers=number_of_concurrent_transfers,
            parallel_transfer_thread_count=parallel_transfer_thread_count,
        )
        self.chunk_size = max(1, chunk_size)
        self.timeout_seconds = timeout_seconds
        self._slots = asyncio.Semaphore(self.number_of_concurrent_transfers)

    @classmethod
    def from_settings(cls, settings: TransferSettings) -> "HttpBlobTransferClient":
        return cls(
            number_of_concurrent_transfers=settings.number_of_concurrent_transfers,
            parallel_transfer_thread_count=settings.parallel_transfer_thread_count,
            chunk_size=settings.transfer_chunk_size_bytes,
            timeout_seconds=settings.request_timeout_seconds,
        )

    async def upload(
        self,
        local_path: Path,
        locator: Locator,
        blob_name: str,
        *,
        on_progress: ProgressSink | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        url = build_blob_url(locator.path, blob_name)
        total = local_path.stat().st_size
        headers = {
            "Content-Length": str(total),
            "Content-Type": "application/octet-stream",
        }
        async with self._slots:
            raise_if_cancelled(cancel_event)
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.put(
                    url,
                    content=self._stream_file(local_path, total, on_progress, cancel_event),
                    headers=headers,
                )
        self._check(response, "PUT", blob_name)
        if total == 0 and on_progress is not None:
            on_progress(TransferProgress(0, 0))
        return total

    async def download(
        self,
        locator: Locator,
        blob_name: str,
        local_path: Path,
        *,
        on_progress: ProgressSink | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        url = build_blob_url(locator.path, blob_name)
        async with self._slots:
            raise_if_cancelled(cancel_event)
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                head = await client.head(url)
                self._check(head, "HEAD", blob_name)
                total = int(head.headers.get("Content-Length", 0))
                with local_path.open("wb") as sink:
                    sink.truncate(total)
                if total == 0:
                    if on_progress is not None:
                        on_progress(TransferProgress(0, 0))
                    return 0

                received = 0

                def _advance(count: int) -> None:
                    nonlocal received
                    received += count
                    if on_progress is not None:
                        on_progress(TransferProgress(received, total))

                ranges = self._split_ranges(total)
                tasks = [
                    asyncio.create_task(
                        self._fetch_range(
                            client,
                            url,
                            blob_name,
                            local_path,
                            start,
                            end,
                            whole=len(ranges) == 1,
                            advance=_advance,
                            cancel_event=cancel_event,
                        )
                    )
                    for start, end in ranges
                ]
                try:
                    await asyncio.gather(*tasks)
                except BaseException:
                    for task in tasks:
                        task.cancel()
                    await asyncio.gather(*tasks, return_exceptions=True)
                    raise
        return total

    def _split_ranges(self, total: int) -> list[tuple[int, int]]:
        """Split ``[0, total)`` into inclusive byte ranges of at least one chunk."""
        chunks = -(-total // self.chunk_size)
        parts = max(1, min(self.parallel_transfer_thread_count, chunks))
        size = -(-total // parts)
        return [(start, min(start + size, total) - 1) for start in range(0, total, size)]

    async def _fetch_range(
        self,
        client: httpx.AsyncClient,
        url: str,
        blob_name: str,
        local_path: Path,
        start: int,
        end: int,
        *,
        whole: bool,
        advance: Callable[[int], None],
        cancel_event: asyncio.Event | None,
    ) -> None:
        headers = {} if whole else {"Range": f"bytes={start}-{end}"}
        async with client.stream("GET", url, headers=headers) as response:
            if response.status_code >= 400:
                await response.aread()
                self._check(response, "GET", blob_name)
            if not whole and response.status_code != 206:
                raise RemoteServiceError(
                    f"Blob endpoint ignored range request for '{blob_name}'",
                    status_code=response.status_code,
                )
            with local_path.open("r+b") as sink:
                sink.seek(start)
                async for chunk in response.aiter_bytes(self.chunk_size):
                    raise_if_cancelled(cancel_event)
                    sink.write(chunk)
                    advance(len(chunk))

    async def _stream_file(
        self,
        path: Path,
        total: int,
        on_progress: ProgressSink | None,
        cancel_event: asyncio.Event | None,
    ) -> AsyncIterator[bytes]:
        sent = 0
        with path.open("rb") as source:
            while True:
                raise_if_cancelled(cancel_event)
                chunk = source.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
                sent += len(chunk)
                if on_progress is not None:
                    on_progress(TransferProgress(sent, total))

    def _check(self, response: httpx.Response, method: str, blob_name: str) -> None:
        if response.status_code < 400:
            return
        logger.warning(
            "transfer.blob.request_failed",
            extra={"method": method, "blob": blob_name, "status_code": response.status_code},
        )
        raise RemoteServiceError(
            f"Blob {method} for '{blob_name}' failed with status {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )


__all__ = [
    "BlobTransferClient",
    "HttpBlobTransferClient",
    "build_blob_url",
    "raise_if_cancelled",
]
