from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from mediaflow.config import TransferSettings
from mediaflow.domain import Locator, LocatorType
from mediaflow.exceptions import RemoteServiceError
from mediaflow.transfer.blob_client import HttpBlobTransferClient, build_blob_url
from mediaflow.transfer.progress import TransferProgress

pytestmark = pytest.mark.unit

LOCATOR = Locator(
    id="locator-1",
    asset_id="asset-1",
    type=LocatorType.SAS,
    path="https://storage.test/asset-1?sv=2012&sig=abc",
)


class DummyHTTPResponse:
    def __init__(
        self,
        status_code: int,
        text: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.text = text
        self.headers = headers or {}


class DummyStreamResponse(DummyHTTPResponse):
    def __init__(self, status_code: int, body: bytes) -> None:
        super().__init__(status_code, text=body.decode("latin-1"))
        self._body = body

    async def __aenter__(self) -> "DummyStreamResponse":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        return None

    async def aread(self) -> bytes:
        return self._body

    async def aiter_bytes(self, chunk_size: int):
        for offset in range(0, len(self._body), chunk_size):
            await asyncio.sleep(0)
            yield self._body[offset : offset + chunk_size]


class DummyBlobService:
    """Records requests and serves blobs keyed by URL."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.requests: list[tuple[str, str, dict[str, str]]] = []
        self.put_status = 201
        self.ignore_ranges = False

    def client(self, *args: Any, **kwargs: Any) -> "DummyAsyncClient":
        return DummyAsyncClient(self)


class DummyAsyncClient:
    def __init__(self, service: DummyBlobService) -> None:
        self._service = service

    async def __aenter__(self) -> "DummyAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        return None

    async def put(self, url: str, content, headers: dict[str, str]) -> DummyHTTPResponse:
        self._service.requests.append(("PUT", url, headers))
        if self._service.put_status >= 400:
            return DummyHTTPResponse(self._service.put_status, text="<error>denied</error>")
        self._service.blobs[url] = b"".join([chunk async for chunk in content])
        return DummyHTTPResponse(self._service.put_status)

    async def head(self, url: str) -> DummyHTTPResponse:
        self._service.requests.append(("HEAD", url, {}))
        if url not in self._service.blobs:
            return DummyHTTPResponse(404, text="missing")
        return DummyHTTPResponse(200, headers={"Content-Length": str(len(self._service.blobs[url]))})

    def stream(self, method: str, url: str, headers: dict[str, str]) -> DummyStreamResponse:
        self._service.requests.append((method, url, headers))
        body = self._service.blobs[url]
        range_header = headers.get("Range")
        if range_header is None or self._service.ignore_ranges:
            return DummyStreamResponse(200, body)
        start, end = (int(part) for part in range_header.removeprefix("bytes=").split("-"))
        return DummyStreamResponse(206, body[start : end + 1])


@pytest.fixture
def service(monkeypatch) -> DummyBlobService:
    service = DummyBlobService()
    monkeypatch.setattr("httpx.AsyncClient", service.client)
    return service


def test_build_blob_url_appends_name_and_keeps_query():
    url = build_blob_url("https://storage.test/asset-1/?sv=2012&sig=abc", "my clip.wmv")

    assert url == "https://storage.test/asset-1/my%20clip.wmv?sv=2012&sig=abc"


def test_from_settings_forwards_tuning_knobs():
    settings = TransferSettings(
        number_of_concurrent_transfers=3,
        parallel_transfer_thread_count=7,
        transfer_chunk_size_bytes=2048,
        request_timeout_seconds=12.5,
    )

    client = HttpBlobTransferClient.from_settings(settings)

    assert client.number_of_concurrent_transfers == 3
    assert client.parallel_transfer_thread_count == 7
    assert client.chunk_size == 2048
    assert client.timeout_seconds == 12.5


@pytest.mark.asyncio
async def test_upload_streams_file_and_reports_progress(service, tmp_path: Path):
    source = tmp_path / "a.wmv"
    source.write_bytes(b"0123456789")
    events: list[TransferProgress] = []
    client = HttpBlobTransferClient(chunk_size=4)

    sent = await client.upload(source, LOCATOR, "a.wmv", on_progress=events.append)

    url = "https://storage.test/asset-1/a.wmv?sv=2012&sig=abc"
    assert sent == 10
    assert service.blobs[url] == b"0123456789"
    assert [e.bytes_transferred for e in events] == [4, 8, 10]
    assert events[-1].progress == 100.0
    method, _, headers = service.requests[0]
    assert method == "PUT"
    assert headers["Content-Length"] == "10"


@pytest.mark.asyncio
async def test_upload_empty_file_reports_completion(service, tmp_path: Path):
    source = tmp_path / "empty.txt"
    source.write_bytes(b"")
    events: list[TransferProgress] = []

    sent = await HttpBlobTransferClient().upload(source, LOCATOR, "empty.txt", on_progress=events.append)

    assert sent == 0
    assert events == [TransferProgress(0, 0)]


@pytest.mark.asyncio
async def test_upload_failure_raises_remote_service_error(service, tmp_path: Path):
    service.put_status = 403
    source = tmp_path / "a.wmv"
    source.write_bytes(b"data")

    with pytest.raises(RemoteServiceError) as excinfo:
        await HttpBlobTransferClient().upload(source, LOCATOR, "a.wmv")

    assert excinfo.value.status_code == 403
    assert excinfo.value.body == "<error>denied</error>"


@pytest.mark.asyncio
async def test_upload_honours_cancel_event(service, tmp_path: Path):
    source = tmp_path / "a.wmv"
    source.write_bytes(b"data")
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(asyncio.CancelledError):
        await HttpBlobTransferClient().upload(source, LOCATOR, "a.wmv", cancel_event=cancel)

    assert service.requests == []


@pytest.mark.asyncio
async def test_download_fetches_ranges_in_parallel(service, tmp_path: Path):
    url = "https://storage.test/asset-1/a.wmv?sv=2012&sig=abc"
    service.blobs[url] = b"0123456789"
    target = tmp_path / "a.wmv"
    events: list[TransferProgress] = []
    client = HttpBlobTransferClient(parallel_transfer_thread_count=3, chunk_size=4)

    received = await client.download(LOCATOR, "a.wmv", target, on_progress=events.append)

    assert received == 10
    assert target.read_bytes() == b"0123456789"
    ranges = sorted(h["Range"] for method, _, h in service.requests if method == "GET")
    assert ranges == ["bytes=0-3", "bytes=4-7", "bytes=8-9"]
    assert sorted(e.bytes_transferred for e in events)[-1] == 10
    assert all(e.total_bytes == 10 for e in events)


@pytest.mark.asyncio
async def test_download_single_range_sends_plain_get(service, tmp_path: Path):
    url = "https://storage.test/asset-1/a.wmv?sv=2012&sig=abc"
    service.blobs[url] = b"abc"
    target = tmp_path / "a.wmv"

    await HttpBlobTransferClient(parallel_transfer_thread_count=1).download(LOCATOR, "a.wmv", target)

    assert target.read_bytes() == b"abc"
    gets = [h for method, _, h in service.requests if method == "GET"]
    assert gets == [{}]


@pytest.mark.asyncio
async def test_download_rejects_ignored_range_requests(service, tmp_path: Path):
    url = "https://storage.test/asset-1/a.wmv?sv=2012&sig=abc"
    service.blobs[url] = b"0123456789"
    service.ignore_ranges = True

    with pytest.raises(RemoteServiceError, match="ignored range request"):
        await HttpBlobTransferClient(parallel_transfer_thread_count=2, chunk_size=4).download(
            LOCATOR, "a.wmv", tmp_path / "a.wmv"
        )


@pytest.mark.asyncio
async def test_download_missing_blob_raises(service, tmp_path: Path):
    with pytest.raises(RemoteServiceError) as excinfo:
        await HttpBlobTransferClient().download(LOCATOR, "nope.wmv", tmp_path / "nope.wmv")

    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_download_empty_blob(service, tmp_path: Path):
    url = "https://storage.test/asset-1/empty.txt?sv=2012&sig=abc"
    service.blobs[url] = b""
    events: list[TransferProgress] = []
    target = tmp_path / "empty.txt"

    received = await HttpBlobTransferClient().download(LOCATOR, "empty.txt", target, on_progress=events.append)

    assert received == 0
    assert target.read_bytes() == b""
    assert events == [TransferProgress(0, 0)]
