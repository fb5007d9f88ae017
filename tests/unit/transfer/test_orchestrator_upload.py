from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from mediaflow.domain import AccessPermissions, AssetCreationOptions
from mediaflow.exceptions import (
    EmptyFolderError,
    InvalidArgumentError,
    NotFoundError,
    RemoteServiceError,
    TransferBatchError,
)
from mediaflow.transfer.orchestrator import FileTransferOrchestrator
from mediaflow.transfer.progress import TransferProgress
from tests.mocks.store import InMemoryBlobTransferClient

pytestmark = pytest.mark.unit


def write_files(folder: Path, files: dict[str, bytes]) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        (folder / name).write_bytes(content)
    return folder


@pytest.mark.asyncio
async def test_upload_folder_creates_asset_and_marks_manifest_primary(orchestrator, store, tmp_path):
    folder = write_files(
        tmp_path / "Big Buck Bunny",
        {"b.wmv": b"bbbbbbbbbb", "manifest.ISM": b"<smil/>", "a.wmv": b"aaaaa"},
    )

    asset = await orchestrator.upload_folder(folder)

    assert asset.name == "Big Buck Bunny"
    assert asset.storage_account == "defaultstorage"
    assert sorted(f.name for f in asset.files) == ["a.wmv", "b.wmv", "manifest.ISM"]
    primary = {f.name: f.is_primary for f in asset.files}
    assert primary == {"a.wmv": False, "b.wmv": False, "manifest.ISM": True}
    assert {f.name: f.size for f in asset.files} == {"a.wmv": 5, "b.wmv": 10, "manifest.ISM": 7}
    assert store.call_count("update_asset_file") == 1
    assert store.blobs[(asset.id, "b.wmv")] == b"bbbbbbbbbb"


@pytest.mark.asyncio
async def test_upload_folder_grant_is_write_list_and_revoked(orchestrator, store, blob_client, tmp_path):
    folder = write_files(tmp_path / "clips", {"a.wmv": b"1234", "b.wmv": b"5678"})

    asset = await orchestrator.upload_folder(folder)

    assert store.call_count("create_locator") == 1
    locator_id = blob_client.used_locators[0]
    assert set(blob_client.used_locators) == {locator_id}
    assert store.deleted_locators == [locator_id]
    assert store.active_locators(asset.id) == []
    assert len(store.deleted_policies) == 1
    assert store.calls.index("create_locator") < store.calls.index("create_asset_file")
    assert store.calls[-2:] == ["delete_locator", "delete_access_policy"]


@pytest.mark.asyncio
async def test_upload_grant_permissions(orchestrator, store, tmp_path, monkeypatch):
    captured: list[AccessPermissions] = []
    original = store.create_access_policy

    async def spy(name, duration, permissions):
        captured.append(permissions)
        return await original(name, duration, permissions)

    monkeypatch.setattr(store, "create_access_policy", spy)
    folder = write_files(tmp_path / "clips", {"a.wmv": b"1234"})

    await orchestrator.upload_folder(folder)

    assert captured == [AccessPermissions.WRITE | AccessPermissions.LIST]


@pytest.mark.asyncio
async def test_each_batch_gets_its_own_grant(orchestrator, store, blob_client, tmp_path):
    first = write_files(tmp_path / "first", {"a.wmv": b"1"})
    second = write_files(tmp_path / "second", {"b.wmv": b"2"})

    await orchestrator.upload_folder(first)
    await orchestrator.upload_folder(second)

    assert len(set(blob_client.used_locators)) == 2
    assert store.active_locators() == []


@pytest.mark.asyncio
async def test_upload_file_uses_file_name_and_explicit_account(orchestrator, store, tmp_path):
    path = tmp_path / "movie.mp4"
    path.write_bytes(b"0123456789")

    asset = await orchestrator.upload_file(
        path, storage_account="otherstorage", options=AssetCreationOptions.STORAGE_ENCRYPTED
    )

    assert asset.name == "movie.mp4"
    assert asset.storage_account == "otherstorage"
    assert asset.options is AssetCreationOptions.STORAGE_ENCRYPTED
    assert [(f.name, f.size, f.is_primary) for f in asset.files] == [("movie.mp4", 10, False)]


@pytest.mark.asyncio
async def test_upload_reports_progress_per_file(orchestrator, tmp_path):
    folder = write_files(tmp_path / "clips", {"a.wmv": b"12345678", "empty.txt": b""})
    events: list[tuple[str, TransferProgress]] = []

    await orchestrator.upload_folder(folder, on_progress=lambda af, p: events.append((af.name, p)))

    by_file = {name: [p for n, p in events if n == name] for name in ("a.wmv", "empty.txt")}
    assert [p.bytes_transferred for p in by_file["a.wmv"]] == [4, 8]
    assert by_file["a.wmv"][-1].progress == 100.0
    assert by_file["empty.txt"] == [TransferProgress(0, 0)]


@pytest.mark.asyncio
async def test_failing_progress_callback_does_not_abort_upload(orchestrator, tmp_path):
    folder = write_files(tmp_path / "clips", {"a.wmv": b"12345678"})

    def explode(asset_file, progress):
        raise RuntimeError("callback bug")

    asset = await orchestrator.upload_folder(folder, on_progress=explode)

    assert [f.name for f in asset.files] == ["a.wmv"]


@pytest.mark.asyncio
async def test_failed_file_fails_batch_and_still_revokes_grant(store, grants, settings, tmp_path):
    blob_client = InMemoryBlobTransferClient(store, fail_on={"b.wmv"})
    orchestrator = FileTransferOrchestrator(
        store=store, grants=grants, blob_client=blob_client, settings=settings
    )
    folder = write_files(tmp_path / "clips", {"a.wmv": b"1234", "b.wmv": b"5678", "c.wmv": b"9"})

    with pytest.raises(TransferBatchError) as excinfo:
        await orchestrator.upload_folder(folder)

    assert [name for name, _ in excinfo.value.failures] == ["b.wmv"]
    assert isinstance(excinfo.value.errors[0], RemoteServiceError)
    assert store.active_locators() == []
    assert store.call_count("delete_locator") == 1
    assert len(blob_client.used_locators) == 3


@pytest.mark.asyncio
async def test_cancelled_batch_raises_cancelled_and_revokes(orchestrator, store, blob_client, tmp_path):
    folder = write_files(tmp_path / "clips", {"a.wmv": b"1" * 64, "b.wmv": b"2" * 64})
    cancel = asyncio.Event()
    blob_client.cancel_after_first_chunk = cancel

    with pytest.raises(asyncio.CancelledError):
        await orchestrator.upload_folder(folder, cancel_event=cancel)

    assert store.active_locators() == []
    assert store.call_count("delete_locator") == 1


@pytest.mark.asyncio
async def test_upload_forwards_cancel_event_set_before_start(orchestrator, store, tmp_path):
    folder = write_files(tmp_path / "clips", {"a.wmv": b"1234"})
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(asyncio.CancelledError):
        await orchestrator.upload_folder(folder, cancel_event=cancel)

    assert store.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["upload_file", "upload_folder"])
async def test_upload_rejects_missing_path_without_remote_calls(orchestrator, store, method):
    with pytest.raises(InvalidArgumentError):
        await getattr(orchestrator, method)(None)

    assert store.calls == []


@pytest.mark.asyncio
async def test_upload_file_rejects_nonexistent_file(orchestrator, store, tmp_path):
    with pytest.raises(InvalidArgumentError):
        await orchestrator.upload_file(tmp_path / "missing.wmv")

    assert store.calls == []


@pytest.mark.asyncio
async def test_upload_folder_rejects_empty_folder(orchestrator, store, tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    (empty / "nested").mkdir()

    with pytest.raises(EmptyFolderError, match="No files in directory"):
        await orchestrator.upload_folder(empty)

    assert store.calls == []


@pytest.mark.asyncio
async def test_upload_folder_rejects_missing_folder(orchestrator, store, tmp_path):
    with pytest.raises(NotFoundError):
        await orchestrator.upload_folder(tmp_path / "does-not-exist")

    assert store.calls == []


@pytest.mark.asyncio
async def test_upload_folder_ignores_nested_directories(orchestrator, tmp_path):
    folder = write_files(tmp_path / "clips", {"a.wmv": b"1"})
    write_files(folder / "nested", {"deep.wmv": b"2"})

    asset = await orchestrator.upload_folder(folder)

    assert [f.name for f in asset.files] == ["a.wmv"]


@pytest.mark.asyncio
async def test_create_asset_files_discovers_out_of_band_blobs(orchestrator, store):
    asset = await store.create_asset("raw", storage_account="defaultstorage")
    store.blobs[(asset.id, "x.mp4")] = b"xyz"
    store.blobs[(asset.id, "y.ism")] = b"<smil/>"

    files = await orchestrator.create_asset_files(asset)

    assert [(f.name, f.size) for f in files] == [("x.mp4", 3), ("y.ism", 7)]
    assert asset.files == files


@pytest.mark.asyncio
async def test_failed_revoke_keeps_batch_error_and_deletes_policy(store, grants, settings, tmp_path, monkeypatch):
    blob_client = InMemoryBlobTransferClient(store, fail_on={"b.wmv"})
    orchestrator = FileTransferOrchestrator(
        store=store, grants=grants, blob_client=blob_client, settings=settings
    )

    async def fail_delete_locator(locator_id):
        raise RemoteServiceError("DELETE failed", status_code=500)

    monkeypatch.setattr(store, "delete_locator", fail_delete_locator)
    folder = write_files(tmp_path / "clips", {"a.wmv": b"1234", "b.wmv": b"5678"})

    with pytest.raises(TransferBatchError) as excinfo:
        await orchestrator.upload_folder(folder)

    assert [name for name, _ in excinfo.value.failures] == ["b.wmv"]
    assert store.policies == {}
    assert len(store.deleted_policies) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("account", ["", "   "])
async def test_blank_storage_account_falls_back_to_default(orchestrator, tmp_path, account):
    path = tmp_path / "movie.mp4"
    path.write_bytes(b"0123")

    asset = await orchestrator.upload_file(path, storage_account=account)

    assert asset.storage_account == "defaultstorage"
