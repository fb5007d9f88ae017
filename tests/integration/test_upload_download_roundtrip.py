from __future__ import annotations

import pytest

from mediaflow import MediaFlowClient
from tests.mocks.store import InMemoryBlobTransferClient

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_folder_round_trip_preserves_files(settings, store, tmp_path):
    source = tmp_path / "source"
    source.mkdir()
    contents = {"a.wmv": b"a" * 37, "b.wmv": b"b" * 5, "manifest.ism": b"<smil/>"}
    for name, content in contents.items():
        (source / name).write_bytes(content)
    target = tmp_path / "target"
    target.mkdir()
    client = MediaFlowClient(settings, store, InMemoryBlobTransferClient(store, chunk_size=8))

    asset = await client.upload_folder(source)
    fetched = await store.get_asset(asset.id)
    paths = await client.download_all(fetched, target)

    assert len(fetched.files) == 3
    assert [f.name for f in asset.files if f.is_primary] == ["manifest.ism"]
    assert sorted(p.name for p in paths) == sorted(contents)
    for name, content in contents.items():
        assert (target / name).stat().st_size == len(content)
        assert (target / name).read_bytes() == content
    assert store.active_locators() == []
    assert store.call_count("create_locator") == 2
