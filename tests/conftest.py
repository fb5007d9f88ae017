from __future__ import annotations

import pytest

from mediaflow.config import TransferSettings
from mediaflow.jobs.monitor import JobMonitor
from mediaflow.transfer.grants import AccessGrantManager
from mediaflow.transfer.orchestrator import FileTransferOrchestrator
from tests.mocks.store import InMemoryBlobTransferClient, InMemoryMediaStore


@pytest.fixture
def settings() -> TransferSettings:
    return TransferSettings(
        service_url="https://media.test/api/",
        access_token="token-123",
        default_storage_account="defaultstorage",
        job_refresh_interval_ms=0,
        transfer_chunk_size_bytes=1024,
    )


@pytest.fixture
def store() -> InMemoryMediaStore:
    return InMemoryMediaStore()


@pytest.fixture
def blob_client(store: InMemoryMediaStore) -> InMemoryBlobTransferClient:
    return InMemoryBlobTransferClient(store)


@pytest.fixture
def grants(store: InMemoryMediaStore) -> AccessGrantManager:
    return AccessGrantManager(store)


@pytest.fixture
def orchestrator(
    store: InMemoryMediaStore,
    grants: AccessGrantManager,
    blob_client: InMemoryBlobTransferClient,
    settings: TransferSettings,
) -> FileTransferOrchestrator:
    return FileTransferOrchestrator(
        store=store, grants=grants, blob_client=blob_client, settings=settings
    )


@pytest.fixture
def job_monitor(store: InMemoryMediaStore, settings: TransferSettings) -> JobMonitor:
    return JobMonitor(store=store, settings=settings)
