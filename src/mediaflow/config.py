"""Configuration for the transfer and monitoring layer.

Values are read from ``MEDIAFLOW_*`` environment variables. The settings
object is passed explicitly to the store, the transfer orchestrator and the
job monitor so tests can supply deterministic values.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, cast

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransferSettings(BaseSettings):
    """Pydantic settings container shared by all mediaflow components."""

    model_config = cast(Any, SettingsConfigDict(env_prefix="MEDIAFLOW_"))

    service_url: str = Field(
        default="https://media.example.invalid/api/",
        description="Base URL of the remote media store data API.",
    )
    access_token: str = Field(
        default="",
        description="Bearer token forwarded to the remote media store.",
    )
    default_storage_account: str = Field(
        default="",
        description="Storage account used when callers do not name one.",
    )
    number_of_concurrent_transfers: int = Field(
        default=2,
        ge=1,
        description="Maximum number of files a blob client moves at once.",
    )
    parallel_transfer_thread_count: int = Field(
        default=10,
        ge=1,
        description="Parallel ranges per file used by the blob client.",
    )
    access_policy_duration_hours: int = Field(
        default=24,
        ge=1,
        description="Lifetime of the transient write/read grants in hours.",
    )
    job_refresh_interval_ms: int = Field(
        default=2_500,
        ge=0,
        description="Default polling interval for JobMonitor in milliseconds.",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout applied to store and blob HTTP requests in seconds.",
    )
    transfer_chunk_size_bytes: int = Field(
        default=4 * 1024 * 1024,
        ge=1024,
        description="Streaming chunk size for blob uploads and downloads.",
    )

    @property
    def access_policy_duration(self) -> timedelta:
        return timedelta(hours=self.access_policy_duration_hours)

    @classmethod
    def build_default(cls) -> "TransferSettings":
        """Construct settings with library defaults (plus environment overrides)."""

        return cls()


__all__ = ["TransferSettings"]
