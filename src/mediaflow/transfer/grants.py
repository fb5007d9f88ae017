"""Lifecycle of transient access grants (locator plus access policy)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..domain.models import AccessPermissions, Asset, Locator, LocatorType
from ..exceptions import NotFoundError, ensure_present
from ..store.base import RemoteMediaStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AccessGrantManager:
    """Create and revoke permission-scoped locators bound to one asset."""

    store: RemoteMediaStore
    log: logging.Logger = field(default_factory=lambda: logger)

    async def grant(
        self,
        asset: Asset | None,
        permissions: AccessPermissions,
        duration: timedelta,
        *,
        locator_type: LocatorType = LocatorType.SAS,
        start_time: datetime | None = None,
    ) -> Locator:
        """Create a fresh access policy and a locator of ``locator_type`` backed by it."""
        asset = ensure_present(asset, "asset")
        policy = await self.store.create_access_policy(asset.name, duration, permissions)
        locator = await self.store.create_locator(
            locator_type, asset, policy, start_time=start_time
        )
        if locator.access_policy_id is None:
            locator.access_policy_id = policy.id
        self.log.info(
            "transfer.grant.created",
            extra={
                "asset_id": asset.id,
                "locator_id": locator.id,
                "locator_type": locator_type.name,
                "permissions": int(permissions),
                "duration_seconds": duration.total_seconds(),
            },
        )
        return locator

    async def revoke(self, locator: Locator | None, *, outcome: str = "success") -> None:
        """Delete ``locator`` and its access policy.

        Entities already gone on the remote side (for instance because the
        asset was deleted) are logged and skipped.
        """
        locator = ensure_present(locator, "locator")
        try:
            try:
                await self.store.delete_locator(locator.id)
            except NotFoundError:
                self.log.warning(
                    "transfer.grant.locator_missing",
                    extra={"asset_id": locator.asset_id, "locator_id": locator.id},
                )
        finally:
            if locator.access_policy_id:
                try:
                    await self.store.delete_access_policy(locator.access_policy_id)
                except NotFoundError:
                    self.log.warning(
                        "transfer.grant.policy_missing",
                        extra={"locator_id": locator.id, "policy_id": locator.access_policy_id},
                    )
        self.log.info(
            "transfer.grant.revoked",
            extra={"asset_id": locator.asset_id, "locator_id": locator.id, "outcome": outcome},
        )

    @asynccontextmanager
    async def scoped(
        self,
        asset: Asset | None,
        permissions: AccessPermissions,
        duration: timedelta,
        *,
        locator_type: LocatorType = LocatorType.SAS,
        start_time: datetime | None = None,
    ) -> AsyncIterator[Locator]:
        """Yield a grant that is revoked exactly once when the block exits."""
        locator = await self.grant(
            asset,
            permissions,
            duration,
            locator_type=locator_type,
            start_time=start_time,
        )
        try:
            yield locator
        except asyncio.CancelledError:
            await self._revoke_after_error(locator, "cancelled")
            raise
        except Exception:
            await self._revoke_after_error(locator, "failure")
            raise
        await self.revoke(locator, outcome="success")

    async def _revoke_after_error(self, locator: Locator, outcome: str) -> None:
        # the block's own error stays the one the caller sees
        try:
            await self.revoke(locator, outcome=outcome)
        except Exception as exc:
            self.log.error(
                "transfer.grant.revoke_failed",
                extra={
                    "asset_id": locator.asset_id,
                    "locator_id": locator.id,
                    "outcome": outcome,
                    "error": repr(exc),
                },
            )


__all__ = ["AccessGrantManager"]
