"""Byte-level progress events and the per-file relay to caller callbacks."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..domain.models import AssetFile

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TransferProgress:
    """Snapshot of one file transfer."""

    bytes_transferred: int
    total_bytes: int

    @property
    def progress(self) -> float:
        """Percentage in ``[0, 100]``; empty files count as complete."""
        if self.total_bytes <= 0:
            return 100.0
        return min(100.0, self.bytes_transferred * 100.0 / self.total_bytes)


ProgressCallback = Callable[[AssetFile, TransferProgress], None]
ProgressSink = Callable[[TransferProgress], None]


def relay_to(asset_file: AssetFile, callback: ProgressCallback | None) -> ProgressSink:
    """Bind ``callback`` to ``asset_file`` for the duration of one transfer call.

    The returned sink is handed to the blob client and dropped when the call
    returns, so nothing stays subscribed afterwards. A failing callback is
    logged and never interrupts the transfer it instruments.
    """

    def _sink(event: TransferProgress) -> None:
        if callback is None:
            return
        try:
            callback(asset_file, event)
        except Exception:
            logger.exception(
                "transfer.progress.callback_failed",
                extra={"asset_file": asset_file.name},
            )

    return _sink


__all__ = ["ProgressCallback", "ProgressSink", "TransferProgress", "relay_to"]
