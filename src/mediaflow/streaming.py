"""Playback and progressive-download URLs for assets."""

from __future__ import annotations

import logging
import math
from enum import Enum
from os import PathLike
from pathlib import Path

from .domain.models import Asset, AssetFile, Locator, LocatorType
from .exceptions import InvalidArgumentError, ensure_present
from .transfer.blob_client import build_blob_url

logger = logging.getLogger(__name__)


class StreamingFormat(Enum):
    """Adaptive streaming flavours served from an origin locator."""

    SMOOTH = ""
    HLS = "(format=m3u8-aapl)"
    MPEG_DASH = "(format=mpd-time-csf)"

    @property
    def suffix(self) -> str:
        return self.value


def _expiry(locator: Locator) -> float:
    if locator.expiration is None:
        return math.inf
    return locator.expiration.timestamp()


def get_manifest_file(asset: Asset | None) -> AssetFile | None:
    """Return the first ``.ism`` file of ``asset`` or ``None``."""

    asset = ensure_present(asset, "asset")
    return next((asset_file for asset_file in asset.files if asset_file.is_manifest), None)


def _compose(locator_path: str, manifest: AssetFile, fmt: StreamingFormat) -> str:
    return f"{locator_path.rstrip('/')}/{manifest.name}/manifest{fmt.suffix}"


def streaming_uri_for_locator(
    locator: Locator | None,
    asset: Asset | None,
    fmt: StreamingFormat = StreamingFormat.SMOOTH,
) -> str | None:
    """Build the streaming URL of ``asset`` served through ``locator``."""

    locator = ensure_present(locator, "locator")
    asset = ensure_present(asset, "asset")
    if locator.type is not LocatorType.ON_DEMAND_ORIGIN:
        raise InvalidArgumentError("The locator type must be on-demand origin.")
    manifest = get_manifest_file(asset)
    if manifest is None:
        return None
    return _compose(locator.path, manifest, fmt)


def resolve_streaming_uri(
    asset: Asset | None, fmt: StreamingFormat = StreamingFormat.SMOOTH
) -> str | None:
    """Build a streaming URL from the asset's soonest-expiring origin locator.

    Returns ``None`` when the asset has no manifest file or no origin locator.
    """

    asset = ensure_present(asset, "asset")
    manifest = get_manifest_file(asset)
    if manifest is None:
        return None
    origins = [loc for loc in asset.locators if loc.type is LocatorType.ON_DEMAND_ORIGIN]
    if not origins:
        return None
    return _compose(min(origins, key=_expiry).path, manifest, fmt)


def get_sas_uri(asset_file: AssetFile | None, asset: Asset | None) -> str | None:
    """Progressive-download URL of ``asset_file`` through the latest SAS locator."""

    asset_file = ensure_present(asset_file, "asset file")
    if asset is None:
        return None
    sas_locators = [loc for loc in asset.locators if loc.type is LocatorType.SAS]
    if not sas_locators:
        return None
    return build_blob_url(max(sas_locators, key=_expiry).path, asset_file.name)


def save_url(url: str | None, file_path: str | PathLike[str]) -> None:
    """Append ``url`` as a new line to ``file_path``, creating the file if needed."""

    url = ensure_present(url, "url")
    with Path(file_path).open("a", encoding="utf-8") as handle:
        handle.write(f"{url}\n")
    logger.debug("streaming.url.saved", extra={"path": str(file_path)})


__all__ = [
    "StreamingFormat",
    "get_manifest_file",
    "get_sas_uri",
    "resolve_streaming_uri",
    "save_url",
    "streaming_uri_for_locator",
]
