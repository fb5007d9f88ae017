"""Remote media store interface and adapters."""

from .base import RemoteMediaStore
from .http import HttpMediaStore

__all__ = ["HttpMediaStore", "RemoteMediaStore"]
