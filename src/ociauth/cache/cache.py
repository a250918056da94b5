"""Token caches for registry bearer tokens.

A token cache only needs ``get(key)`` and ``set(key, token, expires_in)``;
:class:`TokenCache` spells that contract out as a protocol so callers can
plug in their own storage.

Cache keys are built by :func:`token_key` from the registry host and the
scope of the challenge, so a pull token never answers a push challenge.

See Also:
    :class:`~ociauth.client.auth_flow.RegistryAuth` -- reads and fills the
    cache while answering ``WWW-Authenticate`` challenges.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Optional, Protocol

import diskcache

from ociauth.config import get_cache_dir

# Registries that omit ``expires_in`` issue tokens valid for at least 60s.
DEFAULT_TOKEN_TTL = 60.0


def token_key(host: str, scope: str) -> str:
    """Return the cache key for a token issued to *host* for *scope*."""
    return f"{host}|{scope}"


class TokenCache(Protocol):
    """Get/set-by-key storage for registry tokens."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, token: str, expires_in: Optional[float] = None) -> None:
        ...


class MemoryTokenCache:
    """Thread-safe in-process token cache with per-entry expiry."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            token, expiry = item
            if time.monotonic() >= expiry:
                del self._entries[key]
                return None
            return token

    def set(self, key: str, token: str, expires_in: Optional[float] = None) -> None:
        ttl = expires_in if expires_in is not None else DEFAULT_TOKEN_TTL
        with self._lock:
            self._entries[key] = (token, time.monotonic() + ttl)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class DiskTokenCache:
    """Disk-backed token cache.

    Stores tokens in a :class:`diskcache.Cache` directory under
    ``<cache_dir>/tokens``. Entries expire after the lifetime the registry
    announced (``expires_in``), or :data:`DEFAULT_TOKEN_TTL` seconds.

    Args:
        cache_dir: Root directory for the cache. Defaults to the ociauth
            cache directory.

    Example::

        cache = DiskTokenCache()
        cache.set(token_key("ghcr.io", "repository:org/app:pull"), "tok", 300)
    """

    def __init__(self, cache_dir: Optional[str | Path] = None) -> None:
        self._cache_dir = Path(cache_dir) if cache_dir is not None else get_cache_dir()
        self._cache = diskcache.Cache(str(self._cache_dir / "tokens"))

    def get(self, key: str) -> Optional[str]:
        return self._cache.get(key)

    def set(self, key: str, token: str, expires_in: Optional[float] = None) -> None:
        ttl = expires_in if expires_in is not None else DEFAULT_TOKEN_TTL
        self._cache.set(key, token, expire=ttl)

    def clear(self) -> None:
        """Remove all entries from the cache."""
        self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return the entry count and directory of the cache."""
        return {
            "size": len(self._cache),
            "directory": str(self._cache_dir / "tokens"),
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()
