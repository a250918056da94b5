"""In-memory access-token memo shared by token-fetching providers."""

from __future__ import annotations

import threading
import time
from typing import Optional

# Tokens this close to expiry are treated as already expired.
EXPIRY_MARGIN_SECONDS = 30.0
DEFAULT_EXPIRES_IN = 3600.0


class TokenMemo:
    """Per-host access tokens with monotonic-clock expiry."""

    def __init__(self) -> None:
        self._tokens: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, host: str) -> Optional[str]:
        with self._lock:
            item = self._tokens.get(host)
        if item is None:
            return None
        token, expiry = item
        if time.monotonic() >= expiry - EXPIRY_MARGIN_SECONDS:
            return None
        return token

    def put(self, host: str, token: str, expires_in: Optional[float]) -> None:
        lifetime = float(expires_in) if expires_in is not None else DEFAULT_EXPIRES_IN
        with self._lock:
            self._tokens[host] = (token, time.monotonic() + lifetime)

    def clear(self, host: Optional[str] = None) -> None:
        with self._lock:
            if host is None:
                self._tokens.clear()
            else:
                self._tokens.pop(host, None)
