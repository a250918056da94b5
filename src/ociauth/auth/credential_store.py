"""Persistent credential store keyed by registry host.

Stores credentials in ``~/.local/share/ociauth/credentials.json`` (XDG) or
the platform-equivalent directory. The file is a single JSON object mapping
registry hosts to serialised :class:`~ociauth.models.CredentialEntry`
objects::

    {
      "ghcr.io": {"username": "octocat", "password": "ghp_..."},
      "registry.example.com": {"refresh_token": "..."}
    }

Writes are atomic (temp file, fsync, rename) with ``0o600`` permissions so
secrets are never world-readable, even momentarily. Read-modify-write
cycles within a process are serialized by a lock; coordination between
processes is not attempted.

Unlike configuration files, an unreadable or malformed store is an error:
silently treating it as empty would downgrade authenticated pulls to
anonymous ones.

See Also:
    :class:`~ociauth.providers.store.StoreProvider` -- reads this store
    during resolution.
    :class:`~ociauth.auth.autologin.AutoLoginHandler` -- writes to it.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from ociauth.config import atomic_write, get_data_dir
from ociauth.exceptions import CredentialStoreError
from ociauth.models import CredentialEntry

STORE_FILENAME = "credentials.json"

_ENTRIES = TypeAdapter(dict[str, CredentialEntry])


class CredentialStore:
    """Read/write credentials for registry hosts.

    Args:
        path: Location of the store file. Defaults to
            ``<data_dir>/credentials.json``.

    Example::

        store = CredentialStore()
        store.put("ghcr.io", CredentialEntry(username="me", password="secret"))
        entry = store.get("ghcr.io")
        assert entry.username == "me"
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path is not None else get_data_dir() / STORE_FILENAME
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """The filesystem path to the store file."""
        return self._path

    def get(self, host: str) -> Optional[CredentialEntry]:
        """Return the entry stored for *host*, or ``None``.

        Raises:
            CredentialStoreError: If the store file is unreadable or malformed.
        """
        with self._lock:
            return self._load().get(host)

    def hosts(self) -> list[str]:
        """Return every host with a stored entry, sorted alphabetically."""
        with self._lock:
            return sorted(self._load())

    def put(self, host: str, entry: CredentialEntry) -> None:
        """Store *entry* for *host*, replacing any previous entry.

        Raises:
            CredentialStoreError: If the existing file is malformed.
            OSError: If the file cannot be written.
        """
        with self._lock:
            entries = self._load()
            entries[host] = entry
            self._save(entries)

    def delete(self, host: str) -> bool:
        """Remove the entry for *host*.

        Returns:
            ``True`` if an entry was removed, ``False`` if there was none.
        """
        with self._lock:
            entries = self._load()
            if host not in entries:
                return False
            del entries[host]
            self._save(entries)
            return True

    def _load(self) -> dict[str, CredentialEntry]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return _ENTRIES.validate_python(data)
        except OSError as exc:
            raise CredentialStoreError(f"Cannot read credential store {self._path}: {exc}") from exc
        except (json.JSONDecodeError, ValidationError) as exc:
            raise CredentialStoreError(f"Malformed credential store {self._path}: {exc}") from exc

    def _save(self, entries: dict[str, CredentialEntry]) -> None:
        data = {
            host: entry.model_dump(mode="json", exclude_none=True)
            for host, entry in sorted(entries.items())
        }
        atomic_write(self._path, json.dumps(data, indent=2) + "\n", mode=0o600)
