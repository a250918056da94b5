"""Credential store provider.

Looks up the host in a :class:`~ociauth.auth.credential_store.CredentialStore`.
File access runs in a worker thread so that the event loop is not blocked
by disk I/O.

Expired token entries count as "no credential" so that a later provider
(or a fresh login) can take over. A malformed store raises
:class:`~ociauth.exceptions.CredentialStoreError`, which stops resolution.
"""

from __future__ import annotations

import asyncio

from ociauth.auth.base import CredentialProvider
from ociauth.auth.credential_store import CredentialStore
from ociauth.models import EMPTY_CREDENTIAL, Credential
from ociauth.output import get_output


class StoreProvider(CredentialProvider):
    """Resolve credentials from a :class:`CredentialStore`.

    Args:
        store: The store to read from.
    """

    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    @property
    def name(self) -> str:
        return "store"

    async def credential(self, host: str) -> Credential:
        entry = await asyncio.to_thread(self._store.get, host)
        if entry is None:
            return EMPTY_CREDENTIAL
        if entry.is_expired():
            get_output().debug(f"Stored credential for {host} has expired")
            return EMPTY_CREDENTIAL
        return entry.to_credential()
