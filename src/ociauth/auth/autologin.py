"""Auto-login -- establish credentials for a host before providers are consulted.

The :class:`AutoLoginHandler` is the resolver's pre-resolution hook. For a
host with configured username/password (see
:func:`ociauth.config.load_basic_auths`) it verifies the pair against the
registry's ``/v2/`` endpoint and writes it to the
:class:`~ociauth.auth.credential_store.CredentialStore`, where the store
provider picks it up during the provider scan that follows.

Login is idempotent per host: once a host has logged in successfully,
further calls return immediately. Failures are never remembered, so the
next resolution retries.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Awaitable, Callable, Optional

import httpx

from ociauth.auth.credential_store import CredentialStore
from ociauth.config import load_basic_auths, resolve_credential
from ociauth.exceptions import (
    ConfigError,
    LoginError,
    LoginNotConfiguredError,
    RegistryAuthError,
)
from ociauth.models import BasicAuthEntry, Credential, CredentialEntry
from ociauth.output import get_output

Verifier = Callable[[str, Credential], Awaitable[None]]


class AutoLoginHandler:
    """Log in to registries on demand using configured basic-auth entries.

    Args:
        store: Store that receives verified credentials.
        basic_auths: Host-keyed username/password-source pairs.
        verifier: Coroutine checking a credential against a host; raises
            :class:`~ociauth.exceptions.LoginError` on rejection. Defaults
            to :func:`ping_registry`.
        strict: When ``True``, a host without configured login raises
            :class:`~ociauth.exceptions.LoginNotConfiguredError` instead of
            being a no-op.
        insecure: Skip TLS verification when pinging registries.
    """

    def __init__(
        self,
        store: CredentialStore,
        basic_auths: Optional[dict[str, BasicAuthEntry]] = None,
        verifier: Optional[Verifier] = None,
        strict: bool = False,
        insecure: bool = False,
    ) -> None:
        self._store = store
        self._basic_auths = dict(basic_auths or {})
        self._verifier = verifier
        self._strict = strict
        self._insecure = insecure
        self._logged_in: set[str] = set()
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        store: Optional[CredentialStore] = None,
        strict: bool = False,
        insecure: bool = False,
    ) -> AutoLoginHandler:
        """Build a handler from ``<config_dir>/basicauths.json``.

        Raises:
            ConfigError: If the configuration file is invalid.
        """
        return cls(
            store or CredentialStore(),
            basic_auths=load_basic_auths(),
            strict=strict,
            insecure=insecure,
        )

    def is_logged_in(self, host: str) -> bool:
        """Return whether *host* has already logged in successfully."""
        with self._lock:
            return host in self._logged_in

    async def login(self, host: str) -> None:
        """Ensure *host* is logged in.

        Raises:
            LoginNotConfiguredError: If the handler is strict and no login is
                configured for *host*.
            LoginError: If the password could not be resolved, the registry
                rejected the credential, or it could not be stored.
        """
        if self.is_logged_in(host):
            return

        output = get_output()
        entry = self._basic_auths.get(host)
        if entry is None:
            if self._strict:
                raise LoginNotConfiguredError(f"No login configured for {host}", host=host)
            output.debug(f"No auto-login configured for {host}")
            return

        try:
            password = resolve_credential(entry.password_source)
        except ConfigError as exc:
            raise LoginError(f"Cannot resolve password for {host}: {exc}", host=host) from exc

        cred = Credential.basic(entry.username, password)
        verify = self._verifier or self._ping
        await verify(host, cred)

        stored = CredentialEntry(username=entry.username, password=password)
        try:
            await asyncio.to_thread(self._store.put, host, stored)
        except OSError as exc:
            raise LoginError(f"Cannot store credential for {host}: {exc}", host=host) from exc

        with self._lock:
            self._logged_in.add(host)
        output.debug(f"Logged in to {host} as {entry.username}")

    async def _ping(self, host: str, cred: Credential) -> None:
        await ping_registry(host, cred, insecure=self._insecure)


async def ping_registry(host: str, cred: Credential, insecure: bool = False) -> None:
    """Check *cred* against the registry's ``/v2/`` API root.

    Bearer challenges are answered through
    :class:`~ociauth.client.auth_flow.RegistryAuth`, so token-based
    registries are verified end to end.

    Raises:
        LoginError: If the registry rejects the credential, answers with an
            unexpected status, or cannot be reached.
    """
    from ociauth.client.auth_flow import RegistryAuth, StaticResolver

    auth = RegistryAuth(StaticResolver(cred))
    try:
        async with httpx.AsyncClient(auth=auth, verify=not insecure, timeout=30.0) as client:
            response = await client.get(f"https://{host}/v2/")
    except RegistryAuthError as exc:
        raise LoginError(f"Registry {host} rejected the credential: {exc}", host=host) from exc
    except httpx.HTTPError as exc:
        raise LoginError(f"Cannot reach {host}: {exc}", host=host) from exc

    if response.status_code in (401, 403):
        raise LoginError(f"Registry {host} rejected the credential", host=host)
    if response.status_code >= 400:
        raise LoginError(
            f"Registry {host} answered HTTP {response.status_code} to login", host=host
        )
