"""Credential resolver -- ordered provider chain with per-host memoization.

The :class:`CredentialResolver` is the core of ociauth. An HTTP client
calls :meth:`~CredentialResolver.resolve` with a registry host whenever it
needs a credential. Resolution works in four steps:

1. A host whose working provider is already known goes straight to that
   provider. Its result (or error) is final.
2. Otherwise the optional auto-login handler runs first; a login failure
   ends the resolution with that error.
3. Providers are tried in configured order. An error stops the walk and
   propagates unchanged; an empty credential moves on; the first non-empty
   credential is returned and its provider is remembered for the host.
4. When every provider comes back empty, anonymous access
   (:data:`~ociauth.models.EMPTY_CREDENTIAL`) is the result.

The host-to-provider cache is shared by every task using the resolver.
Reads and writes go through a mutex that is never held across an
``await``; first lookups of the same host are additionally serialized by a
per-host :class:`asyncio.Lock`, so concurrent requests to a new registry
normally trigger a single provider scan.

See Also:
    :class:`~ociauth.client.auth_flow.RegistryAuth` -- the httpx auth flow
    that calls the resolver.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Iterable, Optional

from ociauth.auth.autologin import AutoLoginHandler
from ociauth.auth.base import CredentialProvider
from ociauth.exceptions import ResolutionCancelledError
from ociauth.models import EMPTY_CREDENTIAL, Credential
from ociauth.output import get_output


class CredentialResolver:
    """Resolve registry hosts to credentials through an ordered provider chain.

    A resolver is bound to the event loop of the client that owns it, like
    :class:`httpx.AsyncClient` itself.

    Args:
        providers: Credential providers in precedence order. The order is
            never changed by the resolver.
        auto_login: Optional handler invoked before the provider scan of
            any host that has no cached provider yet.

    Example::

        resolver = CredentialResolver([StoreProvider(store), OAuth2ClientCredentialsProvider()])
        cred = await resolver.resolve("registry.example.com")
    """

    def __init__(
        self,
        providers: Iterable[CredentialProvider] = (),
        auto_login: Optional[AutoLoginHandler] = None,
    ) -> None:
        self._providers: tuple[CredentialProvider, ...] = tuple(providers)
        self._auto_login = auto_login
        self._cache: dict[str, CredentialProvider] = {}
        self._host_locks: dict[str, asyncio.Lock] = {}
        self._lock = threading.Lock()

    @property
    def providers(self) -> tuple[CredentialProvider, ...]:
        """The configured providers, in precedence order."""
        return self._providers

    @property
    def auto_login(self) -> Optional[AutoLoginHandler]:
        """The auto-login handler, if any."""
        return self._auto_login

    # ------------------------------------------------------------------ #
    # Cache accessors
    # ------------------------------------------------------------------ #

    def cached_provider(self, host: str) -> Optional[CredentialProvider]:
        """Return the provider remembered for *host*, or ``None``."""
        with self._lock:
            return self._cache.get(host)

    def cached_hosts(self) -> list[str]:
        """Return the hosts that currently have a remembered provider, sorted."""
        with self._lock:
            return sorted(self._cache)

    def _remember(self, host: str, provider: CredentialProvider) -> None:
        with self._lock:
            self._cache[host] = provider

    def _host_lock(self, host: str) -> asyncio.Lock:
        with self._lock:
            lock = self._host_locks.get(host)
            if lock is None:
                lock = self._host_locks[host] = asyncio.Lock()
            return lock

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #

    async def resolve(self, host: str, timeout: Optional[float] = None) -> Credential:
        """Resolve *host* to a credential.

        Args:
            host: Registry host, optionally with port or path prefix.
            timeout: Optional deadline in seconds for the whole resolution,
                including auto-login and every provider call.

        Returns:
            The first non-empty credential found, or
            :data:`~ociauth.models.EMPTY_CREDENTIAL` for anonymous access.

        Raises:
            LoginError: If auto-login failed; no provider was consulted.
            ResolutionCancelledError: If *timeout* expired first.
            asyncio.CancelledError: If the calling task was cancelled.
            Exception: Whatever the failing provider raised, unchanged.
        """
        if timeout is None:
            return await self._resolve(host)

        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                return await self._resolve(host)
        except TimeoutError as exc:
            if deadline.expired():
                raise ResolutionCancelledError(
                    f"Credential resolution for {host} exceeded {timeout}s", host=host
                ) from exc
            raise

    async def _resolve(self, host: str) -> Credential:
        provider = self.cached_provider(host)
        if provider is not None:
            return await provider.credential(host)

        async with self._host_lock(host):
            # Another task may have finished the scan while we waited.
            provider = self.cached_provider(host)
            if provider is not None:
                return await provider.credential(host)

            if self._auto_login is not None:
                await self._auto_login.login(host)

            return await self._scan(host)

    async def _scan(self, host: str) -> Credential:
        output = get_output()
        for provider in self._providers:
            cred = await provider.credential(host)
            if cred.is_empty:
                output.debug(f"Provider {provider.name} has no credential for {host}")
                continue
            self._remember(host, provider)
            output.debug(f"Using provider {provider.name} for {host}")
            return cred

        output.debug(f"No credential for {host}, using anonymous access")
        return EMPTY_CREDENTIAL
