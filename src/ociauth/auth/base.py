"""Abstract base class for credential providers.

This module defines the foundational types of the resolution subsystem:

- :class:`CredentialProvider` -- the abstract base class every credential
  source must extend.
- :class:`FunctionProvider` -- adapts a bare ``async def fn(host)`` callable
  into a provider.
- :class:`Resolver` -- the structural interface an HTTP auth flow needs,
  satisfied by :class:`~ociauth.auth.resolver.CredentialResolver` and by
  test fakes.

To implement a new credential source, subclass :class:`CredentialProvider`,
set :attr:`~CredentialProvider.name` and implement
:meth:`~CredentialProvider.credential`. Return
:data:`~ociauth.models.EMPTY_CREDENTIAL` when the source has nothing for a
host; raise (normally a :class:`~ociauth.exceptions.ProviderError`) when
something is actually wrong.

See Also:
    :mod:`ociauth.auth.resolver` for ordering and caching of providers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Protocol

from ociauth.models import Credential

CredentialFunc = Callable[[str], Awaitable[Credential]]


class CredentialProvider(ABC):
    """Abstract base class for credential providers.

    Providers must satisfy three rules:

    1. "No credential" is signalled by returning
       :data:`~ociauth.models.EMPTY_CREDENTIAL`, never by raising.
    2. Calling :meth:`credential` repeatedly for the same host has no
       additional side effects.
    3. Providers never touch the resolver's cache.

    Any internal state a provider keeps (token caches, open files) is its
    own to synchronize.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return a short identifier used in diagnostics (e.g. ``"store"``)."""
        ...

    @abstractmethod
    async def credential(self, host: str) -> Credential:
        """Return the credential this source holds for *host*.

        Args:
            host: Registry host, optionally with port or path prefix.

        Returns:
            A credential, or :data:`~ociauth.models.EMPTY_CREDENTIAL` when
            the source has nothing for *host*.

        Raises:
            ProviderError: If the source failed (malformed data, network
                error talking to a token endpoint, ...).
        """
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class FunctionProvider(CredentialProvider):
    """Wrap an ``async def fn(host) -> Credential`` callable as a provider.

    Args:
        func: The coroutine function to call.
        name: Diagnostic name; defaults to the function's ``__name__``.

    Example::

        async def from_vault(host: str) -> Credential:
            ...

        provider = FunctionProvider(from_vault)
    """

    def __init__(self, func: CredentialFunc, name: str | None = None) -> None:
        self._func = func
        self._name = name or getattr(func, "__name__", "function")

    @property
    def name(self) -> str:
        return self._name

    async def credential(self, host: str) -> Credential:
        return await self._func(host)


class Resolver(Protocol):
    """Anything that can resolve a registry host to a credential."""

    async def resolve(self, host: str, timeout: float | None = None) -> Credential:
        ...
