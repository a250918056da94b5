"""Credential resolution for registry hosts.

The main entry points are:

- :class:`CredentialProvider` -- abstract base class for credential sources.
- :class:`CredentialResolver` -- walks providers in order, remembers which
  one works per host, and runs auto-login first when configured.
- :class:`AutoLoginHandler` -- logs in to configured registries on demand.
- :class:`CredentialStore` -- persistent, host-keyed credential storage on disk.

Typical usage::

    from ociauth.auth import CredentialResolver, CredentialStore
    from ociauth.providers import StoreProvider

    resolver = CredentialResolver([StoreProvider(CredentialStore())])
    cred = await resolver.resolve("ghcr.io")
"""

from ociauth.auth.autologin import AutoLoginHandler, ping_registry
from ociauth.auth.base import CredentialProvider, FunctionProvider, Resolver
from ociauth.auth.credential_store import CredentialStore
from ociauth.auth.resolver import CredentialResolver

__all__ = [
    "AutoLoginHandler",
    "CredentialProvider",
    "CredentialResolver",
    "CredentialStore",
    "FunctionProvider",
    "Resolver",
    "ping_registry",
]
