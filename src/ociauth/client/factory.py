"""Authenticated client factory.

:func:`build_client` turns :class:`~ociauth.client.options.ClientOptions`
into a ready-to-use :class:`httpx.AsyncClient`:

- **Credential callback** -- a :class:`~ociauth.auth.resolver.CredentialResolver`
  over the configured providers and auto-login handler, installed through
  :class:`~ociauth.client.auth_flow.RegistryAuth`.
- **Identification** -- every request carries ``User-Agent: ociauth``.
- **Transport** -- HTTP/2 preferred, up to 100 idle keep-alive
  connections expiring after 90 seconds, 30 second connect timeout, proxy
  settings from the environment.
- **TLS** -- certificates are verified unless ``insecure`` was explicitly set.
"""

from __future__ import annotations

from typing import Optional

import httpx

from ociauth.auth.resolver import CredentialResolver
from ociauth.client.auth_flow import RegistryAuth
from ociauth.client.options import ClientOptions
from ociauth.output import get_output

USER_AGENT = "ociauth"


def build_resolver(options: ClientOptions) -> CredentialResolver:
    """Create the credential resolver described by *options*."""
    return CredentialResolver(options.providers, auto_login=options.auto_login)


def build_client(
    options: Optional[ClientOptions] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    resolve_timeout: Optional[float] = None,
) -> httpx.AsyncClient:
    """Build an :class:`httpx.AsyncClient` that authenticates against registries.

    Args:
        options: Client settings. Defaults to an anonymous client with no
            providers.
        transport: Optional transport override (e.g. a mock in tests). When
            set, pool limits and HTTP/2 are the transport's business.
        resolve_timeout: Optional deadline in seconds for each credential
            resolution.

    Returns:
        A client whose ``auth`` is a :class:`RegistryAuth`. Use it as an
        async context manager or close it with ``aclose()``.
    """
    options = options or ClientOptions()
    config = options.transport

    if options.insecure:
        get_output().warning("TLS certificate verification is disabled")

    auth = RegistryAuth(
        build_resolver(options),
        token_cache=options.token_cache,
        resolve_timeout=resolve_timeout,
    )
    return httpx.AsyncClient(
        auth=auth,
        headers={"User-Agent": USER_AGENT},
        http2=config.http2,
        verify=not options.insecure,
        timeout=httpx.Timeout(config.read_timeout, connect=config.connect_timeout),
        limits=httpx.Limits(
            max_connections=None,
            max_keepalive_connections=config.max_idle_connections,
            keepalive_expiry=config.idle_connection_timeout,
        ),
        follow_redirects=True,
        trust_env=True,
        transport=transport,
    )
