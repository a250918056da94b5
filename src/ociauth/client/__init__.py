"""Authenticated HTTP client for registries.

- :class:`ClientOptions` -- validated configuration with ordered ``with_*``
  builders.
- :func:`build_client` -- produces an :class:`httpx.AsyncClient` whose auth
  flow resolves credentials per registry host.
- :class:`RegistryAuth` -- the :class:`httpx.Auth` implementation that
  answers ``WWW-Authenticate`` challenges.
"""

from ociauth.client.auth_flow import (
    RegistryAuth,
    StaticResolver,
    parse_www_authenticate,
    scope_for_request,
)
from ociauth.client.factory import USER_AGENT, build_client, build_resolver
from ociauth.client.options import ClientOptions

__all__ = [
    "ClientOptions",
    "RegistryAuth",
    "StaticResolver",
    "USER_AGENT",
    "build_client",
    "build_resolver",
    "parse_www_authenticate",
    "scope_for_request",
]
