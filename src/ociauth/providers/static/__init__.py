"""Providers that return a fixed credential for every host."""

from ociauth.providers.static.provider import EmptyProvider, StaticProvider

__all__ = ["EmptyProvider", "StaticProvider"]
