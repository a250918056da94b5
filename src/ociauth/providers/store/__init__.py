"""Provider backed by the on-disk credential store."""

from ociauth.providers.store.provider import StoreProvider

__all__ = ["StoreProvider"]
