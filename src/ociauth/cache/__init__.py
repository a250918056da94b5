"""Registry token caching for ociauth.

Registry bearer tokens obtained while answering auth challenges are kept
in a :class:`TokenCache` keyed by host and scope. Two implementations are
provided: :class:`MemoryTokenCache` for the lifetime of a client and
:class:`DiskTokenCache`, which persists tokens with :mod:`diskcache` so
that short-lived processes can reuse them.
"""

from ociauth.cache.cache import DiskTokenCache, MemoryTokenCache, TokenCache, token_key

__all__ = ["DiskTokenCache", "MemoryTokenCache", "TokenCache", "token_key"]
