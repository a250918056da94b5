"""Built-in credential providers.

Each provider lives in its own subpackage and implements
:class:`~ociauth.auth.base.CredentialProvider`:

- :class:`StaticProvider` / :class:`EmptyProvider` -- fixed credentials.
- :class:`StoreProvider` -- the on-disk :class:`~ociauth.auth.CredentialStore`.
- :class:`OAuth2ClientCredentialsProvider` -- OAuth2 client-credentials grant.
- :class:`GCPMetadataProvider` -- GCE metadata server tokens for Google registries.
"""

from ociauth.providers.gcp import GCPMetadataProvider
from ociauth.providers.oauth2_client_credentials import OAuth2ClientCredentialsProvider
from ociauth.providers.static import EmptyProvider, StaticProvider
from ociauth.providers.store import StoreProvider

__all__ = [
    "EmptyProvider",
    "GCPMetadataProvider",
    "OAuth2ClientCredentialsProvider",
    "StaticProvider",
    "StoreProvider",
]
