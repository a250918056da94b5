"""OAuth2 Client Credentials provider.

Performs the OAuth2 Client Credentials grant -- a non-interactive,
machine-to-machine flow that exchanges a ``client_id`` and
``client_secret`` for an access token -- for registries that have a
client-credentials configuration.

See Also:
    :class:`~ociauth.providers.oauth2_client_credentials.provider.OAuth2ClientCredentialsProvider`
"""

from ociauth.providers.oauth2_client_credentials.provider import (
    OAuth2ClientCredentialsProvider,
)

__all__ = ["OAuth2ClientCredentialsProvider"]
