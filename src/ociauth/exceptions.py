"""Exception hierarchy for ociauth.

All exceptions inherit from :class:`OciAuthError`. The resolver never wraps
or suppresses the errors raised by providers and the auto-login handler, so
callers can catch the precise class below to tell the failure modes apart.

Subclass hierarchy::

    OciAuthError
    +-- ConfigError
    +-- LoginError
    |   +-- LoginNotConfiguredError
    +-- ProviderError
    |   +-- CredentialStoreError
    |   +-- TokenRequestError
    +-- ResolutionCancelledError
    +-- RegistryAuthError
"""


class OciAuthError(Exception):
    """Base exception for all ociauth errors.

    Args:
        message: Human-readable error description.
        host: Registry host the error relates to, when known.
    """

    def __init__(self, message: str, host: str | None = None):
        super().__init__(message)
        self.host = host


class ConfigError(OciAuthError):
    """Raised for configuration problems (invalid JSON, bad credential sources, bad options)."""


class LoginError(OciAuthError):
    """Raised when auto-login could not establish credentials for a host."""


class LoginNotConfiguredError(LoginError):
    """Raised by a strict auto-login handler when no login is configured for a host."""


class ProviderError(OciAuthError):
    """Raised when a credential provider fails unexpectedly.

    A provider error is fatal to the resolution that triggered it: the
    remaining providers are not consulted.
    """


class CredentialStoreError(ProviderError):
    """Raised when the on-disk credential store is unreadable or malformed."""


class TokenRequestError(ProviderError):
    """Raised when a token endpoint (OAuth2, metadata server) fails."""


class ResolutionCancelledError(OciAuthError):
    """Raised when a resolution deadline expires before a credential was found.

    Task cancellation is not converted: :class:`asyncio.CancelledError`
    propagates as-is.
    """


class RegistryAuthError(OciAuthError):
    """Raised when a registry authentication challenge cannot be satisfied."""
