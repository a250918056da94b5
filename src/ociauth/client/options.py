"""Client configuration -- an explicit, validated options model.

:class:`ClientOptions` gathers everything the client factory needs:
the ordered provider chain, the optional auto-login handler, the optional
token cache, the insecure flag and the transport settings. The chainable
``with_*`` builders mirror the usual option set; each provider builder
appends to the chain, so **call order is provider precedence**.

Example::

    options = (
        ClientOptions()
        .with_store(CredentialStore())
        .with_oauth_credentials()
        .with_gcp_credentials()
        .with_token_cache(DiskTokenCache())
    )
"""

from __future__ import annotations

import inspect
from typing import Any, Iterable, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ociauth.auth.autologin import AutoLoginHandler
from ociauth.auth.base import CredentialProvider, FunctionProvider
from ociauth.auth.credential_store import CredentialStore
from ociauth.config import env_flag
from ociauth.models import Credential, OAuth2ClientConfig, TransportConfig
from ociauth.providers import (
    GCPMetadataProvider,
    OAuth2ClientCredentialsProvider,
    StaticProvider,
    StoreProvider,
)


class ClientOptions(BaseModel):
    """Settings for :func:`~ociauth.client.factory.build_client`.

    Attributes:
        providers: Credential providers in precedence order. Coroutine
            functions ``async def fn(host)`` are wrapped in
            :class:`~ociauth.auth.base.FunctionProvider`.
        auto_login: Handler run before the provider scan of a host with no
            cached provider. ``None`` disables auto-login.
        token_cache: Storage for registry bearer tokens (any object with
            ``get(key)`` and ``set(key, token, expires_in)``). ``None`` uses
            an in-memory cache owned by the client.
        insecure: Skip TLS certificate verification. Never on by default.
        transport: Connection pool and timeout settings.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    providers: list[CredentialProvider] = Field(default_factory=list)
    auto_login: Optional[AutoLoginHandler] = None
    token_cache: Optional[Any] = None
    insecure: bool = False
    transport: TransportConfig = Field(default_factory=TransportConfig)

    @field_validator("providers", mode="before")
    @classmethod
    def _wrap_functions(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return value
        return [
            FunctionProvider(item) if inspect.iscoroutinefunction(item) else item
            for item in value
        ]

    @field_validator("token_cache")
    @classmethod
    def _check_token_cache(cls, value: Any) -> Any:
        if value is not None and not _is_token_cache(value):
            raise ValueError("token_cache must provide get(key) and set(key, token, expires_in)")
        return value

    @classmethod
    def from_env(cls, **kwargs: Any) -> ClientOptions:
        """Build options with ``insecure`` taken from ``OCIAUTH_INSECURE``."""
        kwargs.setdefault("insecure", env_flag("INSECURE"))
        return cls(**kwargs)

    # ------------------------------------------------------------------ #
    # Builders
    # ------------------------------------------------------------------ #

    def with_provider(self, provider: CredentialProvider) -> ClientOptions:
        """Append any provider to the chain."""
        if inspect.iscoroutinefunction(provider):
            provider = FunctionProvider(provider)
        if not isinstance(provider, CredentialProvider):
            raise TypeError(f"Expected a CredentialProvider, got {type(provider).__name__}")
        self.providers.append(provider)
        return self

    def with_credentials(self, credential: Credential) -> ClientOptions:
        """Append a provider returning *credential* for every host."""
        return self.with_provider(StaticProvider(credential))

    def with_store(self, store: Optional[CredentialStore] = None) -> ClientOptions:
        """Append the on-disk credential store (default location when omitted)."""
        return self.with_provider(StoreProvider(store or CredentialStore()))

    def with_oauth_credentials(
        self,
        configs: Optional[dict[str, OAuth2ClientConfig]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> ClientOptions:
        """Append the OAuth2 client-credentials provider.

        Without *configs*, ``<config_dir>/clientcredentials.json`` is read on
        first use.
        """
        return self.with_provider(OAuth2ClientCredentialsProvider(configs, transport=transport))

    def with_gcp_credentials(
        self,
        registries: Optional[Iterable[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> ClientOptions:
        """Append the GCE metadata-server provider."""
        return self.with_provider(GCPMetadataProvider(registries, transport=transport))

    def with_auto_login(self, handler: AutoLoginHandler) -> ClientOptions:
        """Enable auto-login through *handler*."""
        self.auto_login = handler
        return self

    def with_token_cache(self, cache: Any) -> ClientOptions:
        """Keep registry tokens in *cache*."""
        if not _is_token_cache(cache):
            raise TypeError("token_cache must provide get(key) and set(key, token, expires_in)")
        self.token_cache = cache
        return self

    def with_insecure(self) -> ClientOptions:
        """Skip TLS certificate verification."""
        self.insecure = True
        return self


def _is_token_cache(value: Any) -> bool:
    return callable(getattr(value, "get", None)) and callable(getattr(value, "set", None))
