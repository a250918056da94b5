"""OAuth2 Client Credentials flow provider.

This module provides :class:`OAuth2ClientCredentialsProvider`. For a host
with an :class:`~ociauth.models.OAuth2ClientConfig` it performs the
non-interactive Client Credentials grant (:rfc:`6749` section 4.4),
exchanging a ``client_id`` and ``client_secret`` for an access token at the
configured ``token_url``. Hosts without configuration get no credential.

Tokens are cached in memory per host with expiry tracking and a 30-second
safety margin to avoid using tokens that are about to expire.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from ociauth.auth.base import CredentialProvider
from ociauth.config import load_client_credentials, resolve_credential
from ociauth.exceptions import TokenRequestError
from ociauth.models import EMPTY_CREDENTIAL, Credential, OAuth2ClientConfig
from ociauth.output import get_output
from ociauth.providers.tokens import TokenMemo


class OAuth2ClientCredentialsProvider(CredentialProvider):
    """Fetch registry access tokens via the OAuth2 Client Credentials grant.

    Args:
        configs: Host-keyed client-credentials settings. ``None`` loads
            ``<config_dir>/clientcredentials.json`` on first use.
        transport: Optional httpx transport for the token requests.
        timeout: Timeout in seconds for each token request.
    """

    def __init__(
        self,
        configs: Optional[dict[str, OAuth2ClientConfig]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ) -> None:
        self._configs = configs
        self._transport = transport
        self._timeout = timeout
        self._tokens = TokenMemo()

    @property
    def name(self) -> str:
        return "oauth2_client_credentials"

    async def credential(self, host: str) -> Credential:
        """Return a bearer token credential for *host*.

        Returns:
            A token credential, or :data:`~ociauth.models.EMPTY_CREDENTIAL`
            when *host* has no client-credentials configuration.

        Raises:
            ConfigError: If the configuration file or a credential source is
                invalid.
            TokenRequestError: If the token request fails.
        """
        config = self._config_for(host)
        if config is None:
            return EMPTY_CREDENTIAL

        token = self._tokens.get(host)
        if token is None:
            token_data = await self._fetch_token(host, config)
            token = token_data["access_token"]
            self._tokens.put(host, token, token_data.get("expires_in"))
        return Credential.token(token)

    def refresh(self, host: str) -> None:
        """Discard the cached token for *host* so the next call fetches a new one."""
        self._tokens.clear(host)

    def _config_for(self, host: str) -> Optional[OAuth2ClientConfig]:
        if self._configs is None:
            self._configs = load_client_credentials()
        return self._configs.get(host)

    async def _fetch_token(self, host: str, config: OAuth2ClientConfig) -> dict[str, Any]:
        """POST to the token endpoint and return the JSON response.

        Sends ``grant_type=client_credentials`` along with the resolved
        ``client_id``, ``client_secret``, and optional ``scope``.

        Raises:
            TokenRequestError: If the HTTP request fails or ``access_token``
                is absent from the response.
        """
        data: dict[str, str] = {
            "grant_type": "client_credentials",
            "client_id": resolve_credential(config.client_id_source),
            "client_secret": resolve_credential(config.client_secret_source),
        }
        if config.scopes:
            data["scope"] = " ".join(config.scopes)

        get_output().debug(f"Requesting client-credentials token for {host}")
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.post(
                    config.token_url,
                    data=data,
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                token_data: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as exc:
            raise TokenRequestError(
                f"Token request for {host} failed with status {exc.response.status_code}",
                host=host,
            ) from exc
        except httpx.HTTPError as exc:
            raise TokenRequestError(f"Token request for {host} failed: {exc}", host=host) from exc
        except ValueError as exc:
            raise TokenRequestError(
                f"Token response for {host} is not valid JSON", host=host
            ) from exc

        if not isinstance(token_data, dict) or "access_token" not in token_data:
            raise TokenRequestError(
                f"Token response for {host} missing 'access_token' field", host=host
            )
        return token_data
