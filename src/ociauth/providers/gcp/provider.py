"""GCE metadata-server provider.

Workloads on Google Compute Engine, GKE and Cloud Run can obtain an access
token for their service account from the metadata server. Google's
container registries (``gcr.io`` and Artifact Registry's
``*-docker.pkg.dev``) accept that token as the password of the fixed
username ``oauth2accesstoken``.

The metadata host defaults to ``metadata.google.internal`` and can be
overridden with ``GCE_METADATA_HOST``, the variable Google's own client
libraries honour.
"""

from __future__ import annotations

import os
from typing import Any, Iterable, Optional

import httpx

from ociauth.auth.base import CredentialProvider
from ociauth.exceptions import TokenRequestError
from ociauth.models import EMPTY_CREDENTIAL, Credential
from ociauth.output import get_output
from ociauth.providers.tokens import TokenMemo

GCP_USERNAME = "oauth2accesstoken"
_DEFAULT_METADATA_HOST = "metadata.google.internal"
_TOKEN_PATH = "/computeMetadata/v1/instance/service-accounts/default/token"
_SERVICE_ACCOUNT = "default"


def _hostname(host: str) -> str:
    return host.split("/", 1)[0].rsplit(":", 1)[0].lower()


def is_google_registry(host: str) -> bool:
    """Return whether *host* is a Container Registry or Artifact Registry endpoint."""
    name = _hostname(host)
    return name == "gcr.io" or name.endswith(".gcr.io") or name.endswith("-docker.pkg.dev")


class GCPMetadataProvider(CredentialProvider):
    """Hand out metadata-server access tokens to Google registries.

    Args:
        registries: Explicit hosts this provider answers for. When omitted,
            every Google registry host qualifies (see
            :func:`is_google_registry`).
        transport: Optional httpx transport for metadata requests.
        timeout: Timeout in seconds for each metadata request.
    """

    def __init__(
        self,
        registries: Optional[Iterable[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self._registries = frozenset(registries) if registries is not None else None
        self._transport = transport
        self._timeout = timeout
        self._tokens = TokenMemo()

    @property
    def name(self) -> str:
        return "gcp"

    def handles(self, host: str) -> bool:
        if self._registries is not None:
            return host in self._registries
        return is_google_registry(host)

    async def credential(self, host: str) -> Credential:
        if not self.handles(host):
            return EMPTY_CREDENTIAL

        # One service-account token serves every Google registry.
        token = self._tokens.get(_SERVICE_ACCOUNT)
        if token is None:
            token_data = await self._fetch_token()
            token = token_data["access_token"]
            self._tokens.put(_SERVICE_ACCOUNT, token, token_data.get("expires_in"))
        return Credential.basic(GCP_USERNAME, token)

    async def _fetch_token(self) -> dict[str, Any]:
        metadata_host = os.environ.get("GCE_METADATA_HOST") or _DEFAULT_METADATA_HOST
        url = f"http://{metadata_host}{_TOKEN_PATH}"
        get_output().debug(f"Requesting service-account token from {metadata_host}")
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.get(url, headers={"Metadata-Flavor": "Google"})
                response.raise_for_status()
                token_data: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as exc:
            raise TokenRequestError(
                f"Metadata server returned status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TokenRequestError(f"Metadata server unreachable: {exc}") from exc
        except ValueError as exc:
            raise TokenRequestError("Metadata server returned invalid JSON") from exc

        if not isinstance(token_data, dict) or "access_token" not in token_data:
            raise TokenRequestError("Metadata token response missing 'access_token' field")
        return token_data
