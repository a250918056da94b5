"""httpx auth flow answering registry authentication challenges.

:class:`RegistryAuth` plugs a :class:`~ociauth.auth.base.Resolver` into
:class:`httpx.AsyncClient` as its per-request credential callback. For each
request it:

1. Pre-authorizes when the host's scheme is already known: a cached bearer
   token for the request's scope, or a basic header.
2. Sends the request. On ``401`` with a ``WWW-Authenticate`` challenge it
   resolves a credential for the host and answers the challenge:

   - ``Basic`` -- sends the username/password.
   - ``Bearer`` -- uses the credential's access token as-is when present;
     otherwise obtains a registry token from the challenge's ``realm``
     (``GET`` with basic auth, or ``POST grant_type=refresh_token`` when a
     refresh token is available, or anonymously) and stores it in the token
     cache keyed by host and scope.

3. Retries the request once with the new ``Authorization`` header.

Errors raised by the resolver (login, provider, cancellation) propagate out
of the request unchanged.
"""

from __future__ import annotations

import asyncio
import base64
import re
import threading
from typing import Any, AsyncGenerator, Generator, Optional

import httpx

from ociauth.auth.base import Resolver
from ociauth.cache import MemoryTokenCache, TokenCache, token_key
from ociauth.exceptions import RegistryAuthError
from ociauth.models import Credential
from ociauth.output import get_output

# Sent as ``client_id`` on refresh-token exchanges.
TOKEN_CLIENT_ID = "ociauth"

_PARAM_RE = re.compile(r'([A-Za-z0-9_-]+)\s*=\s*(?:"((?:[^"\\]|\\.)*)"|([^,\s]*))')
_REPOSITORY_PATH_RE = re.compile(r"^/v2/(?P<name>.+?)/(?:manifests|blobs|tags|referrers)(?:/|$)")


class StaticResolver:
    """A :class:`~ociauth.auth.base.Resolver` that always returns one credential."""

    def __init__(self, credential: Credential) -> None:
        self._credential = credential

    async def resolve(self, host: str, timeout: Optional[float] = None) -> Credential:
        return self._credential


def parse_www_authenticate(header: str) -> Optional[tuple[str, dict[str, str]]]:
    """Parse a ``WWW-Authenticate`` header into ``(scheme, params)``.

    The scheme is lower-cased. Quoted values may contain commas, as in
    ``scope="repository:a/b:pull,push"``.

    Returns:
        ``None`` when the header is empty.
    """
    header = header.strip()
    if not header:
        return None
    scheme, _, rest = header.partition(" ")
    params: dict[str, str] = {}
    for match in _PARAM_RE.finditer(rest):
        key, quoted, bare = match.groups()
        value = quoted if quoted is not None else bare
        params[key.lower()] = value.replace('\\"', '"')
    return scheme.lower(), params


def scope_for_request(request: httpx.Request) -> str:
    """Derive the token scope a request needs from its ``/v2/`` path.

    ``GET``/``HEAD`` need ``pull``; every other method needs ``pull,push``.
    Requests outside a repository (e.g. the ``/v2/`` API root) need no
    scope and get ``""``.
    """
    match = _REPOSITORY_PATH_RE.match(request.url.path)
    if match is None:
        return ""
    actions = "pull" if request.method in ("GET", "HEAD") else "pull,push"
    return f"repository:{match.group('name')}:{actions}"


def basic_authorization(cred: Credential) -> str:
    """Return the ``Authorization`` header value for a basic credential.

    Raises:
        RegistryAuthError: If *cred* lacks a username or password.
    """
    if not cred.has_basic or cred.password is None:
        raise RegistryAuthError("Basic authorization needs a username and password")
    raw = f"{cred.username}:{cred.password.get_secret_value()}"
    return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")


class RegistryAuth(httpx.Auth):
    """Answer registry auth challenges using credentials from a resolver.

    Args:
        resolver: Source of credentials, normally a
            :class:`~ociauth.auth.resolver.CredentialResolver`.
        token_cache: Where registry tokens are kept. Defaults to a
            :class:`~ociauth.cache.MemoryTokenCache`. Cache reads and
            writes run in a worker thread so disk-backed caches do not
            block the event loop.
        resolve_timeout: Optional deadline in seconds for each resolution.
    """

    def __init__(
        self,
        resolver: Resolver,
        token_cache: Optional[TokenCache] = None,
        resolve_timeout: Optional[float] = None,
    ) -> None:
        self._resolver = resolver
        self._token_cache: TokenCache = token_cache if token_cache is not None else MemoryTokenCache()
        self._resolve_timeout = resolve_timeout
        self._schemes: dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def resolver(self) -> Resolver:
        return self._resolver

    @property
    def token_cache(self) -> TokenCache:
        return self._token_cache

    def sync_auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        raise RuntimeError("RegistryAuth requires httpx.AsyncClient")

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        host = request.url.netloc.decode("ascii")
        await self._pre_authorize(request, host)

        response = yield request
        if response.status_code != 401:
            return

        challenge = parse_www_authenticate(response.headers.get("WWW-Authenticate", ""))
        if challenge is None:
            return
        scheme, params = challenge

        cred = await self._resolver.resolve(host, timeout=self._resolve_timeout)
        output = get_output()

        if scheme == "basic":
            if not cred.has_basic:
                output.debug(f"Basic challenge from {host} but no basic credential")
                return
            self._set_scheme(host, scheme)
            request.headers["Authorization"] = basic_authorization(cred)
            yield request
            return

        if scheme != "bearer":
            output.debug(f"Unsupported auth scheme {scheme!r} from {host}")
            return

        scope = params.get("scope", scope_for_request(request))
        if cred.access_token is not None:
            token = cred.access_token.get_secret_value()
        else:
            token_response = yield self._token_request(request, params, scope, cred)
            # httpx only reads the final response of an auth flow.
            await token_response.aread()
            token, expires_in = self._parse_token_response(host, token_response)
            await asyncio.to_thread(self._token_cache.set, token_key(host, scope), token, expires_in)

        self._set_scheme(host, scheme)
        request.headers["Authorization"] = f"Bearer {token}"
        yield request

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _set_scheme(self, host: str, scheme: str) -> None:
        with self._lock:
            self._schemes[host] = scheme

    async def _pre_authorize(self, request: httpx.Request, host: str) -> None:
        """Attach credentials up front when the host's scheme is known."""
        if "Authorization" in request.headers:
            return
        with self._lock:
            scheme = self._schemes.get(host)
        if scheme == "bearer":
            key = token_key(host, scope_for_request(request))
            token = await asyncio.to_thread(self._token_cache.get, key)
            if token:
                request.headers["Authorization"] = f"Bearer {token}"
        elif scheme == "basic":
            cred = await self._resolver.resolve(host, timeout=self._resolve_timeout)
            if cred.has_basic:
                request.headers["Authorization"] = basic_authorization(cred)

    def _token_request(
        self,
        request: httpx.Request,
        params: dict[str, str],
        scope: str,
        cred: Credential,
    ) -> httpx.Request:
        """Build the request that obtains a registry token from the realm."""
        realm = params.get("realm")
        if not realm:
            raise RegistryAuthError("Bearer challenge has no realm", host=request.url.host)

        headers: dict[str, str] = {"Accept": "application/json"}
        user_agent = request.headers.get("User-Agent")
        if user_agent:
            headers["User-Agent"] = user_agent

        query: dict[str, str] = {}
        if params.get("service"):
            query["service"] = params["service"]
        if scope:
            query["scope"] = scope

        if cred.refresh_token is not None:
            form = {
                **query,
                "grant_type": "refresh_token",
                "refresh_token": cred.refresh_token.get_secret_value(),
                "client_id": TOKEN_CLIENT_ID,
            }
            return httpx.Request("POST", realm, data=form, headers=headers)

        if cred.has_basic:
            headers["Authorization"] = basic_authorization(cred)
        return httpx.Request("GET", realm, params=query, headers=headers)

    def _parse_token_response(
        self, host: str, response: httpx.Response
    ) -> tuple[str, Optional[float]]:
        if response.status_code != 200:
            raise RegistryAuthError(
                f"Token endpoint for {host} returned HTTP {response.status_code}", host=host
            )
        try:
            data: Any = response.json()
        except ValueError as exc:
            raise RegistryAuthError(f"Token response for {host} is not valid JSON", host=host) from exc

        if not isinstance(data, dict):
            raise RegistryAuthError(f"Token response for {host} has no token", host=host)
        token = data.get("token") or data.get("access_token")
        if not token:
            raise RegistryAuthError(f"Token response for {host} has no token", host=host)
        expires_in = data.get("expires_in")
        return token, float(expires_in) if expires_in is not None else None
