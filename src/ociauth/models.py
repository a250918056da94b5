"""Canonical Pydantic models shared across all ociauth modules.

**Credential models** -- what the resolver hands to the HTTP client:
    :class:`Credential` and the :data:`EMPTY_CREDENTIAL` sentinel.

**Storage models** -- serialised as JSON on disk:
    :class:`CredentialEntry` (one per host in the credential store).

**Configuration models** -- loaded from the user's config directory or
built in code:
    :class:`OAuth2ClientConfig`, :class:`BasicAuthEntry` and
    :class:`TransportConfig`.

Secrets inside :class:`Credential` are held as :class:`pydantic.SecretStr`
so that ``repr()`` and log lines never reveal them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator


# --- Credentials ---


class Credential(BaseModel):
    """Authentication material for a single registry host.

    A credential is one of:

    - empty (no field set) -- anonymous access, see :data:`EMPTY_CREDENTIAL`;
    - basic -- ``username`` and ``password``;
    - token -- ``access_token``, optionally with a ``refresh_token``;
    - refresh token only -- exchanged for an access token by the registry's
      token endpoint.

    Instances are immutable.

    Example::

        cred = Credential.basic("user", "pass")
        assert not cred.is_empty
        assert cred.password.get_secret_value() == "pass"
    """

    model_config = ConfigDict(frozen=True)

    username: str = ""
    password: Optional[SecretStr] = None
    access_token: Optional[SecretStr] = None
    refresh_token: Optional[SecretStr] = None

    @classmethod
    def basic(cls, username: str, password: str) -> Credential:
        """Build a username/password credential."""
        return cls(username=username, password=SecretStr(password))

    @classmethod
    def token(cls, access_token: str, refresh_token: str | None = None) -> Credential:
        """Build a bearer token credential, optionally carrying a refresh token."""
        return cls(
            access_token=SecretStr(access_token),
            refresh_token=SecretStr(refresh_token) if refresh_token else None,
        )

    @property
    def is_empty(self) -> bool:
        """``True`` when no authentication material is present."""
        return not (
            self.username
            or _secret(self.password)
            or _secret(self.access_token)
            or _secret(self.refresh_token)
        )

    @property
    def has_basic(self) -> bool:
        """``True`` when a username and password are both present."""
        return bool(self.username and _secret(self.password))


def _secret(value: Optional[SecretStr]) -> str:
    return value.get_secret_value() if value is not None else ""


EMPTY_CREDENTIAL = Credential()
"""The "no credential" sentinel. Anonymous access is a valid outcome."""


# --- Credential store entries ---


class CredentialEntry(BaseModel):
    """A credential persisted for one host in the on-disk store.

    Attributes:
        username: Basic-auth username.
        password: Basic-auth password.
        access_token: Bearer access token.
        refresh_token: Refresh token (``identitytoken`` in Docker terms).
        expires_at: Optional UTC expiry of the tokens. ``None`` means the
            entry never expires. Basic credentials ignore it.
    """

    username: Optional[str] = None
    password: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_material(self) -> CredentialEntry:
        if bool(self.username) != bool(self.password):
            raise ValueError("username and password must be set together")
        if not (self.username or self.access_token or self.refresh_token):
            raise ValueError(
                "entry needs a username/password pair, an access_token or a refresh_token"
            )
        return self

    def is_expired(self, now: datetime | None = None) -> bool:
        """Return ``True`` if the entry carries an expiry that has passed.

        A naive ``expires_at`` is treated as UTC.
        """
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return now >= expires

    def to_credential(self) -> Credential:
        """Convert to a :class:`Credential`, preferring basic auth when present."""
        if self.username and self.password:
            return Credential.basic(self.username, self.password)
        return Credential(
            access_token=SecretStr(self.access_token) if self.access_token else None,
            refresh_token=SecretStr(self.refresh_token) if self.refresh_token else None,
        )


# --- Configuration ---


class OAuth2ClientConfig(BaseModel):
    """OAuth2 client-credentials settings for one registry host.

    The ``*_source`` fields are credential source descriptors resolved by
    :func:`ociauth.config.resolve_credential` (``env:VAR``, ``file:/path``,
    ``prompt``, ``store:HOST``).

    Example::

        OAuth2ClientConfig(
            token_url="https://auth.example.com/oauth/token",
            client_id_source="env:REGISTRY_CLIENT_ID",
            client_secret_source="env:REGISTRY_CLIENT_SECRET",
            scopes=["registry:read"],
        )
    """

    token_url: str = Field(description="Token endpoint of the authorization server")
    client_id_source: str = Field(description="Credential source for the client id")
    client_secret_source: str = Field(description="Credential source for the client secret")
    scopes: list[str] = Field(default_factory=list)


class BasicAuthEntry(BaseModel):
    """A username/password the auto-login handler may use for a host."""

    username: str
    password_source: str = Field(
        description="Credential source for the password: env:VAR, file:/path, prompt"
    )


class TransportConfig(BaseModel):
    """Connection pool and timeout settings for the HTTP transport.

    Defaults follow common registry client practice: a 30 second connect
    timeout, up to 100 idle keep-alive connections expiring after 90 seconds,
    and HTTP/2 when the server offers it. Read/write timeouts are unbounded
    because blob transfers can be arbitrarily long.
    """

    connect_timeout: float = Field(default=30.0, gt=0)
    read_timeout: Optional[float] = Field(default=None, gt=0)
    idle_connection_timeout: float = Field(default=90.0, gt=0)
    max_idle_connections: int = Field(default=100, ge=0)
    http2: bool = True
