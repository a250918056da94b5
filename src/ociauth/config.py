"""Configuration management with XDG paths, atomic writes, and credential sources.

This module handles all persistent configuration for ociauth:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.ociauth/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Per-host login configuration** -- :func:`load_client_credentials`
  (OAuth2 client credentials) and :func:`load_basic_auths` (auto-login
  username/password pairs), each a JSON object keyed by registry host.
* **Environment toggles** -- :func:`env_flag` reads ``OCIAUTH_*`` booleans.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  from env vars, files, interactive prompts, or the credential store.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

from ociauth.exceptions import ConfigError
from ociauth.models import BasicAuthEntry, OAuth2ClientConfig

_APP_NAME = "ociauth"
_ENV_PREFIX = "OCIAUTH_"
CLIENT_CREDENTIALS_FILENAME = "clientcredentials.json"
BASIC_AUTHS_FILENAME = "basicauths.json"

_TRUTHY = {"1", "true", "yes", "on"}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/ociauth/`` (default ``~/.config/ociauth/``).
    On macOS/Windows: ``~/.ociauth/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory (registry token cache), creating it if necessary.

    On Linux/BSD: ``$XDG_CACHE_HOME/ociauth/`` (default ``~/.cache/ociauth/``).
    On macOS/Windows: ``~/.ociauth/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (credential store), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/ociauth/`` (default ``~/.local/share/ociauth/``).
    On macOS/Windows: ``~/.ociauth/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is given
    the permissions are applied before any content is written, so secrets
    are never world-readable, even momentarily.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Per-host configuration files ---


def _load_host_map(path: Path, model: type[BaseModel]) -> dict:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return TypeAdapter(dict[str, model]).validate_python(data)
    except (json.JSONDecodeError, ValidationError, OSError) as exc:
        raise ConfigError(f"Invalid configuration at {path}: {exc}") from exc


def load_client_credentials(path: Optional[Path] = None) -> dict[str, OAuth2ClientConfig]:
    """Load per-host OAuth2 client-credentials settings.

    The file is a JSON object mapping registry hosts to
    :class:`~ociauth.models.OAuth2ClientConfig` objects::

        {
          "registry.example.com": {
            "token_url": "https://auth.example.com/token",
            "client_id_source": "env:CLIENT_ID",
            "client_secret_source": "env:CLIENT_SECRET",
            "scopes": ["pull"]
          }
        }

    Args:
        path: Explicit file location. Defaults to
            ``<config_dir>/clientcredentials.json``.

    Returns:
        A host-keyed dict; empty when the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = path or get_config_dir() / CLIENT_CREDENTIALS_FILENAME
    return _load_host_map(path, OAuth2ClientConfig)


def load_basic_auths(path: Optional[Path] = None) -> dict[str, BasicAuthEntry]:
    """Load per-host username/password pairs used by auto-login.

    Args:
        path: Explicit file location. Defaults to
            ``<config_dir>/basicauths.json``.

    Returns:
        A host-keyed dict of :class:`~ociauth.models.BasicAuthEntry`;
        empty when the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = path or get_config_dir() / BASIC_AUTHS_FILENAME
    return _load_host_map(path, BasicAuthEntry)


def env_flag(name: str) -> bool:
    """Return whether ``OCIAUTH_<name>`` is set to a truthy value."""
    return os.environ.get(f"{_ENV_PREFIX}{name}", "").strip().lower() in _TRUTHY


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)
        - ``"store:HOST"`` -- reads the password or access token stored for HOST

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter credential: ")

    if source.startswith("store:"):
        host = source[6:]
        from ociauth.auth.credential_store import CredentialStore

        entry = CredentialStore().get(host)
        if entry is None or entry.is_expired():
            raise ConfigError(
                f"No valid credential in store for host '{host}' (source: {source})"
            )
        secret = entry.password or entry.access_token or entry.refresh_token
        assert secret is not None  # CredentialEntry validation guarantees this
        return secret

    raise ConfigError(f"Unknown credential source format: {source}")
