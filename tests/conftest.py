"""Shared test fixtures for ociauth.

Provides isolated config/data/cache directories, a temp credential store
and a quiet output manager. Plain helpers live in :mod:`helpers`.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from ociauth.auth.credential_store import CredentialStore
from ociauth.output import OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _quiet_output() -> None:
    """Install a quiet, colourless output manager for every test."""
    set_output(OutputManager(no_color=True, quiet=True, verbose=False))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path and forces XDG path resolution so that
    tests never touch real user config. Clears all OCIAUTH_* toggles.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("ociauth.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["OCIAUTH_INSECURE", "OCIAUTH_VERBOSE", "GCE_METADATA_HOST"]:
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def store(tmp_path: Path) -> CredentialStore:
    """A CredentialStore writing to a temp file."""
    return CredentialStore(tmp_path / "credentials.json")
