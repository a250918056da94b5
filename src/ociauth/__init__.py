"""ociauth -- credential resolution for OCI/container registry clients.

This package decides *which* credential an HTTP client should present to a
registry host. Credentials come from an ordered chain of providers (static
values, an on-disk store, OAuth2 client credentials, GCP metadata), the
provider that worked for a host is remembered, and an optional auto-login
step can materialise credentials before the chain is consulted.

Typical usage::

    from ociauth.client import ClientOptions, build_client

    options = ClientOptions().with_store(store).with_oauth_credentials()
    async with build_client(options) as client:
        response = await client.get("https://ghcr.io/v2/")

Modules:
    models: Pydantic models (credentials, store entries, configuration).
    config: XDG-aware configuration files and credential sources.
    exceptions: Exception hierarchy.
    output: stderr diagnostics with Rich support.
"""

__version__ = "0.1.0"
