"""Google Cloud metadata-server provider for gcr.io and Artifact Registry."""

from ociauth.providers.gcp.provider import GCPMetadataProvider, is_google_registry

__all__ = ["GCPMetadataProvider", "is_google_registry"]
