"""Fixed-credential providers.

:class:`StaticProvider` hands the same credential to every host, which is
what a ``--username/--password`` style option needs. :class:`EmptyProvider`
always answers "no credential" and is useful as an explicit anonymous
placeholder in a chain.
"""

from __future__ import annotations

from ociauth.auth.base import CredentialProvider
from ociauth.models import EMPTY_CREDENTIAL, Credential


class StaticProvider(CredentialProvider):
    """Return one pre-built credential for any host.

    Args:
        credential: The credential to hand out.
    """

    def __init__(self, credential: Credential) -> None:
        self._credential = credential

    @property
    def name(self) -> str:
        return "static"

    async def credential(self, host: str) -> Credential:
        return self._credential


class EmptyProvider(CredentialProvider):
    """Always report that no credential is available."""

    @property
    def name(self) -> str:
        return "empty"

    async def credential(self, host: str) -> Credential:
        return EMPTY_CREDENTIAL
