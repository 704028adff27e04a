"""CredentialVerifier protocol - maps a bearer credential to a wallet."""

from __future__ import annotations

from typing import Protocol

from arcade_tx.models.transactions import Identity


class CredentialVerifier(Protocol):
    """Verifies credentials issued by the login collaborator."""

    def verify(self, credential: str | None) -> Identity:
        """Return the caller identity. Raises Unauthenticated."""
        ...
