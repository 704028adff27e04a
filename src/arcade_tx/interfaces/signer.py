"""SigningGateway protocol - delegation boundary to the custodial signer."""

from __future__ import annotations

from typing import Protocol

from arcade_tx.models.transactions import EncodedPayload, SignedArtifact


class SigningGateway(Protocol):
    """Forwards a payload and the caller's credential to an external signer."""

    async def sign(
        self, operation: str, payload: EncodedPayload, credential: str
    ) -> SignedArtifact:
        """Return one of SignedTransaction, RawSignature or TransactionId."""
        ...
