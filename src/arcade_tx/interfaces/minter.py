"""Minter protocol - external token creation service."""

from __future__ import annotations

from typing import Protocol

from arcade_tx.models.schemas import MintResponse
from arcade_tx.models.transactions import SignedArtifact


class Minter(Protocol):
    """Builds token creation transactions and co-signs launches."""

    async def mint(self, payload: dict) -> MintResponse:
        """Request an unsigned creation + initial-buy transaction."""
        ...

    async def submit_signed(self, mint_address: str, transaction: str) -> SignedArtifact:
        """Hand a caller-signed launch transaction back for co-sign/broadcast."""
        ...
