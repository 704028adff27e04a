"""MintResolver protocol - ledger lookups for token precision and supply."""

from __future__ import annotations

from typing import Protocol

from arcade_tx.models.transactions import MintInfo


class MintResolver(Protocol):
    """Resolves a token identifier to its mint metadata."""

    async def resolve(self, token_id: str) -> MintInfo:
        """Return decimals and raw supply. Raises NotFound for non-mints."""
        ...
