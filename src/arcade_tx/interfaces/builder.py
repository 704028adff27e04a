"""AnchorSource protocol - supplies a recent anchor for transaction stamping."""

from __future__ import annotations

from typing import Protocol


class AnchorSource(Protocol):
    """Fetches a fresh recent blockhash. Never cached across builds."""

    async def latest_anchor(self) -> str:
        """Return a base58 blockhash fetched at call time."""
        ...
