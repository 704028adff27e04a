"""Broadcaster protocol - submits signed transactions and confirms them."""

from __future__ import annotations

from typing import Protocol

from arcade_tx.models.records import ConfirmationResult


class Broadcaster(Protocol):
    """Submits raw signed transactions to the ledger RPC."""

    async def submit(self, signed_transaction: bytes) -> str:
        """Send with preflight skipped. Returns the transaction id."""
        ...

    async def confirm(self, transaction_id: str) -> ConfirmationResult:
        """Poll until landed or the bounded wait elapses (ConfirmationTimeout)."""
        ...
