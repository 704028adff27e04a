"""OrderAggregator protocol - two-phase quote/execute swap API."""

from __future__ import annotations

from typing import Protocol

from arcade_tx.models.schemas import ExecuteResponse, OrderResponse


class OrderAggregator(Protocol):
    """Third-party liquidity aggregator that also broadcasts swaps."""

    async def get_order(
        self, input_mint: str, output_mint: str, raw_amount: int, taker: str
    ) -> OrderResponse:
        """Request a fresh order with an unsigned transaction."""
        ...

    async def execute(self, signed_transaction: str, request_id: str) -> ExecuteResponse:
        """Submit a base64 signed transaction for the order `request_id`."""
        ...
