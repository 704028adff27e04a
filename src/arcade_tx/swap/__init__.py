"""Swap flow: order aggregator client and the buy/sell coordinator."""

from arcade_tx.swap.aggregator import UltraAggregatorClient
from arcade_tx.swap.coordinator import OrderCoordinator

__all__ = ["UltraAggregatorClient", "OrderCoordinator"]
