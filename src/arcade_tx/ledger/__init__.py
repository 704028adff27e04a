"""Solana ledger integration: codec, builder, mint resolver, broadcaster."""

from arcade_tx.ledger.broadcaster import RpcBroadcaster
from arcade_tx.ledger.builder import RpcAnchorSource, UnsignedTransactionBuilder
from arcade_tx.ledger.mint import RpcMintResolver
from arcade_tx.ledger.settlement import LedgerSettler

__all__ = [
    "RpcBroadcaster",
    "RpcAnchorSource",
    "UnsignedTransactionBuilder",
    "RpcMintResolver",
    "LedgerSettler",
]
