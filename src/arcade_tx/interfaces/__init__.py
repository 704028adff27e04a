"""Protocol interfaces for all arcade_tx components."""

from arcade_tx.interfaces.aggregator import OrderAggregator
from arcade_tx.interfaces.broadcaster import Broadcaster
from arcade_tx.interfaces.builder import AnchorSource
from arcade_tx.interfaces.credentials import CredentialVerifier
from arcade_tx.interfaces.journal import OperationJournal
from arcade_tx.interfaces.minter import Minter
from arcade_tx.interfaces.resolver import MintResolver
from arcade_tx.interfaces.signer import SigningGateway

__all__ = [
    "OrderAggregator",
    "Broadcaster",
    "AnchorSource",
    "CredentialVerifier",
    "OperationJournal",
    "Minter",
    "MintResolver",
    "SigningGateway",
]
