"""Data models for the arcade_tx pipeline."""

from arcade_tx.models.config import (
    AggregatorConfig,
    LaunchFinalizer,
    MinterConfig,
    PipelineConfig,
    SignerConfig,
    SolanaConfig,
)
from arcade_tx.models.launch import TokenMetadata
from arcade_tx.models.records import (
    Checkpoint,
    ConfirmationResult,
    LaunchRecord,
    LaunchResult,
    SettlementResult,
)
from arcade_tx.models.transactions import (
    EncodedPayload,
    Encoding,
    Identity,
    MintInfo,
    OrderQuote,
    RawSignature,
    SignedArtifact,
    SignedTransaction,
    SigningRequest,
    TransactionId,
    TransactionShape,
    UnsignedTransaction,
)

__all__ = [
    "AggregatorConfig", "LaunchFinalizer", "MinterConfig", "PipelineConfig",
    "SignerConfig", "SolanaConfig",
    "TokenMetadata",
    "Checkpoint", "ConfirmationResult", "LaunchRecord", "LaunchResult",
    "SettlementResult",
    "EncodedPayload", "Encoding", "Identity", "MintInfo", "OrderQuote",
    "RawSignature", "SignedArtifact", "SignedTransaction", "SigningRequest",
    "TransactionId", "TransactionShape", "UnsignedTransaction",
]
