"""Request-scoped transaction types that flow through the pipeline.

Nothing here is persisted or shared across requests: an anchor or a quote's
request id is single-use.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class TransactionShape(str, Enum):
    LEGACY = "legacy"
    VERSIONED = "versioned"


class Encoding(str, Enum):
    HEX = "hex"
    BASE64 = "base64"


@dataclass(frozen=True)
class Identity:
    """A caller, identified solely by the wallet in a verified credential."""

    wallet: str


@dataclass(frozen=True)
class MintInfo:
    """Decimal precision and raw supply of a token mint."""

    mint: str
    decimals: int
    supply: int  # raw units


@dataclass(frozen=True)
class UnsignedTransaction:
    """Serialized transaction plus the fields the pipeline inspects.

    `stamped_locally` is True only when this process fetched the anchor;
    adopted transactions keep whatever anchor their producer bound them to.
    """

    raw: bytes
    shape: TransactionShape
    recent_anchor: str  # base58 blockhash
    fee_payer: str
    required_signers: tuple[str, ...]
    stamped_locally: bool = False

    def requires(self, wallet: str) -> bool:
        return wallet in self.required_signers

    def signer_index(self, wallet: str) -> int:
        return self.required_signers.index(wallet)


@dataclass(frozen=True)
class EncodedPayload:
    """Transport-safe text form of a transaction."""

    text: str
    encoding: Encoding

    def preview(self, length: int = 16) -> str:
        return f"{self.text[:length]}..." if len(self.text) > length else self.text


@dataclass(frozen=True)
class SigningRequest:
    """One call to the custodial signer. Never persisted, never logged whole."""

    operation: str
    payload: EncodedPayload
    credential: str = field(repr=False)

    def __repr__(self) -> str:
        return (
            f"SigningRequest(operation={self.operation!r}, "
            f"payload={self.payload.preview()!r}, credential=***)"
        )


# ── Signed artifacts (tagged union) ───────────────────────────────


@dataclass(frozen=True)
class SignedTransaction:
    """A fully signed, re-serialized transaction. The authoritative shape."""

    raw: bytes


@dataclass(frozen=True)
class RawSignature:
    """A bare 64-byte signature (base58) for the caller's signer slot."""

    signature: str


@dataclass(frozen=True)
class TransactionId:
    """The upstream already broadcast the transaction and returned its id."""

    value: str


SignedArtifact = Union[SignedTransaction, RawSignature, TransactionId]


@dataclass(frozen=True)
class OrderQuote:
    """An aggregator order. Expires quickly, never reused across retries."""

    input_mint: str
    output_mint: str
    raw_amount: int
    taker: str
    request_id: str
    transaction: UnsignedTransaction
    out_amount: int | None = None
