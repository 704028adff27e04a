"""Structural parsing of legacy and versioned Solana transactions."""

from __future__ import annotations

import logging

from solders.message import MessageV0
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from arcade_tx.errors import MalformedTransaction, UnexpectedUpstreamResponse
from arcade_tx.models.transactions import TransactionShape, UnsignedTransaction

log = logging.getLogger(__name__)

SIGNATURE_LENGTH = 64
PACKET_DATA_SIZE = 1232  # max serialized transaction size accepted by the ledger


def _deserialize(raw: bytes, field: str = "transaction") -> VersionedTransaction:
    """VersionedTransaction deserialization accepts both legacy and v0 layouts."""
    if not raw:
        raise MalformedTransaction("empty transaction payload", field)
    if len(raw) > PACKET_DATA_SIZE:
        raise MalformedTransaction(
            f"transaction is {len(raw)} bytes, larger than {PACKET_DATA_SIZE}", field,
        )
    try:
        return VersionedTransaction.from_bytes(raw)
    except Exception as exc:
        raise MalformedTransaction(
            f"not a legacy or versioned transaction: {exc}", field,
        ) from exc


def parse_transaction(
    raw: bytes, *, stamped_locally: bool = False, field: str = "transaction"
) -> UnsignedTransaction:
    """Deserialize for inspection only. Nothing in the bytes is modified."""
    vtx = _deserialize(raw, field)
    message = vtx.message
    shape = TransactionShape.VERSIONED if isinstance(message, MessageV0) else TransactionShape.LEGACY

    n_required = message.header.num_required_signatures
    keys = list(message.account_keys)
    if n_required == 0 or n_required > len(keys):
        raise MalformedTransaction(
            f"header requires {n_required} signatures for {len(keys)} accounts", field,
        )
    if len(vtx.signatures) != n_required:
        raise MalformedTransaction(
            f"{len(vtx.signatures)} signature slots for {n_required} required signers",
            field,
        )

    required = tuple(str(k) for k in keys[:n_required])
    return UnsignedTransaction(
        raw=bytes(raw),
        shape=shape,
        recent_anchor=str(message.recent_blockhash),
        fee_payer=required[0],
        required_signers=required,
        stamped_locally=stamped_locally,
    )


def attach_signature(unsigned: UnsignedTransaction, signer: str, signature: str) -> bytes:
    """Place a bare signature into `signer`'s slot and re-serialize."""
    vtx = _deserialize(unsigned.raw)
    try:
        sig = Signature.from_string(signature)
    except Exception as exc:
        raise UnexpectedUpstreamResponse(
            f"signer returned an unparseable signature: {exc}", stage="sign",
        ) from exc
    signatures = list(vtx.signatures)
    signatures[unsigned.signer_index(signer)] = sig
    return bytes(VersionedTransaction.populate(vtx.message, signatures))


def check_signed(unsigned: UnsignedTransaction, signed_raw: bytes, signer: str) -> None:
    """Ensure the signer signed the message we sent, in the caller's slot."""
    try:
        signed = _deserialize(signed_raw)
    except MalformedTransaction as exc:
        raise UnexpectedUpstreamResponse(
            f"signed transaction is malformed: {exc.message}", stage="sign",
        ) from exc
    original = _deserialize(unsigned.raw)
    if signed.message != original.message:
        log.error(
            "Signer returned a different message than requested (anchor %s -> %s)",
            str(original.message.recent_blockhash)[:16],
            str(signed.message.recent_blockhash)[:16],
        )
        raise UnexpectedUpstreamResponse(
            "signer returned a transaction that differs from the one submitted",
            stage="sign",
        )
    if signed.signatures[unsigned.signer_index(signer)] == Signature.default():
        raise UnexpectedUpstreamResponse(
            "signer returned a transaction without the caller's signature",
            stage="sign",
        )


def transaction_id(signed_raw: bytes) -> str:
    """The ledger id of a signed transaction is its fee payer's signature."""
    return str(_deserialize(signed_raw).signatures[0])


def signed_by(tx: UnsignedTransaction, signer: str) -> bool:
    """True if `signer`'s slot in the serialized transaction holds a signature."""
    if not tx.requires(signer):
        return False
    vtx = _deserialize(tx.raw)
    return vtx.signatures[tx.signer_index(signer)] != Signature.default()
