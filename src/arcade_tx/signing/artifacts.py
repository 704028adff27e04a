"""Classification of signer / minter responses into the SignedArtifact union.

The authoritative custodial-signer contract is `{"signature": <hex of the
fully signed transaction>}`. Anything else is accepted only as an explicit
variant and logged, so the contract actually in force stays visible.
"""

from __future__ import annotations

import logging

from solders.signature import Signature
from solders.transaction import VersionedTransaction

from arcade_tx.errors import RETRY_NEVER, UnexpectedUpstreamResponse
from arcade_tx.ledger import codec
from arcade_tx.models.transactions import (
    RawSignature,
    SignedArtifact,
    SignedTransaction,
    TransactionId,
)

log = logging.getLogger(__name__)

SIGNATURE_BYTES = 64


def _is_transaction(raw: bytes) -> bool:
    try:
        VersionedTransaction.from_bytes(raw)
    except Exception:
        return False
    return True


def _as_signature(raw: bytes) -> str | None:
    if len(raw) != SIGNATURE_BYTES:
        return None
    return str(Signature.from_bytes(raw))


def classify_signature_field(
    value: str,
    source: str,
    *,
    bare_signature_is_id: bool = False,
) -> SignedArtifact:
    """Decide which artifact a `signature`-style field carries.

    `bare_signature_is_id` is set by call sites whose upstream broadcasts on
    its own (the minter), where a lone signature is the transaction id rather
    than a signature for us to attach.
    """
    text = value.strip()
    if not text:
        raise UnexpectedUpstreamResponse(f"{source} returned an empty signature", stage="sign")

    def bare(sig: str) -> SignedArtifact:
        if bare_signature_is_id:
            return TransactionId(sig)
        log.warning(
            "%s returned a bare signature instead of a signed transaction (%s...)",
            source, sig[:16],
        )
        return RawSignature(sig)

    # 1. hex (authoritative encoding)
    try:
        raw = codec.from_hex(text)
    except ValueError:
        raw = None
    if raw:
        sig = _as_signature(raw)
        if sig is not None:
            return bare(sig)
        if _is_transaction(raw):
            return SignedTransaction(raw)

    # 2. base58 signature
    try:
        return bare(str(Signature.from_string(text)))
    except Exception:
        pass

    # 3. base64 transaction
    try:
        raw = codec.from_base64(text)
    except ValueError:
        raw = None
    if raw and _is_transaction(raw):
        log.warning("%s returned a base64 transaction instead of hex", source)
        return SignedTransaction(raw)

    log.error("%s returned an unrecognised signature payload (%s...)", source, text[:16])
    raise UnexpectedUpstreamResponse(
        f"{source} returned a signature payload that is neither a transaction nor a signature",
        stage="sign",
    )


def classify_response(
    signature: str | None,
    transaction_id: str | None,
    source: str,
    *,
    bare_signature_is_id: bool = False,
) -> SignedArtifact:
    """Pick exactly one artifact from a response's candidate fields."""
    if signature:
        return classify_signature_field(
            signature, source, bare_signature_is_id=bare_signature_is_id,
        )
    if transaction_id:
        log.warning(
            "%s returned a transaction id (%s...) instead of a signed transaction; "
            "it broadcast on its own",
            source, transaction_id[:16],
        )
        try:
            Signature.from_string(transaction_id)
        except ValueError:
            # It may already be on-chain under an id we cannot look up.
            log.error(
                "%s returned an unrecognized transaction id %r; cannot confirm it",
                source, transaction_id[:16],
            )
            raise UnexpectedUpstreamResponse(
                f"{source} returned a transaction id that is not a ledger signature",
                stage="sign",
                retry=RETRY_NEVER,
            ) from None
        return TransactionId(transaction_id)
    raise UnexpectedUpstreamResponse(f"{source} response carried no signature", stage="sign")
