"""Unsigned transaction builder - direct transfers and opaque adoption."""

from __future__ import annotations

import logging

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from arcade_tx.errors import (
    FieldError,
    MalformedTransaction,
    UpstreamUnavailable,
    ValidationError,
)
from arcade_tx.interfaces.builder import AnchorSource
from arcade_tx.models.transactions import EncodedPayload, UnsignedTransaction
from arcade_tx.ledger import codec
from arcade_tx.ledger.transactions import parse_transaction

log = logging.getLogger(__name__)


def parse_pubkey(value: str, field: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except Exception as exc:
        raise ValidationError([FieldError(field, "Invalid public key")]) from exc


class RpcAnchorSource:
    """Fetches the latest blockhash. One RPC round trip per call, no caching."""

    def __init__(self, client: AsyncClient, commitment: str = "confirmed") -> None:
        self._client = client
        self._commitment = Commitment(commitment)

    async def latest_anchor(self) -> str:
        try:
            resp = await self._client.get_latest_blockhash(self._commitment)
        except (RPCException, SolanaRpcException, httpx.HTTPError) as exc:
            log.warning("get_latest_blockhash failed: %s", exc)
            raise UpstreamUnavailable(
                f"could not fetch a recent blockhash: {exc}", stage="build",
            ) from exc
        return str(resp.value.blockhash)


class UnsignedTransactionBuilder:
    """Produces unsigned transactions in one of two modes.

    Direct transfer: a single system transfer from the caller to the treasury,
    stamped with a freshly fetched anchor and paid for by the caller.

    Opaque adoption: an upstream-built transaction is parsed for validation
    only; its anchor and signatures are left exactly as the producer set them.
    """

    def __init__(self, anchors: AnchorSource, treasury_address: str) -> None:
        self._anchors = anchors
        self._treasury = treasury_address

    @property
    def treasury_address(self) -> str:
        return self._treasury

    async def build_transfer(self, caller: str, lamports: int) -> UnsignedTransaction:
        if lamports <= 0:
            raise ValidationError([FieldError("amount", "Amount must be greater than zero")])
        from_pubkey = parse_pubkey(caller, "wallet")
        to_pubkey = parse_pubkey(self._treasury, "treasury")

        anchor = await self._anchors.latest_anchor()
        instruction = transfer(
            TransferParams(from_pubkey=from_pubkey, to_pubkey=to_pubkey, lamports=lamports)
        )
        message = Message.new_with_blockhash([instruction], from_pubkey, Hash.from_string(anchor))
        tx = Transaction.new_unsigned(message)

        log.info(
            "Built transfer of %d lamports from %s (anchor %s)",
            lamports, caller[:16], anchor[:16],
        )
        return parse_transaction(bytes(tx), stamped_locally=True)

    def adopt(self, raw: bytes, field: str = "transaction") -> UnsignedTransaction:
        return parse_transaction(raw, field=field)

    def adopt_encoded(self, payload: EncodedPayload, field: str = "transaction") -> UnsignedTransaction:
        try:
            raw = codec.decode(payload)
        except ValueError as exc:
            raise MalformedTransaction(str(exc), field) from exc
        return self.adopt(raw, field=field)
