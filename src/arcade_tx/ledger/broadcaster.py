"""RPC broadcaster - submits signed transactions and polls for confirmation."""

from __future__ import annotations

import asyncio
import logging
import time

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from arcade_tx.errors import (
    RETRY_UNKNOWN,
    ConfirmationTimeout,
    SubmissionRejected,
    UnexpectedUpstreamResponse,
    UpstreamUnavailable,
)
from arcade_tx.models.records import ConfirmationResult
from arcade_tx.ledger.transactions import transaction_id as local_transaction_id

log = logging.getLogger(__name__)

_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


def _rank(status: object, confirmations: int | None) -> int:
    if status == TransactionConfirmationStatus.Finalized:
        return 2
    if status == TransactionConfirmationStatus.Confirmed:
        return 1
    if status == TransactionConfirmationStatus.Processed:
        return 0
    # Older nodes omit confirmationStatus; null confirmations means rooted.
    return 2 if confirmations is None else 0


class RpcBroadcaster:
    """Submits raw transactions with preflight skipped, then confirms them.

    Skipping simulation makes confirmation mandatory: the node is trusted to
    reject bad transactions, and the only way to learn the outcome is to poll.
    Cancelling confirm() abandons the wait, never the submitted transaction.
    """

    def __init__(
        self,
        client: AsyncClient,
        commitment: str = "confirmed",
        confirm_timeout: float = 60.0,
        confirm_interval: float = 2.0,
    ) -> None:
        self._client = client
        self._commitment = commitment
        self._target_rank = _COMMITMENT_RANK.get(commitment, 1)
        self._timeout = confirm_timeout
        self._interval = confirm_interval

    async def submit(self, signed_transaction: bytes) -> str:
        expected_id = local_transaction_id(signed_transaction)
        opts = TxOpts(
            skip_preflight=True,
            skip_confirmation=True,
            preflight_commitment=Commitment(self._commitment),
        )
        try:
            resp = await self._client.send_raw_transaction(signed_transaction, opts=opts)
        except RPCException as exc:
            log.warning("sendTransaction rejected (tx=%s): %s", expected_id[:16], exc)
            raise SubmissionRejected(
                f"ledger rejected the transaction: {exc}", stage="submit",
            ) from exc
        except (SolanaRpcException, httpx.HTTPError) as exc:
            # The bytes may have reached the node; only polling can tell.
            log.error("sendTransaction failed (tx=%s): %s", expected_id[:16], exc)
            raise UpstreamUnavailable(
                f"ledger RPC unavailable during submission: {exc}",
                stage="submit",
                retry=RETRY_UNKNOWN,
                transaction_id=expected_id,
            ) from exc

        txid = str(resp.value)
        log.info("Submitted transaction %s", txid[:16])
        return txid

    async def confirm(self, transaction_id: str) -> ConfirmationResult:
        try:
            signature = Signature.from_string(transaction_id)
        except ValueError as exc:
            log.error("Cannot confirm %r: not a ledger signature", transaction_id[:16])
            raise UnexpectedUpstreamResponse(
                "transaction id is not a ledger signature; its status is unknown",
                stage="confirm",
                retry=RETRY_UNKNOWN,
                transaction_id=transaction_id,
            ) from exc
        deadline = time.monotonic() + self._timeout
        last_error: str | None = None

        while True:
            try:
                resp = await self._client.get_signature_statuses(
                    [signature], search_transaction_history=True,
                )
                status = resp.value[0] if resp.value else None
            except (RPCException, SolanaRpcException, httpx.HTTPError) as exc:
                last_error = str(exc)
                log.warning("getSignatureStatuses(%s) failed: %s", transaction_id[:16], exc)
                status = None

            if status is not None and _rank(
                status.confirmation_status, status.confirmations
            ) >= self._target_rank:
                if status.err is not None:
                    log.error("Transaction %s failed on-chain: %s", transaction_id[:16], status.err)
                    return ConfirmationResult(
                        transaction_id=transaction_id,
                        confirmed=False,
                        error=str(status.err),
                        slot=status.slot,
                    )
                log.info("Transaction %s confirmed at slot %s", transaction_id[:16], status.slot)
                return ConfirmationResult(
                    transaction_id=transaction_id, confirmed=True, slot=status.slot,
                )

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                detail = f" (last RPC error: {last_error})" if last_error else ""
                log.warning(
                    "Transaction %s not confirmed within %.1fs%s",
                    transaction_id[:16], self._timeout, detail,
                )
                raise ConfirmationTimeout(
                    f"transaction not confirmed within {self._timeout:g}s; "
                    "it may still land, check again later",
                    stage="confirm",
                    transaction_id=transaction_id,
                )
            await asyncio.sleep(min(self._interval, remaining))
