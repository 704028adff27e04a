"""Ledger settlement - turns a signed artifact into a confirmed transaction."""

from __future__ import annotations

import logging

from arcade_tx.errors import OnChainError
from arcade_tx.interfaces.broadcaster import Broadcaster
from arcade_tx.ledger.transactions import attach_signature, check_signed
from arcade_tx.ledger.transactions import transaction_id as local_transaction_id
from arcade_tx.models.records import ConfirmationResult
from arcade_tx.models.transactions import (
    RawSignature,
    SignedArtifact,
    SignedTransaction,
    TransactionId,
    UnsignedTransaction,
)
from arcade_tx.storage.oplog import OperationLog

log = logging.getLogger(__name__)


class LedgerSettler:
    """Drives sign-then-broadcast flows to a terminal ledger result.

    Checkpoints are written after signing and after submission so a crash
    in between is visible in the journal instead of silently retried.
    """

    def __init__(self, broadcaster: Broadcaster) -> None:
        self._broadcaster = broadcaster

    def assemble(
        self, unsigned: UnsignedTransaction, artifact: SignedArtifact, signer: str
    ) -> bytes | None:
        """Signed bytes ready to submit, or None if the upstream already broadcast."""
        if isinstance(artifact, SignedTransaction):
            check_signed(unsigned, artifact.raw, signer)
            return artifact.raw
        elif isinstance(artifact, RawSignature):
            log.warning("Re-assembling transaction from a bare signature for %s", signer[:16])
            return attach_signature(unsigned, signer, artifact.signature)
        elif isinstance(artifact, TransactionId):
            return None
        raise TypeError(f"unknown signed artifact: {artifact!r}")

    async def settle(
        self,
        unsigned: UnsignedTransaction,
        artifact: SignedArtifact,
        signer: str,
        oplog: OperationLog,
    ) -> ConfirmationResult:
        signed = self.assemble(unsigned, artifact, signer)

        if signed is None:
            assert isinstance(artifact, TransactionId)
            log.warning(
                "Upstream broadcast %s itself; confirming only", artifact.value[:16],
            )
            await oplog.mark("signed", transactionId=artifact.value, broadcastBy="upstream")
            txid = artifact.value
        else:
            await oplog.mark("signed", transactionId=local_transaction_id(signed))
            txid = await self._broadcaster.submit(signed)
            await oplog.mark("submitted", transactionId=txid)

        result = await self._broadcaster.confirm(txid)
        if not result.confirmed:
            await oplog.mark("failed", transactionId=txid, error=result.error)
            raise OnChainError(
                f"Transaction confirmation failed: {result.error}",
                stage="confirm",
                transaction_id=txid,
            )
        await oplog.mark("confirmed", transactionId=txid, slot=result.slot)
        return result
