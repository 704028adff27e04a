"""Launch orchestrator - validate, mint, sign, finalize, record."""

from __future__ import annotations

import logging

from arcade_tx.errors import (
    UnexpectedUpstreamResponse,
    Unauthenticated,
    ValidationError,
)
from arcade_tx.interfaces.journal import OperationJournal
from arcade_tx.interfaces.minter import Minter
from arcade_tx.interfaces.signer import SigningGateway
from arcade_tx.launch.validation import initial_buy, validate_metadata
from arcade_tx.ledger import codec
from arcade_tx.ledger.builder import UnsignedTransactionBuilder, parse_pubkey
from arcade_tx.ledger.settlement import LedgerSettler
from arcade_tx.ledger.transactions import signed_by
from arcade_tx.models.config import LaunchFinalizer
from arcade_tx.models.launch import TokenMetadata
from arcade_tx.models.records import LaunchRecord, LaunchResult
from arcade_tx.models.transactions import (
    EncodedPayload,
    Encoding,
    Identity,
    SignedArtifact,
    TransactionId,
    UnsignedTransaction,
)
from arcade_tx.storage.oplog import OperationLog

log = logging.getLogger(__name__)

SAVE_FAILED_WARNING = "Token launched but failed to save to database - please contact support"
UPDATE_FAILED_WARNING = "Transaction broadcast but failed to update database - please contact support"


def mint_payload(meta: TokenMetadata, creator: Identity) -> dict:
    """Request body for the minter's POST /mint."""
    payload: dict = {
        "user": creator.wallet,
        "name": meta.name.strip(),
        "symbol": meta.symbol,
        "description": meta.description.strip(),
        "imageUrl": meta.image.strip(),
    }
    if amount := initial_buy(meta):
        # Decimal string in plain notation; a float would lose digits
        payload["amount"] = format(amount, "f")
    for key in ("website", "twitter", "telegram"):
        if value := getattr(meta, key):
            payload[key] = value
    return payload


class LaunchOrchestrator:
    """Token creation: the minter builds, the custodial signer signs.

    The signed launch is finalized either by submitting it to the ledger
    ourselves or by handing it back to the minter to co-sign and broadcast.
    The launch record is written pending before signing and flipped to
    launched after confirmation.
    """

    def __init__(
        self,
        minter: Minter,
        builder: UnsignedTransactionBuilder,
        signer: SigningGateway,
        settler: LedgerSettler,
        journal: OperationJournal,
        finalizer: LaunchFinalizer = LaunchFinalizer.LEDGER,
        operation: str = "signTransaction",
    ) -> None:
        self._minter = minter
        self._builder = builder
        self._signer = signer
        self._settler = settler
        self._journal = journal
        self._finalizer = finalizer
        self._operation = operation

    async def launch(
        self,
        meta: TokenMetadata,
        creator: Identity,
        credential: str,
        oplog: OperationLog,
    ) -> LaunchResult:
        errors = validate_metadata(meta)
        if errors:
            log.info("Launch rejected: %s", ", ".join(e.field for e in errors))
            raise ValidationError(errors)

        await oplog.mark("started", name=meta.name.strip(), symbol=meta.symbol)

        minted = await self._minter.mint(mint_payload(meta, creator))
        unsigned = self._adopt_launch(minted.tx, creator)
        await oplog.mark("minted", tokenAddress=minted.mint)

        saved = await self._save_pending(meta, minted.mint, creator)

        payload = codec.encode(unsigned.raw, Encoding.HEX)
        artifact = await self._signer.sign(self._operation, payload, credential)
        txid = await self._finalize(unsigned, artifact, creator, minted.mint, oplog)

        updated = saved and await self._mark_launched(minted.mint, txid)
        warning = None
        if not saved:
            warning = SAVE_FAILED_WARNING
        elif not updated or not oplog.healthy:
            warning = UPDATE_FAILED_WARNING

        log.info("Launched %s (%s) at %s", meta.symbol, txid[:16], minted.mint)
        return LaunchResult(
            token_address=minted.mint,
            tx=txid,
            operation_id=oplog.operation_id,
            token_name=meta.name.strip(),
            token_ticker=meta.symbol,
            warning=warning,
        )

    async def finalize_launch(
        self,
        mint_address: str,
        signed_tx_base64: str,
        creator: Identity,
        oplog: OperationLog,
    ) -> LaunchResult:
        """Hand an already caller-signed launch to the minter and confirm it."""
        parse_pubkey(mint_address, "mintAddress")
        tx = self._builder.adopt_encoded(
            EncodedPayload(signed_tx_base64, Encoding.BASE64), field="tx",
        )
        if not signed_by(tx, creator.wallet):
            raise ValidationError.single("tx", "Transaction is not signed by the caller's wallet")

        record = await self._get_launch(mint_address)
        if record is not None and record.creator != creator.wallet:
            raise Unauthenticated("Launch belongs to another wallet", stage="validate")

        await oplog.mark("started", tokenAddress=mint_address)
        artifact = await self._minter.submit_signed(mint_address, signed_tx_base64)
        result = await self._settler.settle(tx, artifact, creator.wallet, oplog)

        updated = await self._mark_launched(mint_address, result.transaction_id)
        return LaunchResult(
            token_address=mint_address,
            tx=result.transaction_id,
            operation_id=oplog.operation_id,
            token_name=record.token_name if record else "",
            token_ticker=record.token_ticker if record else "",
            warning=None if updated and oplog.healthy else UPDATE_FAILED_WARNING,
        )

    # ── Steps ──────────────────────────────────────────────

    def _adopt_launch(self, tx_base64: str, creator: Identity) -> UnsignedTransaction:
        try:
            unsigned = self._builder.adopt_encoded(EncodedPayload(tx_base64, Encoding.BASE64))
        except ValidationError as exc:
            raise UnexpectedUpstreamResponse(
                f"minter returned an unusable transaction: {exc.message}", stage="mint",
            ) from exc
        if not unsigned.requires(creator.wallet):
            raise UnexpectedUpstreamResponse(
                "minter transaction does not require the creator's signature", stage="mint",
            )
        return unsigned

    async def _finalize(
        self,
        unsigned: UnsignedTransaction,
        artifact: SignedArtifact,
        creator: Identity,
        mint_address: str,
        oplog: OperationLog,
    ) -> str:
        if self._finalizer is LaunchFinalizer.MINTER:
            signed = self._settler.assemble(unsigned, artifact, creator.wallet)
            if signed is not None:
                await oplog.mark("signed", tokenAddress=mint_address, finalizer="minter")
                signed_b64 = codec.encode(signed, Encoding.BASE64).text
                artifact = await self._minter.submit_signed(mint_address, signed_b64)
            elif isinstance(artifact, TransactionId):
                log.warning("Signer broadcast launch of %s itself", mint_address[:16])
        result = await self._settler.settle(unsigned, artifact, creator.wallet, oplog)
        return result.transaction_id

    # ── Journal (never fails the launch) ───────────────────

    async def _save_pending(self, meta: TokenMetadata, mint_address: str, creator: Identity) -> bool:
        record = LaunchRecord(
            token_address=mint_address,
            token_name=meta.name.strip(),
            token_ticker=meta.symbol,
            description=meta.description.strip(),
            image_url=meta.image.strip(),
            creator=creator.wallet,
            website=meta.website,
            twitter=meta.twitter,
            telegram=meta.telegram,
        )
        try:
            await self._journal.save_launch(record)
        except Exception as exc:
            log.error("Failed to save launch %s: %s", mint_address, exc, exc_info=True)
            return False
        return True

    async def _mark_launched(self, mint_address: str, txid: str | None) -> bool:
        try:
            updated = await self._journal.mark_launched(mint_address, txid)
        except Exception as exc:
            log.error("Failed to mark %s launched: %s", mint_address, exc, exc_info=True)
            return False
        if not updated:
            log.error("No launch record for %s to mark launched", mint_address)
        return updated

    async def _get_launch(self, mint_address: str) -> LaunchRecord | None:
        try:
            return await self._journal.get_launch(mint_address)
        except Exception as exc:
            log.error("Failed to read launch %s: %s", mint_address, exc, exc_info=True)
            return None
