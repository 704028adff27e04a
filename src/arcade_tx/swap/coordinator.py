"""Order coordinator - the quote -> adopt -> sign -> execute swap flow."""

from __future__ import annotations

import logging
from decimal import Decimal

from arcade_tx.errors import (
    RETRY_NEVER,
    ExecutionFailed,
    UnexpectedUpstreamResponse,
    ValidationError,
)
from arcade_tx.interfaces.aggregator import OrderAggregator
from arcade_tx.interfaces.resolver import MintResolver
from arcade_tx.interfaces.signer import SigningGateway
from arcade_tx.ledger import codec
from arcade_tx.ledger.amounts import (
    SOL_DECIMALS,
    SOL_MINT,
    require_positive,
    require_raw_amount,
)
from arcade_tx.ledger.builder import UnsignedTransactionBuilder, parse_pubkey
from arcade_tx.ledger.transactions import attach_signature, check_signed
from arcade_tx.ledger.transactions import transaction_id as local_transaction_id
from arcade_tx.models.records import SettlementResult
from arcade_tx.models.transactions import (
    EncodedPayload,
    Encoding,
    Identity,
    OrderQuote,
    RawSignature,
    SignedArtifact,
    SignedTransaction,
    TransactionId,
)
from arcade_tx.storage.oplog import JOURNAL_WARNING, OperationLog

log = logging.getLogger(__name__)


class OrderCoordinator:
    """Drives buy and sell through one shared swap state machine.

    The aggregator is the broadcaster of record: the signed transaction goes
    to its execute endpoint together with the request id from the same quote,
    never to the raw ledger RPC. A quote is fetched fresh for every attempt.
    """

    def __init__(
        self,
        aggregator: OrderAggregator,
        builder: UnsignedTransactionBuilder,
        signer: SigningGateway,
        resolver: MintResolver,
        operation: str = "signTransaction",
    ) -> None:
        self._aggregator = aggregator
        self._builder = builder
        self._signer = signer
        self._resolver = resolver
        self._operation = operation

    # ── Entry points ───────────────────────────────────────

    async def buy(
        self,
        amount: Decimal | float | int | str,
        output_mint: str,
        caller: Identity,
        credential: str,
        oplog: OperationLog,
    ) -> SettlementResult:
        """Spend `amount` SOL on `output_mint`."""
        raw_amount = require_raw_amount(amount, SOL_DECIMALS)
        parse_pubkey(output_mint, "outputMint")
        return await self._swap(SOL_MINT, output_mint, raw_amount, caller, credential, oplog)

    async def sell(
        self,
        amount: Decimal | float | int | str,
        input_mint: str,
        caller: Identity,
        credential: str,
        oplog: OperationLog,
    ) -> SettlementResult:
        """Sell `amount` of `input_mint` for SOL.

        Balance checks belong to the caller side; the amount is proportioned
        by the mint's own decimals whatever it is.
        """
        require_positive(amount)
        parse_pubkey(input_mint, "inputMint")
        mint = await self._resolver.resolve(input_mint)
        raw_amount = require_raw_amount(amount, mint.decimals)
        log.debug(
            "Sell %s of %s -> %d raw (decimals=%d)",
            amount, input_mint[:16], raw_amount, mint.decimals,
        )
        return await self._swap(input_mint, SOL_MINT, raw_amount, caller, credential, oplog)

    # ── State machine ──────────────────────────────────────

    async def _swap(
        self,
        input_mint: str,
        output_mint: str,
        raw_amount: int,
        caller: Identity,
        credential: str,
        oplog: OperationLog,
    ) -> SettlementResult:
        # Route feasibility (including same-mint pairs) is the aggregator's call.
        await oplog.mark(
            "started", inputMint=input_mint, outputMint=output_mint, rawAmount=raw_amount,
        )

        # 1-2. Quote, then adopt the aggregator's transaction as-is
        quote = await self.quote(input_mint, output_mint, raw_amount, caller.wallet)

        # 3. Sign
        payload = codec.encode(quote.transaction.raw, Encoding.HEX)
        artifact = await self._signer.sign(self._operation, payload, credential)
        signed = self._assemble(quote, artifact, caller.wallet)
        expected_id = local_transaction_id(signed)
        await oplog.mark("signed", transactionId=expected_id, requestId=quote.request_id)

        # 4. Execute through the aggregator
        signed_b64 = codec.encode(signed, Encoding.BASE64).text
        result = await self._aggregator.execute(signed_b64, quote.request_id)

        # 5. Settle
        if not result.succeeded:
            reason = result.error or (
                f"status {result.status}" if result.status else "no signature returned"
            )
            if result.code is not None:
                reason = f"{reason} (code {result.code})"
            txid = result.signature or expected_id
            await oplog.mark("failed", transactionId=txid, error=reason)
            raise ExecutionFailed(
                f"Execute failed: {reason}", stage="execute", transaction_id=txid,
            )

        txid = result.signature or expected_id
        if result.signature and result.signature != expected_id:
            log.warning(
                "Aggregator reported %s for locally signed %s",
                result.signature[:16], expected_id[:16],
            )
        await oplog.mark("executed", transactionId=txid, slot=result.slot)
        log.info(
            "Swap %s -> %s executed: %s", input_mint[:8], output_mint[:8], txid[:16],
        )
        return SettlementResult(
            success=True,
            operation_id=oplog.operation_id,
            kind=oplog.kind,
            transaction_id=txid,
            input_mint=input_mint,
            output_mint=output_mint,
            raw_amount=raw_amount,
            slot=result.slot,
            warning=None if oplog.healthy else JOURNAL_WARNING,
        )

    async def quote(
        self, input_mint: str, output_mint: str, raw_amount: int, taker: str
    ) -> OrderQuote:
        """Fetch an order and adopt its transaction without touching its anchor."""
        order = await self._aggregator.get_order(input_mint, output_mint, raw_amount, taker)
        payload = EncodedPayload(order.transaction or "", Encoding.BASE64)
        try:
            unsigned = self._builder.adopt_encoded(payload)
        except ValidationError as exc:
            raise UnexpectedUpstreamResponse(
                f"order aggregator returned an unusable transaction: {exc.message}",
                stage="quote",
            ) from exc
        if not unsigned.requires(taker):
            raise UnexpectedUpstreamResponse(
                "order transaction does not require the taker's signature", stage="quote",
            )
        return OrderQuote(
            input_mint=input_mint,
            output_mint=output_mint,
            raw_amount=raw_amount,
            taker=taker,
            request_id=order.request_id,
            transaction=unsigned,
            out_amount=order.out_amount,
        )

    def _assemble(self, quote: OrderQuote, artifact: SignedArtifact, taker: str) -> bytes:
        unsigned = quote.transaction
        if isinstance(artifact, SignedTransaction):
            check_signed(unsigned, artifact.raw, taker)
            return artifact.raw
        elif isinstance(artifact, RawSignature):
            log.warning("Re-assembling swap %s from a bare signature", quote.request_id[:16])
            return attach_signature(unsigned, taker, artifact.signature)
        elif isinstance(artifact, TransactionId):
            # Someone other than the aggregator broadcast the swap.
            log.error(
                "Signer broadcast swap %s itself as %s",
                quote.request_id[:16], artifact.value[:16],
            )
            raise UnexpectedUpstreamResponse(
                "signing service broadcast the swap instead of returning it",
                stage="sign",
                retry=RETRY_NEVER,
                transaction_id=artifact.value,
            )
        raise TypeError(f"unknown signed artifact: {artifact!r}")

