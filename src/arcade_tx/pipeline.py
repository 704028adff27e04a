"""Transaction pipeline - wires all components together behind the entry points."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import TypeVar

import httpx
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment

from arcade_tx.errors import RETRY_UNKNOWN, PipelineError, ValidationError
from arcade_tx.launch.minter import MinterClient
from arcade_tx.launch.orchestrator import LaunchOrchestrator
from arcade_tx.ledger import codec
from arcade_tx.ledger.amounts import SOL_DECIMALS, require_raw_amount
from arcade_tx.ledger.broadcaster import RpcBroadcaster
from arcade_tx.ledger.builder import RpcAnchorSource, UnsignedTransactionBuilder
from arcade_tx.ledger.mint import RpcMintResolver
from arcade_tx.ledger.settlement import LedgerSettler
from arcade_tx.models.config import PipelineConfig
from arcade_tx.models.launch import TokenMetadata
from arcade_tx.models.records import LaunchResult, SettlementResult
from arcade_tx.models.transactions import (
    EncodedPayload,
    Encoding,
    Identity,
    MintInfo,
    UnsignedTransaction,
)
from arcade_tx.signing.credentials import JwtCredentialVerifier
from arcade_tx.signing.gateway import HttpSigningGateway
from arcade_tx.storage.oplog import JOURNAL_WARNING, OperationLog
from arcade_tx.storage.sqlite import SQLiteJournal
from arcade_tx.swap.aggregator import UltraAggregatorClient
from arcade_tx.swap.coordinator import OrderCoordinator

log = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionPipeline:
    """Build -> encode -> sign -> broadcast/execute -> confirm, per request.

    Connection pools (httpx and the Solana RPC client) are shared across
    requests. Coordinators are built per call from the current components,
    so nothing request-scoped (anchors, quotes) outlives its request.
    """

    def __init__(self, cfg: PipelineConfig) -> None:
        self._cfg = cfg

        # Shared connection pools
        self.http = httpx.AsyncClient(timeout=cfg.http_timeout)
        self.rpc = AsyncClient(
            cfg.solana.rpc_url,
            commitment=Commitment(cfg.solana.commitment),
            timeout=cfg.http_timeout,
        )

        # Components
        self.journal = SQLiteJournal(cfg.db_path)
        self.verifier = JwtCredentialVerifier(cfg.jwt_secret)
        self.signer = HttpSigningGateway(self.http, cfg.signer.sign_url)
        self.anchors = RpcAnchorSource(self.rpc, cfg.solana.commitment)
        self.resolver = RpcMintResolver(self.rpc)
        self.broadcaster = RpcBroadcaster(
            self.rpc,
            cfg.solana.commitment,
            cfg.solana.confirm_timeout,
            cfg.solana.confirm_interval,
        )
        self.aggregator = UltraAggregatorClient(
            self.http, cfg.aggregator.order_url, cfg.aggregator.execute_url,
        )
        self.minter = MinterClient(self.http, cfg.minter.base_url, cfg.minter.api_key)

    @property
    def config(self) -> PipelineConfig:
        return self._cfg

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self) -> None:
        log.info("Starting arcade_tx pipeline")
        log.info("  RPC: %s (%s)", self._cfg.solana.rpc_url, self._cfg.solana.commitment)
        log.info("  Signer: %s", self._cfg.signer.sign_url)
        log.info("  Aggregator: %s", self._cfg.aggregator.base_url)
        log.info("  Minter: %s", self._cfg.minter.base_url)
        log.info("  Launch finalizer: %s", self._cfg.launch_finalizer.value)
        await self.journal.initialize()

    async def close(self) -> None:
        await self.journal.close()
        await self.http.aclose()
        await self.rpc.close()
        log.info("Pipeline shut down cleanly")

    async def __aenter__(self) -> TransactionPipeline:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Component wiring ───────────────────────────────────

    @property
    def builder(self) -> UnsignedTransactionBuilder:
        return UnsignedTransactionBuilder(self.anchors, self._cfg.treasury_address)

    @property
    def settler(self) -> LedgerSettler:
        return LedgerSettler(self.broadcaster)

    @property
    def coordinator(self) -> OrderCoordinator:
        return OrderCoordinator(
            self.aggregator, self.builder, self.signer, self.resolver,
            operation=self._cfg.signer.operation,
        )

    @property
    def orchestrator(self) -> LaunchOrchestrator:
        return LaunchOrchestrator(
            self.minter, self.builder, self.signer, self.settler, self.journal,
            finalizer=self._cfg.launch_finalizer,
            operation=self._cfg.signer.operation,
        )

    # ── Entry points ───────────────────────────────────────

    async def launch(self, metadata: TokenMetadata | dict, credential: str | None) -> LaunchResult:
        meta = metadata if isinstance(metadata, TokenMetadata) else TokenMetadata.from_dict(metadata)
        return await self._run(
            "launch", credential,
            lambda caller, oplog: self.orchestrator.launch(meta, caller, credential, oplog),
        )

    async def buy(
        self, amount: Decimal | float | int | str, output_mint: str, credential: str | None
    ) -> SettlementResult:
        return await self._run(
            "buy", credential,
            lambda caller, oplog: self.coordinator.buy(
                amount, output_mint, caller, credential, oplog,
            ),
        )

    async def sell(
        self, amount: Decimal | float | int | str, input_mint: str, credential: str | None
    ) -> SettlementResult:
        return await self._run(
            "sell", credential,
            lambda caller, oplog: self.coordinator.sell(
                amount, input_mint, caller, credential, oplog,
            ),
        )

    async def sign_and_broadcast(
        self, transaction_hex: str, credential: str | None
    ) -> SettlementResult:
        """Sign a caller-built transaction and broadcast it on the ledger."""

        async def flow(caller: Identity, oplog: OperationLog) -> SettlementResult:
            if not transaction_hex:
                raise ValidationError.single("transactionHex", "Transaction hex is required")
            unsigned = self.builder.adopt_encoded(
                EncodedPayload(transaction_hex, Encoding.HEX), field="transactionHex",
            )
            self._require_signer(unsigned, caller, "transactionHex")
            return await self._sign_and_settle(unsigned, caller, credential, oplog)

        return await self._run("sign", credential, flow)

    async def transfer(
        self, amount: Decimal | float | int | str | None, credential: str | None
    ) -> SettlementResult:
        """Direct SOL transfer from the caller to the treasury."""

        async def flow(caller: Identity, oplog: OperationLog) -> SettlementResult:
            if amount is None:
                lamports = self._cfg.default_transfer_lamports
            else:
                lamports = require_raw_amount(amount, SOL_DECIMALS)
            # Always a freshly stamped anchor, fetched right before signing.
            unsigned = await self.builder.build_transfer(caller.wallet, lamports)
            return await self._sign_and_settle(
                unsigned, caller, credential, oplog, raw_amount=lamports,
            )

        return await self._run("transfer", credential, flow)

    async def finalize_launch(
        self, mint_address: str, signed_tx_base64: str, credential: str | None
    ) -> LaunchResult:
        if not mint_address or not signed_tx_base64:
            raise ValidationError.single("tx", "mintAddress and tx are required")
        return await self._run(
            "finalize_launch", credential,
            lambda caller, oplog: self.orchestrator.finalize_launch(
                mint_address, signed_tx_base64, caller, oplog,
            ),
        )

    async def resolve_mint(self, token_id: str) -> MintInfo:
        return await self.resolver.resolve(token_id)

    # ── Shared flow ────────────────────────────────────────

    async def _run(
        self,
        kind: str,
        credential: str | None,
        flow: Callable[[Identity, OperationLog], Awaitable[T]],
    ) -> T:
        """Verify the caller, run one operation, journal its terminal state."""
        caller = self.verifier.verify(credential)
        oplog = OperationLog(self.journal, kind, caller.wallet)
        log.info("%s %s started by %s", kind, oplog.operation_id[:8], caller.wallet[:16])
        try:
            return await flow(caller, oplog)
        except PipelineError as exc:
            log.warning(
                "%s %s failed at %s: [%s] %s",
                kind, oplog.operation_id[:8], exc.stage, exc.kind, exc.message,
            )
            if oplog.stage is not None and not oplog.finished:
                stage = "unconfirmed" if exc.retry == RETRY_UNKNOWN else "failed"
                await oplog.mark(
                    stage, error=exc.message, kind=exc.kind, transactionId=exc.transaction_id,
                )
            raise

    async def _sign_and_settle(
        self,
        unsigned: UnsignedTransaction,
        caller: Identity,
        credential: str | None,
        oplog: OperationLog,
        raw_amount: int | None = None,
    ) -> SettlementResult:
        await oplog.mark("started", anchor=unsigned.recent_anchor, shape=unsigned.shape.value)
        payload = codec.encode(unsigned.raw, Encoding.HEX)
        artifact = await self.signer.sign(self._cfg.signer.operation, payload, credential or "")
        result = await self.settler.settle(unsigned, artifact, caller.wallet, oplog)
        return SettlementResult(
            success=True,
            operation_id=oplog.operation_id,
            kind=oplog.kind,
            transaction_id=result.transaction_id,
            raw_amount=raw_amount,
            slot=result.slot,
            warning=None if oplog.healthy else JOURNAL_WARNING,
        )

    @staticmethod
    def _require_signer(unsigned: UnsignedTransaction, caller: Identity, field: str) -> None:
        if not unsigned.requires(caller.wallet):
            raise ValidationError.single(
                field, "Transaction does not require the authenticated wallet's signature",
            )
