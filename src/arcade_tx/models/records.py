"""Operation results and journal records."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ConfirmationResult:
    """Terminal ledger status of a submitted transaction."""

    transaction_id: str
    confirmed: bool
    error: str | None = None  # on-chain error; None when confirmed
    slot: int | None = None


@dataclass
class SettlementResult:
    """Terminal state of one user-initiated operation."""

    success: bool
    operation_id: str
    kind: str  # "buy", "sell", "sign", "transfer"
    transaction_id: str | None = None
    error: str | None = None
    warning: str | None = None
    input_mint: str | None = None
    output_mint: str | None = None
    raw_amount: int | None = None
    slot: int | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "success": self.success,
            "operationId": self.operation_id,
            "transactionId": self.transaction_id,
        }
        if self.input_mint:
            data["inputMint"] = self.input_mint
        if self.output_mint:
            data["outputMint"] = self.output_mint
        if self.raw_amount is not None:
            data["rawAmount"] = self.raw_amount
        if self.slot is not None:
            data["slot"] = self.slot
        if self.error:
            data["error"] = self.error
        if self.warning:
            data["warning"] = self.warning
        return data


@dataclass
class LaunchRecord:
    """A token launch as persisted in the journal."""

    token_address: str
    token_name: str
    token_ticker: str
    description: str
    image_url: str
    creator: str
    website: str | None = None
    twitter: str | None = None
    telegram: str | None = None
    is_launched: bool = False
    transaction_id: str | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class LaunchResult:
    """Outcome of a token launch."""

    token_address: str
    tx: str | None  # transaction id once broadcast
    operation_id: str
    token_name: str = ""
    token_ticker: str = ""
    warning: str | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "tokenAddress": self.token_address,
            "tx": self.tx,
            "operationId": self.operation_id,
            "tokenName": self.token_name,
            "tokenTicker": self.token_ticker,
        }
        if self.warning:
            data["warning"] = self.warning
        return data


@dataclass
class Checkpoint:
    """One journal entry for an operation's progress."""

    operation_id: str
    kind: str
    stage: str
    caller: str
    detail: dict = field(default_factory=dict)
    created_at: str = ""
