"""Pydantic schemas for upstream responses, validated at the boundary."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

EXECUTE_SUCCESS = "Success"


class _Upstream(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SignerResponse(_Upstream):
    """Custodial signer success body. `signature` is the authoritative field."""

    signature: str | None = None
    txid: str | None = None
    hash: str | None = None


class ErrorBody(_Upstream):
    """Error body shared by the signer, aggregator and minter."""

    message: str | None = None
    error: str | None = None

    def text(self) -> str | None:
        return self.message or self.error


class OrderResponse(_Upstream):
    """Aggregator GET /order response."""

    request_id: str = Field(alias="requestId", min_length=1)
    transaction: str | None = None  # base64; null when the order is not executable
    out_amount: int | None = Field(default=None, alias="outAmount")
    error_message: str | None = Field(default=None, alias="errorMessage")


class ExecuteResponse(_Upstream):
    """Aggregator POST /execute response."""

    status: str | None = None
    signature: str | None = None
    slot: int | None = None
    code: int | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """Ultra-style replies carry a status; a plain reply is just {signature}."""
        if self.status is not None:
            return self.status == EXECUTE_SUCCESS
        return bool(self.signature) and not self.code and not self.error


class MintResponse(_Upstream):
    """Minter POST /mint response."""

    tx: str = Field(min_length=1)  # base64 unsigned creation + initial-buy transaction
    mint: str = Field(min_length=32, max_length=44)


class MinterSignResponse(_Upstream):
    """Minter POST /mint/sign-tx response."""

    signature: str | None = None
    txid: str | None = None
    sig: str | None = None
    hash: str | None = None
