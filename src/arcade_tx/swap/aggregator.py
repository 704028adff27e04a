"""Order aggregator client - quote/execute against the Ultra swap API."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError as SchemaError

from arcade_tx.errors import (
    RETRY_UNKNOWN,
    ExecutionFailed,
    OrderRejected,
    UnexpectedUpstreamResponse,
    UpstreamUnavailable,
)
from arcade_tx.models.schemas import ErrorBody, ExecuteResponse, OrderResponse

log = logging.getLogger(__name__)


def _error_text(resp: httpx.Response) -> str:
    """The aggregator's own error text, verbatim where possible."""
    try:
        message = ErrorBody.model_validate(resp.json()).text()
    except (ValueError, SchemaError):
        message = None
    return message or resp.text.strip() or f"HTTP {resp.status_code}"


class UltraAggregatorClient:
    """Two-phase swap client: GET /order, then POST /execute.

    The aggregator is the broadcaster of record for swaps; signed swap
    transactions never go to the raw ledger RPC.
    """

    def __init__(self, http: httpx.AsyncClient, order_url: str, execute_url: str) -> None:
        self._http = http
        self._order_url = order_url
        self._execute_url = execute_url

    async def get_order(
        self, input_mint: str, output_mint: str, raw_amount: int, taker: str
    ) -> OrderResponse:
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(raw_amount),
            "taker": taker,
        }
        log.info(
            "Fetching order: %s -> %s amount=%d taker=%s",
            input_mint[:16], output_mint[:16], raw_amount, taker[:16],
        )
        try:
            resp = await self._http.get(self._order_url, params=params)
        except httpx.HTTPError as exc:
            log.warning("Order request failed: %s", exc)
            raise UpstreamUnavailable(f"order aggregator unreachable: {exc}", stage="quote") from exc

        if not resp.is_success:
            text = _error_text(resp)
            log.error("Order failed (HTTP %d): %s", resp.status_code, text[:200])
            if resp.status_code in (502, 503, 504):
                raise UpstreamUnavailable(f"Order failed: {text}", stage="quote")
            raise OrderRejected(f"Order failed: {text}", stage="quote")

        try:
            order = OrderResponse.model_validate(resp.json())
        except (ValueError, SchemaError) as exc:
            log.error("Malformed order response: %s", resp.text[:200])
            raise UnexpectedUpstreamResponse(
                "order aggregator returned a malformed order", stage="quote",
            ) from exc

        if not order.transaction:
            reason = order.error_message or "aggregator returned no transaction for this order"
            log.warning("Order %s is not executable: %s", order.request_id[:16], reason)
            raise OrderRejected(f"Order failed: {reason}", stage="quote")

        log.info("Received order %s", order.request_id[:16])
        return order

    async def execute(self, signed_transaction: str, request_id: str) -> ExecuteResponse:
        log.info("Executing order %s", request_id[:16])
        try:
            resp = await self._http.post(
                self._execute_url,
                json={"signedTransaction": signed_transaction, "requestId": request_id},
            )
        except httpx.HTTPError as exc:
            # The signed swap may already be executing; outcome unknown.
            log.error("Execute request for %s failed: %s", request_id[:16], exc)
            raise UpstreamUnavailable(
                f"order aggregator unreachable during execute: {exc}",
                stage="execute",
                retry=RETRY_UNKNOWN,
            ) from exc

        if not resp.is_success:
            text = _error_text(resp)
            log.error("Execute failed (HTTP %d): %s", resp.status_code, text[:200])
            raise ExecutionFailed(f"Execute failed: {text}", stage="execute")

        try:
            return ExecuteResponse.model_validate(resp.json())
        except (ValueError, SchemaError) as exc:
            log.error("Malformed execute response: %s", resp.text[:200])
            raise UnexpectedUpstreamResponse(
                "order aggregator returned a malformed execute response",
                stage="execute",
                retry=RETRY_UNKNOWN,
            ) from exc
