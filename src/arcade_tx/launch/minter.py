"""Minter service client - token creation and launch co-signing."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError as SchemaError

from arcade_tx.errors import (
    RETRY_REBUILD,
    RETRY_UNKNOWN,
    UnexpectedUpstreamResponse,
    UpstreamRejected,
    UpstreamUnavailable,
)
from arcade_tx.models.schemas import ErrorBody, MinterSignResponse, MintResponse
from arcade_tx.models.transactions import SignedArtifact
from arcade_tx.signing.artifacts import classify_response

log = logging.getLogger(__name__)


def _error_text(resp: httpx.Response) -> str:
    try:
        message = ErrorBody.model_validate(resp.json()).text()
    except (ValueError, SchemaError):
        message = None
    return message or resp.text.strip()[:500] or f"API request failed with status {resp.status_code}"


class MinterClient:
    """httpx client for the minter, authenticated with a static API key."""

    def __init__(self, http: httpx.AsyncClient, base_url: str, api_key: str) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key

    @property
    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "x-api-key": self._api_key}

    async def mint(self, payload: dict) -> MintResponse:
        url = f"{self._base_url}/mint"
        log.info(
            "Requesting mint for %s (%s) by %s",
            payload.get("name"), payload.get("symbol"), str(payload.get("user", ""))[:16],
        )
        try:
            resp = await self._http.post(url, json=payload, headers=self._headers)
        except httpx.HTTPError as exc:
            log.warning("Minter unreachable: %s", exc)
            raise UpstreamUnavailable(f"minter service unreachable: {exc}", stage="mint") from exc

        if not resp.is_success:
            text = _error_text(resp)
            log.error("Minter error (HTTP %d): %s", resp.status_code, text[:200])
            if resp.status_code in (502, 503, 504):
                raise UpstreamUnavailable(f"Token launch failed: {text}", stage="mint")
            raise UpstreamRejected(f"Token launch failed: {text}", stage="mint")

        try:
            minted = MintResponse.model_validate(resp.json())
        except (ValueError, SchemaError) as exc:
            log.error("Minter returned an unexpected body: %s", resp.text[:200])
            raise UnexpectedUpstreamResponse(
                "Token launch failed - unexpected response from minter service", stage="mint",
            ) from exc

        log.info("Minter proposed token address %s", minted.mint)
        return minted

    async def submit_signed(self, mint_address: str, transaction: str) -> SignedArtifact:
        """POST the caller-signed launch transaction to /mint/sign-tx.

        The minter co-signs and broadcasts, so a bare signature in its reply
        is the transaction id.
        """
        url = f"{self._base_url}/mint/sign-tx"
        log.info("Handing signed launch of %s to minter", mint_address[:16])
        try:
            resp = await self._http.post(
                url, json={"mintAddress": mint_address, "tx": transaction}, headers=self._headers,
            )
        except httpx.HTTPError as exc:
            log.error("Minter sign-tx for %s failed: %s", mint_address[:16], exc)
            raise UpstreamUnavailable(
                f"minter service unreachable during co-sign: {exc}",
                stage="submit",
                retry=RETRY_UNKNOWN,
            ) from exc

        if not resp.is_success:
            text = _error_text(resp)
            log.error("Minter sign-tx error (HTTP %d): %s", resp.status_code, text[:200])
            raise UpstreamRejected(
                f"Failed to sign transaction: {text}", stage="submit", retry=RETRY_REBUILD,
            )

        try:
            body = MinterSignResponse.model_validate(resp.json())
        except (ValueError, SchemaError) as exc:
            log.error("Minter sign-tx returned a non-JSON body: %s", resp.text[:200])
            raise UnexpectedUpstreamResponse(
                "minter service returned a malformed co-sign response",
                stage="submit",
                retry=RETRY_UNKNOWN,
            ) from exc

        try:
            return classify_response(
                body.signature or body.sig,
                body.txid or body.hash,
                "minter service",
                bare_signature_is_id=True,
            )
        except UnexpectedUpstreamResponse as exc:
            exc.retry = RETRY_UNKNOWN
            exc.stage = "submit"
            raise
