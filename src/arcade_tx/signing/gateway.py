"""HTTP signing gateway - delegates signing to the custodial signer."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError as SchemaError

from arcade_tx.errors import (
    RETRY_REBUILD,
    SignerRejected,
    SignerUnreachable,
    Unauthenticated,
    UnexpectedUpstreamResponse,
)
from arcade_tx.models.schemas import ErrorBody, SignerResponse
from arcade_tx.models.transactions import EncodedPayload, SignedArtifact, SigningRequest
from arcade_tx.signing.artifacts import classify_response

log = logging.getLogger(__name__)

_UNAVAILABLE_STATUSES = {502, 503, 504}


def _error_message(resp: httpx.Response) -> str | None:
    try:
        return ErrorBody.model_validate(resp.json()).text()
    except (ValueError, SchemaError):
        return None


class HttpSigningGateway:
    """Posts `{operation, payload}` with the caller's bearer credential.

    This process holds no key material; the signer is the only party that
    signs. The shared httpx client pools connections across requests.
    """

    def __init__(self, http: httpx.AsyncClient, sign_url: str) -> None:
        self._http = http
        self._sign_url = sign_url

    async def sign(
        self, operation: str, payload: EncodedPayload, credential: str
    ) -> SignedArtifact:
        if not credential:
            raise Unauthenticated("Authentication required", stage="sign")

        request = SigningRequest(operation=operation, payload=payload, credential=credential)
        log.info("Requesting signature: %r", request)

        try:
            resp = await self._http.post(
                self._sign_url,
                json={"operation": request.operation, "payload": request.payload.text},
                headers={"Authorization": f"Bearer {request.credential}"},
            )
        except httpx.TimeoutException as exc:
            log.warning("Signer timed out: %s", exc)
            raise SignerUnreachable("signing service timed out", stage="sign") from exc
        except httpx.TransportError as exc:
            log.warning("Signer unreachable: %s", exc)
            raise SignerUnreachable(f"signing service unreachable: {exc}", stage="sign") from exc

        if resp.status_code in (401, 403):
            message = _error_message(resp) or "Credential rejected by signing service"
            log.info("Signer rejected credential (HTTP %d)", resp.status_code)
            raise Unauthenticated(message, stage="sign")

        if not resp.is_success:
            message = _error_message(resp)
            log.error("Signing service error: status=%d message=%s", resp.status_code, message)
            if resp.status_code in _UNAVAILABLE_STATUSES or (
                resp.status_code >= 500 and message is None
            ):
                raise SignerUnreachable(
                    message or f"Signing service error: {resp.status_code}", stage="sign",
                )
            raise SignerRejected(
                message or f"Signing service error: {resp.status_code}", stage="sign",
            )

        try:
            body = SignerResponse.model_validate(resp.json())
        except (ValueError, SchemaError) as exc:
            log.error("Signer returned a malformed body: %s", resp.text[:200])
            raise UnexpectedUpstreamResponse(
                "signing service returned a malformed response",
                stage="sign",
                retry=RETRY_REBUILD,
            ) from exc

        return classify_response(body.signature, body.txid or body.hash, "signing service")
