"""Bearer credential verification (HS256 JWTs minted by the login service)."""

from __future__ import annotations

import logging

import jwt
from solders.pubkey import Pubkey

from arcade_tx.errors import Unauthenticated
from arcade_tx.models.transactions import Identity

log = logging.getLogger(__name__)


def bearer_token(header: str | None) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class JwtCredentialVerifier:
    """Verifies a credential and returns the wallet it was issued for.

    The wallet always comes from the verified claims, never from a
    client-supplied field.
    """

    def __init__(self, secret: str, algorithms: tuple[str, ...] = ("HS256",)) -> None:
        self._secret = secret
        self._algorithms = list(algorithms)

    def verify(self, credential: str | None) -> Identity:
        if not credential:
            raise Unauthenticated("Authentication required")
        if not self._secret:
            log.error("Credential verification requested but no JWT secret is configured")
            raise Unauthenticated("Credential verification is not configured")

        try:
            claims = jwt.decode(credential, self._secret, algorithms=self._algorithms)
        except jwt.ExpiredSignatureError as exc:
            raise Unauthenticated("Invalid or expired token") from exc
        except jwt.InvalidTokenError as exc:
            log.info("Token verification failed: %s", exc)
            raise Unauthenticated("Invalid token") from exc

        wallet = claims.get("wallet")
        if not isinstance(wallet, str) or not claims.get("userId"):
            raise Unauthenticated("Invalid token")
        try:
            Pubkey.from_string(wallet)
        except Exception as exc:
            raise Unauthenticated("Invalid token") from exc

        return Identity(wallet=wallet)
