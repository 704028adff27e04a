"""Custodial signing boundary and credential verification."""

from arcade_tx.signing.credentials import JwtCredentialVerifier, bearer_token
from arcade_tx.signing.gateway import HttpSigningGateway

__all__ = ["HttpSigningGateway", "JwtCredentialVerifier", "bearer_token"]
