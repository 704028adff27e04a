"""Lossless hex / base64 transport encodings for transaction bytes."""

from __future__ import annotations

import base64
import binascii

from arcade_tx.models.transactions import EncodedPayload, Encoding


def encode(data: bytes, encoding: Encoding) -> EncodedPayload:
    """Encode raw bytes into the wire text an upstream expects."""
    if encoding is Encoding.HEX:
        return EncodedPayload(data.hex(), Encoding.HEX)
    return EncodedPayload(base64.b64encode(data).decode("ascii"), Encoding.BASE64)


def decode(payload: EncodedPayload) -> bytes:
    """Inverse of encode(). Raises ValueError on malformed text."""
    if payload.encoding is Encoding.HEX:
        return from_hex(payload.text)
    return from_base64(payload.text)


def from_hex(text: str) -> bytes:
    stripped = text.strip()
    if stripped[:2].lower() == "0x":
        stripped = stripped[2:]
    try:
        return bytes.fromhex(stripped)
    except ValueError as exc:
        raise ValueError(f"invalid hex payload: {exc}") from exc


def from_base64(text: str) -> bytes:
    try:
        return base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid base64 payload: {exc}") from exc
