"""Launch form validation. Returns every field error, not just the first."""

from __future__ import annotations

from decimal import Decimal
from urllib.parse import urlparse

from arcade_tx.errors import FieldError
from arcade_tx.ledger.amounts import to_decimal
from arcade_tx.models.launch import TokenMetadata

NAME_MIN, NAME_MAX = 2, 50
TICKER_MIN, TICKER_MAX = 2, 10
DESCRIPTION_MAX = 500

INLINE_IMAGE_PREFIX = "data:image/"


def is_url(value: str) -> bool:
    """Fully qualified URL: a scheme and a host."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def validate_metadata(meta: TokenMetadata) -> list[FieldError]:
    errors: list[FieldError] = []

    name = meta.name.strip()
    if not name:
        errors.append(FieldError("name", "Token name is required"))
    elif len(name) < NAME_MIN:
        errors.append(FieldError("name", f"Token name must be at least {NAME_MIN} characters long"))
    elif len(name) > NAME_MAX:
        errors.append(FieldError("name", f"Token name must be at most {NAME_MAX} characters"))

    ticker = meta.symbol
    if not ticker:
        errors.append(FieldError("tokenTicker", "Token ticker is required"))
    elif not TICKER_MIN <= len(ticker) <= TICKER_MAX:
        errors.append(FieldError(
            "tokenTicker", f"Ticker must be {TICKER_MIN}-{TICKER_MAX} characters",
        ))
    elif not (ticker.isascii() and ticker.isalnum()):
        errors.append(FieldError("tokenTicker", "Ticker must be letters and digits only"))

    description = meta.description.strip()
    if not description:
        errors.append(FieldError("description", "Token description is required"))
    elif len(description) > DESCRIPTION_MAX:
        errors.append(FieldError(
            "description", f"Description must be at most {DESCRIPTION_MAX} characters",
        ))

    image = meta.image.strip()
    if not image:
        errors.append(FieldError("image", "Image is required"))
    elif image.startswith(INLINE_IMAGE_PREFIX):
        if ";base64," not in image:
            errors.append(FieldError("image", "Invalid base64 image format"))
    elif not is_url(image):
        errors.append(FieldError("image", "Please enter a valid image URL"))

    # Social links are checked loosely, as the form shows them.
    if meta.website and not is_url(meta.website):
        errors.append(FieldError("website", "Please enter a valid website URL"))

    if meta.twitter and not (
        meta.twitter.startswith("@")
        or "twitter.com" in meta.twitter
        or "x.com" in meta.twitter
    ):
        errors.append(FieldError(
            "twitter", "Please enter a valid Twitter handle (e.g., @username)",
        ))

    if meta.telegram and not (meta.telegram.startswith("@") or "t.me" in meta.telegram):
        errors.append(FieldError(
            "telegram", "Please enter a valid Telegram handle (e.g., @username)",
        ))

    if meta.initial_buy_amount is not None and initial_buy(meta) is None:
        errors.append(FieldError("initialBuyAmount", "Amount must be a positive number"))

    return errors


def initial_buy(meta: TokenMetadata) -> Decimal | None:
    """The initial buy as a Decimal, or None when absent or invalid."""
    if meta.initial_buy_amount is None:
        return None
    try:
        value = to_decimal(meta.initial_buy_amount)
    except ValueError:
        return None
    return value if value >= 0 else None
