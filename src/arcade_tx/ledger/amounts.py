"""Decimal <-> raw integer unit conversion.

All arithmetic is done in Decimal; floats are converted through their
shortest repr so 0.1 SOL is exactly 100_000_000 lamports.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation, localcontext

from arcade_tx.errors import ValidationError

SOL_MINT = "So11111111111111111111111111111111111111112"
SOL_DECIMALS = 9
LAMPORTS_PER_SOL = 10**SOL_DECIMALS

# SPL mints store decimals as a u8
MAX_DECIMALS = 255


def to_decimal(amount: Decimal | float | int | str) -> Decimal:
    """Parse a human amount. Raises ValueError for non-finite or garbage input."""
    if isinstance(amount, bool):
        raise ValueError("amount must be a number")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"invalid amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"invalid amount: {amount!r}")
    return value


def to_raw_amount(amount: Decimal | float | int | str, decimals: int) -> int:
    """round(amount * 10**decimals) without floating point drift."""
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ValueError(f"unsupported decimal precision: {decimals}")
    value = to_decimal(amount)
    with localcontext() as ctx:
        # Enough digits that scaling is exact and only the final step rounds.
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + 2)
        scaled = value.scaleb(decimals)
        return int(scaled.to_integral_value(rounding=ROUND_HALF_EVEN))


def from_raw_amount(raw_amount: int, decimals: int) -> Decimal:
    return Decimal(raw_amount).scaleb(-decimals)


def require_positive(amount: Decimal | float | int | str | None, field: str = "amount") -> Decimal:
    """Caller-facing parse: a strictly positive Decimal or ValidationError."""
    if amount is None or amount == "":
        raise ValidationError.single(field, "Amount is required")
    try:
        value = to_decimal(amount)
    except ValueError as exc:
        raise ValidationError.single(field, str(exc)) from exc
    if value <= 0:
        raise ValidationError.single(field, "Amount must be greater than zero")
    return value


def require_raw_amount(
    amount: Decimal | float | int | str | None, decimals: int, field: str = "amount"
) -> int:
    """Positive raw amount; rejects amounts that round down to zero units."""
    raw = to_raw_amount(require_positive(amount, field), decimals)
    if raw <= 0:
        raise ValidationError.single(field, f"Amount is below the smallest unit (1e-{decimals})")
    return raw
