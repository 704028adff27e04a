"""Token launch metadata as entered in the launch form."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class TokenMetadata:
    """User-supplied launch metadata. Validated before any upstream call."""

    name: str
    token_ticker: str
    description: str
    image: str
    website: str | None = None
    twitter: str | None = None
    telegram: str | None = None
    initial_buy_amount: Decimal | float | int | str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> TokenMetadata:
        """Build from a form payload. Accepts `tokenName` as an alias of `name`.

        Any `user` field in the payload is ignored: the creator is always the
        wallet from the verified credential.
        """
        return cls(
            name=_text(data.get("name", data.get("tokenName"))),
            token_ticker=_text(data.get("tokenTicker", data.get("symbol"))),
            description=_text(data.get("description")),
            image=_text(data.get("image", data.get("imageUrl"))),
            website=_optional(data.get("website")),
            twitter=_optional(data.get("twitter")),
            telegram=_optional(data.get("telegram")),
            initial_buy_amount=data.get("initialBuyAmount"),
        )

    @property
    def symbol(self) -> str:
        return self.token_ticker.strip().upper()


def _text(value: object) -> str:
    return value if isinstance(value, str) else ""


def _optional(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
