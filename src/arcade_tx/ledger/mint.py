"""Mint metadata resolver - token decimals and supply from the ledger."""

from __future__ import annotations

import logging

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException
from solders.pubkey import Pubkey

from arcade_tx.errors import NotFound, UpstreamUnavailable
from arcade_tx.models.transactions import MintInfo

log = logging.getLogger(__name__)


class RpcMintResolver:
    """Resolves mint precision via getTokenSupply on the shared RPC client."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def resolve(self, token_id: str) -> MintInfo:
        try:
            pubkey = Pubkey.from_string(token_id)
        except Exception as exc:
            raise NotFound(f"{token_id!r} is not a valid mint address") from exc

        try:
            resp = await self._client.get_token_supply(pubkey)
        except RPCException as exc:
            log.info("get_token_supply(%s) rejected: %s", token_id[:16], exc)
            raise NotFound(f"{token_id} is not a token mint") from exc
        except (SolanaRpcException, httpx.HTTPError) as exc:
            log.warning("get_token_supply(%s) failed: %s", token_id[:16], exc)
            raise UpstreamUnavailable(f"ledger RPC unavailable: {exc}", stage="resolve") from exc

        value = resp.value
        info = MintInfo(mint=token_id, decimals=int(value.decimals), supply=int(value.amount))
        log.debug("Resolved mint %s: decimals=%d supply=%d", token_id[:16], info.decimals, info.supply)
        return info
