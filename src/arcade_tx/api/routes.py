"""aiohttp routes exposing the pipeline entry points."""

from __future__ import annotations

import asyncio
import logging
import signal

from aiohttp import web

from arcade_tx import __version__
from arcade_tx.errors import (
    ConfirmationTimeout,
    NotFound,
    PipelineError,
    Unauthenticated,
    ValidationError,
)
from arcade_tx.pipeline import TransactionPipeline
from arcade_tx.signing.credentials import bearer_token

log = logging.getLogger(__name__)

PIPELINE_KEY = web.AppKey("pipeline", TransactionPipeline)


def status_for(exc: PipelineError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, Unauthenticated):
        return 401
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, ConfirmationTimeout):
        return 504
    return 502


def ok(data: dict, status: int = 200) -> web.Response:
    return web.json_response({"success": True, "data": data}, status=status)


def fail(exc: PipelineError) -> web.Response:
    return web.json_response({"success": False, "error": exc.to_dict()}, status=status_for(exc))


async def _body(request: web.Request) -> dict:
    try:
        body = await request.json()
    except ValueError as exc:
        raise ValidationError.single("body", "Request body must be a JSON object") from exc
    if not isinstance(body, dict):
        raise ValidationError.single("body", "Request body must be a JSON object")
    return body


def _credential(request: web.Request) -> str | None:
    return bearer_token(request.headers.get("Authorization"))


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Render every PipelineError in the stable error shape."""
    try:
        return await handler(request)
    except PipelineError as exc:
        log.info("%s %s -> %s: %s", request.method, request.path, exc.kind, exc.message)
        return fail(exc)


# ── Handlers ───────────────────────────────────────────────


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "version": __version__})


async def handle_launch(request: web.Request) -> web.Response:
    pipeline = request.app[PIPELINE_KEY]
    body = await _body(request)
    result = await pipeline.launch(body, _credential(request))
    return ok(result.to_dict())


async def handle_buy(request: web.Request) -> web.Response:
    pipeline = request.app[PIPELINE_KEY]
    body = await _body(request)
    result = await pipeline.buy(
        body.get("amount"), str(body.get("outputMint") or ""), _credential(request),
    )
    return ok(result.to_dict())


async def handle_sell(request: web.Request) -> web.Response:
    pipeline = request.app[PIPELINE_KEY]
    body = await _body(request)
    result = await pipeline.sell(
        body.get("amount"), str(body.get("inputMint") or ""), _credential(request),
    )
    return ok(result.to_dict())


async def handle_sign(request: web.Request) -> web.Response:
    pipeline = request.app[PIPELINE_KEY]
    body = await _body(request)
    result = await pipeline.sign_and_broadcast(
        str(body.get("transactionHex") or ""), _credential(request),
    )
    return ok(result.to_dict())


async def handle_transfer(request: web.Request) -> web.Response:
    pipeline = request.app[PIPELINE_KEY]
    body = await _body(request)
    result = await pipeline.transfer(body.get("amount"), _credential(request))
    return ok(result.to_dict())


async def handle_finalize_launch(request: web.Request) -> web.Response:
    pipeline = request.app[PIPELINE_KEY]
    body = await _body(request)
    result = await pipeline.finalize_launch(
        str(body.get("mintAddress") or ""), str(body.get("tx") or ""), _credential(request),
    )
    return ok(result.to_dict())


async def handle_mint_info(request: web.Request) -> web.Response:
    pipeline = request.app[PIPELINE_KEY]
    info = await pipeline.resolve_mint(request.match_info["mint"])
    return ok({"mint": info.mint, "decimals": info.decimals, "supply": str(info.supply)})


# ── App factory ────────────────────────────────────────────


def create_app(pipeline: TransactionPipeline) -> web.Application:
    """Build the aiohttp application. The caller owns the pipeline lifecycle."""
    app = web.Application(middlewares=[error_middleware])
    app[PIPELINE_KEY] = pipeline

    app.router.add_get("/health", handle_health)
    app.router.add_post("/api/launch", handle_launch)
    app.router.add_post("/api/jupiter/buy", handle_buy)
    app.router.add_post("/api/jupiter/sell", handle_sell)
    app.router.add_post("/api/transactions/sign", handle_sign)
    app.router.add_post("/api/transfer", handle_transfer)
    app.router.add_post("/api/sign", handle_finalize_launch)
    app.router.add_get("/api/mints/{mint}", handle_mint_info)
    return app


async def run_server(pipeline: TransactionPipeline, host: str, port: int) -> None:
    """Serve until SIGINT/SIGTERM, then shut the pipeline down."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await pipeline.start()
    runner = web.AppRunner(create_app(pipeline))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    log.info("Listening on http://%s:%d", host, port)
    try:
        await stop.wait()
    finally:
        await runner.cleanup()
        await pipeline.close()
