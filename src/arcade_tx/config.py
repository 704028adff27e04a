"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from arcade_tx.models.config import LaunchFinalizer, PipelineConfig


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "ARCADE_TX_",
) -> PipelineConfig:
    """Load pipeline configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (ARCADE_TX_JWT_SECRET, etc.)
        2. TOML config file
        3. Defaults from PipelineConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = PipelineConfig()

    # ── Pipeline section ───────────────────────────────────
    pipeline = raw.get("pipeline", {})
    if v := pipeline.get("log_level"):
        cfg.log_level = str(v)
    if v := pipeline.get("http_timeout"):
        cfg.http_timeout = float(v)
    if v := pipeline.get("treasury_address"):
        cfg.treasury_address = str(v)
    if v := pipeline.get("default_transfer_lamports"):
        cfg.default_transfer_lamports = int(v)
    if v := pipeline.get("launch_finalizer"):
        cfg.launch_finalizer = LaunchFinalizer(v)

    # ── Solana section ─────────────────────────────────────
    solana = raw.get("solana", {})
    if v := solana.get("rpc_url"):
        cfg.solana.rpc_url = str(v)
    if v := solana.get("commitment"):
        cfg.solana.commitment = str(v)
    if v := solana.get("confirm_timeout"):
        cfg.solana.confirm_timeout = float(v)
    if v := solana.get("confirm_interval"):
        cfg.solana.confirm_interval = float(v)

    # ── Signer section ─────────────────────────────────────
    signer = raw.get("signer", {})
    if v := signer.get("sign_url"):
        cfg.signer.sign_url = str(v)
    if v := signer.get("operation"):
        cfg.signer.operation = str(v)

    # ── Aggregator section ─────────────────────────────────
    aggregator = raw.get("aggregator", {})
    if v := aggregator.get("base_url"):
        cfg.aggregator.base_url = str(v)

    # ── Minter section ─────────────────────────────────────
    minter = raw.get("minter", {})
    if v := minter.get("base_url"):
        cfg.minter.base_url = str(v)
    if v := minter.get("api_key"):
        cfg.minter.api_key = str(v)

    # ── Auth section ───────────────────────────────────────
    auth = raw.get("auth", {})
    if v := auth.get("jwt_secret"):
        cfg.jwt_secret = str(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Server section ─────────────────────────────────────
    server = raw.get("server", {})
    if v := server.get("host"):
        cfg.host = str(v)
    if v := server.get("port"):
        cfg.port = int(v)

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.solana.rpc_url = rpc
    if sign_url := os.environ.get(f"{env_prefix}SIGN_URL"):
        cfg.signer.sign_url = sign_url
    if agg := os.environ.get(f"{env_prefix}AGGREGATOR_URL"):
        cfg.aggregator.base_url = agg
    if minter_url := os.environ.get(f"{env_prefix}MINTER_URL"):
        cfg.minter.base_url = minter_url
    if api_key := os.environ.get(f"{env_prefix}MINTER_API_KEY"):
        cfg.minter.api_key = api_key
    if secret := os.environ.get(f"{env_prefix}JWT_SECRET"):
        cfg.jwt_secret = secret
    if treasury := os.environ.get(f"{env_prefix}TREASURY"):
        cfg.treasury_address = treasury
    if finalizer := os.environ.get(f"{env_prefix}LAUNCH_FINALIZER"):
        cfg.launch_finalizer = LaunchFinalizer(finalizer)

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg
