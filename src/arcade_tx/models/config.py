"""Configuration models for the transaction pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class LaunchFinalizer(str, Enum):
    """Who broadcasts a caller-signed launch transaction."""

    LEDGER = "ledger"  # submit + confirm against the Solana RPC
    MINTER = "minter"  # hand back to the minter's co-sign endpoint


@dataclass
class SolanaConfig:
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    commitment: str = "confirmed"
    confirm_timeout: float = 60.0  # seconds, bounded wait for confirmation
    confirm_interval: float = 2.0  # seconds between status polls


@dataclass
class SignerConfig:
    sign_url: str = (
        "https://mrgbnbr5uk.execute-api.eu-central-1.amazonaws.com"
        "/transactions/initiate-sign"
    )
    operation: str = "signTransaction"


@dataclass
class AggregatorConfig:
    base_url: str = "https://lite-api.jup.ag/ultra/v1"

    @property
    def order_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/order"

    @property
    def execute_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/execute"


@dataclass
class MinterConfig:
    base_url: str = "https://dolphin-app-leo54.ondigitalocean.app"
    api_key: str = ""  # loaded from env var ARCADE_TX_MINTER_API_KEY


@dataclass
class PipelineConfig:
    """Complete pipeline configuration, passed explicitly to every component."""

    # Pipeline
    log_level: str = "info"
    http_timeout: float = 30.0  # seconds, per upstream HTTP call
    treasury_address: str = "AidmVBuszvzCJ6cWrBQfKNwgNPU4KCvXBcrWh91vitm8"
    default_transfer_lamports: int = 1_000_000  # 0.001 SOL
    launch_finalizer: LaunchFinalizer = LaunchFinalizer.LEDGER

    # Upstreams
    solana: SolanaConfig = field(default_factory=SolanaConfig)
    signer: SignerConfig = field(default_factory=SignerConfig)
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    minter: MinterConfig = field(default_factory=MinterConfig)

    # Auth
    jwt_secret: str = ""  # loaded from env var ARCADE_TX_JWT_SECRET

    # Storage
    db_path: str = "~/.arcade_tx/journal.db"

    # HTTP surface
    host: str = "127.0.0.1"
    port: int = 8080
