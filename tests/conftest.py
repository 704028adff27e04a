"""Shared fixtures for arcade_tx tests."""

from __future__ import annotations

import time

import jwt
import pytest
from pytest_metadata.plugin import metadata_key
from solders.keypair import Keypair

from arcade_tx.models.config import (
    AggregatorConfig,
    MinterConfig,
    PipelineConfig,
    SignerConfig,
    SolanaConfig,
)
from arcade_tx.pipeline import TransactionPipeline
from arcade_tx.storage.sqlite import SQLiteJournal

from tests.mocks import (
    MockAggregator,
    MockAnchorSource,
    MockBroadcaster,
    MockMinter,
    MockResolver,
    MockSigner,
)

TEST_JWT_SECRET = "arcade-test-secret-0123456789abcdef0123"
TREASURY = "AidmVBuszvzCJ6cWrBQfKNwgNPU4KCvXBcrWh91vitm8"
SOL_MINT = "So11111111111111111111111111111111111111112"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"  # 5 decimals
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"  # 6 decimals


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add upstream info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Ledger"] = "Solana (mocked RPC)"
    meta["Signer"] = "mock custodial signer"
    meta["Aggregator"] = "mock Ultra order API"
    meta["Treasury"] = TREASURY


def make_test_config(**overrides) -> PipelineConfig:
    """Build a PipelineConfig suitable for testing."""
    defaults = dict(
        http_timeout=5.0,
        treasury_address=TREASURY,
        solana=SolanaConfig(
            rpc_url="http://127.0.0.1:8899", confirm_timeout=0.2, confirm_interval=0.01,
        ),
        signer=SignerConfig(sign_url="http://signer.test/transactions/initiate-sign"),
        aggregator=AggregatorConfig(base_url="http://aggregator.test/ultra/v1"),
        minter=MinterConfig(base_url="http://minter.test", api_key="test-minter-key"),
        jwt_secret=TEST_JWT_SECRET,
        db_path=":memory:",
    )
    defaults.update(overrides)
    return PipelineConfig(**defaults)


def make_token(wallet: str, user_id: str = "user-1", **claims) -> str:
    """Issue a credential the way the login collaborator does."""
    payload = {"sub": user_id, "userId": user_id, "wallet": wallet, "exp": int(time.time()) + 600}
    payload.update(claims)
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


@pytest.fixture
def test_config():
    """Default PipelineConfig for tests."""
    return make_test_config()


@pytest.fixture
def caller():
    """The wallet the custodial signer holds keys for."""
    return Keypair()


@pytest.fixture
def token(caller):
    return make_token(str(caller.pubkey()))


@pytest.fixture
async def journal():
    """Initialized in-memory SQLiteJournal."""
    j = SQLiteJournal(":memory:")
    await j.initialize()
    yield j
    await j.close()


@pytest.fixture
def mock_anchors():
    return MockAnchorSource()


@pytest.fixture
def mock_signer(caller):
    return MockSigner(caller)


@pytest.fixture
def mock_broadcaster():
    return MockBroadcaster()


@pytest.fixture
def mock_resolver():
    return MockResolver({BONK_MINT: 5, USDC_MINT: 6})


@pytest.fixture
def mock_aggregator():
    return MockAggregator()


@pytest.fixture
def mock_minter():
    return MockMinter()


@pytest.fixture
async def pipeline(test_config, journal, mock_anchors, mock_signer, mock_broadcaster,
                   mock_resolver, mock_aggregator, mock_minter):
    """Fully wired TransactionPipeline with mocked upstreams."""
    p = TransactionPipeline(test_config)
    p.journal = journal
    p.anchors = mock_anchors
    p.signer = mock_signer
    p.broadcaster = mock_broadcaster
    p.resolver = mock_resolver
    p.aggregator = mock_aggregator
    p.minter = mock_minter
    yield p
    await p.http.aclose()
    await p.rpc.close()
