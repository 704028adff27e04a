"""LaunchOrchestrator: validate -> mint -> sign -> finalize -> record."""

from __future__ import annotations

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from arcade_tx.errors import (
    OnChainError,
    SignerRejected,
    UnexpectedUpstreamResponse,
    Unauthenticated,
    ValidationError,
)
from arcade_tx.launch.orchestrator import (
    SAVE_FAILED_WARNING,
    UPDATE_FAILED_WARNING,
    LaunchOrchestrator,
    mint_payload,
)
from arcade_tx.ledger.builder import UnsignedTransactionBuilder
from arcade_tx.ledger.settlement import LedgerSettler
from arcade_tx.models.config import LaunchFinalizer
from arcade_tx.models.launch import TokenMetadata
from arcade_tx.models.records import LaunchRecord
from arcade_tx.models.transactions import Identity
from arcade_tx.storage.oplog import OperationLog

from tests.conftest import TREASURY
from tests.factories import b64, make_unsigned_v0, partial_sign, signature_of
from tests.mocks import (
    FailingJournal,
    MockAnchorSource,
    MockBroadcaster,
    MockMinter,
    MockSigner,
)

FOO = TokenMetadata(
    name="Foo",
    token_ticker="foo",
    description="The foo token",
    image="https://img.example/foo.png",
    twitter="@foo",
    initial_buy_amount="0.5",
)


def make_orchestrator(minter, signer, broadcaster, journal, finalizer=LaunchFinalizer.LEDGER):
    builder = UnsignedTransactionBuilder(MockAnchorSource(), TREASURY)
    return LaunchOrchestrator(
        minter, builder, signer, LedgerSettler(broadcaster), journal, finalizer=finalizer,
    )


@pytest.fixture
def orchestrator(mock_minter, mock_signer, mock_broadcaster, journal):
    return make_orchestrator(mock_minter, mock_signer, mock_broadcaster, journal)


@pytest.fixture
def creator(caller):
    return Identity(str(caller.pubkey()))


@pytest.fixture
def oplog(journal, creator):
    return OperationLog(journal, "launch", creator.wallet)


# ── Payload ────────────────────────────────────────────


def test_mint_payload(creator):
    payload = mint_payload(FOO, creator)

    assert payload == {
        "user": creator.wallet,
        "name": "Foo",
        "symbol": "FOO",
        "description": "The foo token",
        "imageUrl": "https://img.example/foo.png",
        "amount": "0.5",
        "twitter": "@foo",
    }


@pytest.mark.parametrize("amount", ["0.0000005", "0.123456789012345678", "12345678.9"])
def test_initial_buy_keeps_every_digit(creator, amount):
    m = TokenMetadata(name="Foo", token_ticker="FOO", description="d",
                      image="https://img.example/f.png", initial_buy_amount=amount)
    assert mint_payload(m, creator)["amount"] == amount


def test_zero_initial_buy_is_omitted(creator):
    m = TokenMetadata(name="Foo", token_ticker="FOO", description="d",
                      image="https://img.example/f.png", initial_buy_amount=0)
    assert "amount" not in mint_payload(m, creator)


# ── Ledger finalizer ───────────────────────────────────


async def test_launch_broadcasts_and_records(
    orchestrator, mock_minter, mock_broadcaster, caller, creator, oplog, journal,
):
    result = await orchestrator.launch(FOO, creator, "tok", oplog)

    txid = str(signature_of(mock_minter.issued, caller))
    assert result.token_address == mock_minter.mint_address
    assert result.tx == txid
    assert result.token_ticker == "FOO"
    assert result.warning is None
    assert mock_broadcaster.submitted == [partial_sign(mock_minter.issued, caller)]
    assert mock_minter.submit_calls == []

    record = await journal.get_launch(mock_minter.mint_address)
    assert record.is_launched
    assert record.transaction_id == txid
    assert record.creator == creator.wallet

    stages = [c.stage for c in await journal.get_checkpoints(oplog.operation_id)]
    assert stages == ["started", "minted", "signed", "submitted", "confirmed"]


async def test_creator_comes_from_the_credential(orchestrator, mock_minter, creator, oplog):
    await orchestrator.launch(FOO, creator, "tok", oplog)
    assert mock_minter.mint_calls[0]["user"] == creator.wallet


async def test_invalid_metadata_never_reaches_the_minter(
    orchestrator, mock_minter, creator, oplog, journal,
):
    bad = TokenMetadata(name="F", token_ticker="F", description="", image="nope")

    with pytest.raises(ValidationError) as exc_info:
        await orchestrator.launch(bad, creator, "tok", oplog)

    assert exc_info.value.fields == ["name", "tokenTicker", "description", "image"]
    assert mock_minter.mint_calls == []
    assert await journal.get_checkpoints(oplog.operation_id) == []


async def test_signer_rejection_leaves_launch_pending(
    mock_minter, caller, mock_broadcaster, creator, oplog, journal,
):
    orchestrator = make_orchestrator(
        mock_minter, MockSigner(caller, mode="reject"), mock_broadcaster, journal,
    )

    with pytest.raises(SignerRejected):
        await orchestrator.launch(FOO, creator, "tok", oplog)

    record = await journal.get_launch(mock_minter.mint_address)
    assert record is not None and not record.is_launched
    assert mock_broadcaster.submitted == []


async def test_minter_transaction_for_someone_else_is_rejected(
    mock_signer, mock_broadcaster, creator, oplog, journal,
):
    class ForeignMinter(MockMinter):
        async def mint(self, payload):
            minted = await super().mint(payload)
            minted.tx = b64(make_unsigned_v0(Keypair().pubkey()))
            return minted

    orchestrator = make_orchestrator(ForeignMinter(), mock_signer, mock_broadcaster, journal)

    with pytest.raises(UnexpectedUpstreamResponse, match="creator"):
        await orchestrator.launch(FOO, creator, "tok", oplog)
    assert mock_signer.sign_calls == []


async def test_on_chain_failure_keeps_launch_pending(
    mock_minter, mock_signer, creator, oplog, journal,
):
    orchestrator = make_orchestrator(
        mock_minter, mock_signer, MockBroadcaster(outcome="failed"), journal,
    )

    with pytest.raises(OnChainError):
        await orchestrator.launch(FOO, creator, "tok", oplog)

    assert not (await journal.get_launch(mock_minter.mint_address)).is_launched


async def test_journal_failure_does_not_fail_the_launch(
    mock_minter, mock_signer, mock_broadcaster, creator,
):
    failing = FailingJournal()
    orchestrator = make_orchestrator(mock_minter, mock_signer, mock_broadcaster, failing)

    result = await orchestrator.launch(FOO, creator, "tok", OperationLog(failing, "launch", creator.wallet))

    assert result.tx is not None
    assert result.warning == SAVE_FAILED_WARNING
    assert len(mock_broadcaster.submitted) == 1


# ── Minter finalizer ───────────────────────────────────


async def test_minter_finalizer_hands_signed_launch_back(
    mock_minter, mock_signer, mock_broadcaster, caller, creator, oplog, journal,
):
    orchestrator = make_orchestrator(
        mock_minter, mock_signer, mock_broadcaster, journal, finalizer=LaunchFinalizer.MINTER,
    )

    result = await orchestrator.launch(FOO, creator, "tok", oplog)

    txid = str(signature_of(mock_minter.issued, caller))
    assert mock_minter.submit_calls == [
        (mock_minter.mint_address, b64(partial_sign(mock_minter.issued, caller))),
    ]
    assert mock_broadcaster.submitted == []
    assert mock_broadcaster.confirm_calls == [txid]
    assert result.tx == txid
    assert (await journal.get_launch(mock_minter.mint_address)).is_launched


# ── Finalize an externally signed launch ───────────────


async def test_finalize_launch(
    orchestrator, mock_minter, mock_broadcaster, caller, creator, oplog, journal,
):
    await journal.save_launch(LaunchRecord(
        token_address=mock_minter.mint_address, token_name="Foo", token_ticker="FOO",
        description="d", image_url="https://img.example/f.png", creator=creator.wallet,
    ))
    raw = make_unsigned_v0(caller.pubkey())
    signed = b64(partial_sign(raw, caller))

    result = await orchestrator.finalize_launch(mock_minter.mint_address, signed, creator, oplog)

    assert result.tx == str(signature_of(raw, caller))
    assert result.token_name == "Foo"
    assert result.warning is None
    assert mock_minter.submit_calls == [(mock_minter.mint_address, signed)]
    assert mock_broadcaster.submitted == []
    assert (await journal.get_launch(mock_minter.mint_address)).is_launched


async def test_finalize_launch_without_record_warns(orchestrator, caller, creator, oplog):
    signed = b64(partial_sign(make_unsigned_v0(caller.pubkey()), caller))

    result = await orchestrator.finalize_launch(str(Pubkey.new_unique()), signed, creator, oplog)

    assert result.warning == UPDATE_FAILED_WARNING


async def test_finalize_launch_requires_caller_signature(
    orchestrator, mock_minter, caller, creator, oplog,
):
    unsigned = b64(make_unsigned_v0(caller.pubkey()))

    with pytest.raises(ValidationError) as exc_info:
        await orchestrator.finalize_launch(mock_minter.mint_address, unsigned, creator, oplog)

    assert exc_info.value.fields == ["tx"]
    assert mock_minter.submit_calls == []


async def test_finalize_launch_of_another_creators_token(
    orchestrator, mock_minter, caller, creator, oplog, journal,
):
    await journal.save_launch(LaunchRecord(
        token_address=mock_minter.mint_address, token_name="Foo", token_ticker="FOO",
        description="d", image_url="https://img.example/f.png",
        creator=str(Pubkey.new_unique()),
    ))
    signed = b64(partial_sign(make_unsigned_v0(caller.pubkey()), caller))

    with pytest.raises(Unauthenticated):
        await orchestrator.finalize_launch(mock_minter.mint_address, signed, creator, oplog)
    assert mock_minter.submit_calls == []
