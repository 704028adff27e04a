"""TransactionPipeline entry points end to end against mocked upstreams."""

from __future__ import annotations

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from arcade_tx.errors import (
    ConfirmationTimeout,
    MalformedTransaction,
    NotFound,
    OnChainError,
    PipelineError,
    SignerRejected,
    Unauthenticated,
    ValidationError,
)
from arcade_tx.ledger.broadcaster import RpcBroadcaster
from arcade_tx.models.transactions import TransactionId

from tests.conftest import BONK_MINT, TREASURY, make_token
from tests.factories import make_unsigned_legacy, make_unsigned_two_signers, signature_of
from tests.mocks import MockRpcClient, landed


async def stages(pipeline, operation_id) -> list[str]:
    return [c.stage for c in await pipeline.journal.get_checkpoints(operation_id)]


async def all_stages(pipeline) -> list[str]:
    async with pipeline.journal.db.execute("SELECT stage FROM checkpoints ORDER BY id") as cur:
        return [row["stage"] for row in await cur.fetchall()]


# ── Transfer ───────────────────────────────────────────


async def test_transfer_default_amount(pipeline, token, caller, mock_anchors, mock_broadcaster):
    result = await pipeline.transfer(None, token)

    assert result.success
    assert result.raw_amount == 1_000_000
    assert result.kind == "transfer"
    submitted = VersionedTransaction.from_bytes(mock_broadcaster.submitted[0])
    assert str(submitted.message.recent_blockhash) == mock_anchors.issued[0]
    assert submitted.message.account_keys[0] == caller.pubkey()
    assert str(submitted.message.account_keys[1]) == TREASURY
    assert await stages(pipeline, result.operation_id) == [
        "started", "signed", "submitted", "confirmed",
    ]


async def test_every_transfer_gets_a_fresh_anchor(pipeline, token, mock_anchors, mock_broadcaster):
    await pipeline.transfer("0.1", token)
    await pipeline.transfer("0.1", token)

    anchors = [
        str(VersionedTransaction.from_bytes(raw).message.recent_blockhash)
        for raw in mock_broadcaster.submitted
    ]
    assert anchors == mock_anchors.issued
    assert anchors[0] != anchors[1]


async def test_transfer_amount_in_sol(pipeline, token):
    result = await pipeline.transfer("0.1", token)
    assert result.raw_amount == 100_000_000


async def test_transfer_invalid_amount(pipeline, token, mock_signer):
    with pytest.raises(ValidationError):
        await pipeline.transfer("-2", token)
    assert mock_signer.sign_calls == []


# ── Authentication ─────────────────────────────────────


@pytest.mark.parametrize("credential", [None, "", "garbage"])
async def test_unauthenticated_never_reaches_the_signer(
    pipeline, mock_signer, mock_anchors, credential,
):
    with pytest.raises(Unauthenticated):
        await pipeline.transfer(None, credential)
    assert mock_signer.sign_calls == []
    assert mock_anchors.issued == []


async def test_token_for_invalid_wallet_is_rejected(pipeline, mock_signer):
    with pytest.raises(Unauthenticated):
        await pipeline.buy("1", BONK_MINT, make_token("not-a-wallet"))
    assert mock_signer.sign_calls == []


async def test_credential_is_forwarded_to_the_signer(pipeline, token, mock_signer):
    await pipeline.transfer(None, token)
    assert mock_signer.sign_calls[0][2] == token


# ── Terminal states in the journal ─────────────────────


async def test_confirmation_timeout_is_journaled_unconfirmed(pipeline, token, mock_broadcaster):
    mock_broadcaster.outcome = "timeout"

    with pytest.raises(ConfirmationTimeout) as exc_info:
        await pipeline.transfer(None, token)

    assert exc_info.value.retry == "unknown"
    open_ops = await pipeline.journal.get_open_operations()
    assert [c.stage for c in open_ops] == ["unconfirmed"]
    assert open_ops[0].detail["transactionId"] == exc_info.value.transaction_id


async def test_on_chain_error_is_journaled_once(pipeline, token, mock_broadcaster):
    mock_broadcaster.outcome = "failed"

    with pytest.raises(OnChainError):
        await pipeline.transfer(None, token)

    assert await all_stages(pipeline) == ["started", "signed", "submitted", "failed"]


async def test_unreadable_transaction_id_is_journaled_unconfirmed(pipeline, token):
    class ForeignIdSigner:
        async def sign(self, operation, payload, credential):
            return TransactionId("ab" * 32)

    pipeline.signer = ForeignIdSigner()
    pipeline.broadcaster = RpcBroadcaster(MockRpcClient([landed()]))

    with pytest.raises(PipelineError) as exc_info:
        await pipeline.transfer(None, token)

    assert exc_info.value.stage == "confirm"
    assert await all_stages(pipeline) == ["started", "signed", "unconfirmed"]


async def test_signer_rejection_is_journaled_failed(pipeline, token, mock_signer):
    mock_signer.mode = "reject"

    with pytest.raises(SignerRejected):
        await pipeline.transfer(None, token)

    assert await all_stages(pipeline) == ["started", "failed"]


# ── Sign and broadcast ─────────────────────────────────


async def test_sign_and_broadcast_keeps_the_callers_anchor(
    pipeline, token, caller, mock_anchors, mock_broadcaster,
):
    raw = make_unsigned_legacy(caller.pubkey())

    result = await pipeline.sign_and_broadcast(raw.hex(), token)

    assert result.transaction_id == str(signature_of(raw, caller))
    assert mock_anchors.issued == []
    submitted = VersionedTransaction.from_bytes(mock_broadcaster.submitted[0])
    assert submitted.message == VersionedTransaction.from_bytes(raw).message


async def test_sign_and_broadcast_as_cosigner(pipeline, token, caller, mock_broadcaster):
    raw = make_unsigned_two_signers(Keypair().pubkey(), caller.pubkey())

    await pipeline.sign_and_broadcast(raw.hex(), token)

    submitted = VersionedTransaction.from_bytes(mock_broadcaster.submitted[0])
    assert submitted.signatures[1] == signature_of(raw, caller)


async def test_sign_and_broadcast_requires_the_callers_signature(pipeline, token, mock_signer):
    raw = make_unsigned_legacy(Keypair().pubkey())

    with pytest.raises(ValidationError) as exc_info:
        await pipeline.sign_and_broadcast(raw.hex(), token)

    assert exc_info.value.fields == ["transactionHex"]
    assert mock_signer.sign_calls == []


@pytest.mark.parametrize("tx_hex", ["zz", "00ff", ""])
async def test_sign_and_broadcast_malformed(pipeline, token, mock_signer, tx_hex):
    with pytest.raises(ValidationError) as exc_info:
        await pipeline.sign_and_broadcast(tx_hex, token)
    assert exc_info.value.fields == ["transactionHex"]
    assert mock_signer.sign_calls == []


async def test_non_hex_payload_is_malformed(pipeline, token):
    with pytest.raises(MalformedTransaction):
        await pipeline.sign_and_broadcast("not hex at all", token)


async def test_signer_returning_a_txid_is_only_confirmed(pipeline, token, caller, mock_signer,
                                                          mock_broadcaster):
    mock_signer.mode = "txid"
    raw = make_unsigned_legacy(caller.pubkey())

    result = await pipeline.sign_and_broadcast(raw.hex(), token)

    assert mock_broadcaster.submitted == []
    assert mock_broadcaster.confirm_calls == [result.transaction_id]


# ── Swaps, launches, mints ─────────────────────────────


async def test_buy(pipeline, token, mock_aggregator, caller):
    result = await pipeline.buy("0.1", BONK_MINT, token)

    assert result.kind == "buy"
    assert mock_aggregator.order_calls[0][2:] == (100_000_000, str(caller.pubkey()))
    assert await stages(pipeline, result.operation_id) == ["started", "signed", "executed"]


async def test_rejected_buy_never_reaches_the_ledger(
    pipeline, token, mock_signer, mock_aggregator, mock_broadcaster,
):
    mock_signer.mode = "reject"

    with pytest.raises(SignerRejected):
        await pipeline.buy("0.1", BONK_MINT, token)

    assert mock_aggregator.execute_calls == []
    assert mock_broadcaster.submitted == [] and mock_broadcaster.confirm_calls == []


async def test_sell(pipeline, token, mock_aggregator):
    result = await pipeline.sell("2.5", BONK_MINT, token)
    assert result.kind == "sell"
    assert mock_aggregator.order_calls[0][2] == 250_000


async def test_launch_from_form_payload(pipeline, token, caller, mock_minter):
    result = await pipeline.launch(
        {
            "name": "Foo",
            "tokenTicker": "foo",
            "description": "The foo token",
            "image": "https://img.example/foo.png",
            "user": str(Pubkey.new_unique()),
        },
        token,
    )

    assert result.token_address == mock_minter.mint_address
    assert result.token_ticker == "FOO"
    assert mock_minter.mint_calls[0]["user"] == str(caller.pubkey())
    assert (await pipeline.journal.get_launch(mock_minter.mint_address)).is_launched


async def test_finalize_launch_requires_fields(pipeline, token, mock_minter):
    with pytest.raises(ValidationError):
        await pipeline.finalize_launch("", "", token)
    assert mock_minter.submit_calls == []


async def test_resolve_mint(pipeline):
    info = await pipeline.resolve_mint(BONK_MINT)
    assert info.decimals == 5

    with pytest.raises(NotFound):
        await pipeline.resolve_mint(str(Pubkey.new_unique()))
