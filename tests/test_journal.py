"""SQLiteJournal and OperationLog."""

from __future__ import annotations

from arcade_tx.models.records import LaunchRecord
from arcade_tx.storage.oplog import OperationLog

from tests.mocks import FailingJournal


def launch_record(address: str = "Mint1111", **overrides) -> LaunchRecord:
    fields = dict(
        token_address=address,
        token_name="Foo",
        token_ticker="FOO",
        description="d",
        image_url="https://img.example/f.png",
        creator="Creator111",
    )
    fields.update(overrides)
    return LaunchRecord(**fields)


async def test_checkpoints_are_ordered(journal):
    await journal.record("op1", "transfer", "started", "wallet", {"lamports": 5})
    await journal.record("op1", "transfer", "submitted", "wallet", {"transactionId": "sig"})
    await journal.record("op2", "buy", "started", "wallet")

    checkpoints = await journal.get_checkpoints("op1")

    assert [c.stage for c in checkpoints] == ["started", "submitted"]
    assert checkpoints[0].detail == {"lamports": 5}
    assert checkpoints[0].kind == "transfer"
    assert checkpoints[1].created_at


async def test_open_operations_exclude_terminal_stages(journal):
    await journal.record("done", "transfer", "started", "w")
    await journal.record("done", "transfer", "confirmed", "w")
    await journal.record("swap", "buy", "started", "w")
    await journal.record("swap", "buy", "executed", "w")
    await journal.record("limbo", "sign", "started", "w")
    await journal.record("limbo", "sign", "submitted", "w", {"transactionId": "sig"})
    await journal.record("lost", "transfer", "unconfirmed", "w")

    open_ops = await journal.get_open_operations()

    assert [(c.operation_id, c.stage) for c in open_ops] == [
        ("lost", "unconfirmed"),
        ("limbo", "submitted"),
    ]


async def test_open_operations_limit(journal):
    for i in range(5):
        await journal.record(f"op{i}", "sign", "started", "w")
    assert len(await journal.get_open_operations(limit=2)) == 2


async def test_save_launch_is_an_upsert(journal):
    await journal.save_launch(launch_record())
    await journal.mark_launched("Mint1111", "sig1")
    await journal.save_launch(launch_record(token_name="Foo v2", creator="Someone"))

    record = await journal.get_launch("Mint1111")

    assert record.token_name == "Foo v2"
    assert record.creator == "Creator111"
    assert record.is_launched
    assert record.transaction_id == "sig1"


async def test_mark_launched_keeps_existing_transaction_id(journal):
    await journal.save_launch(launch_record())
    assert await journal.mark_launched("Mint1111", "sig1")
    assert await journal.mark_launched("Mint1111", None)
    assert (await journal.get_launch("Mint1111")).transaction_id == "sig1"


async def test_mark_launched_unknown_token(journal):
    assert not await journal.mark_launched("Nope", "sig")
    assert await journal.get_launch("Nope") is None


async def test_operation_log_tracks_stage(journal):
    oplog = OperationLog(journal, "transfer", "wallet")

    assert await oplog.mark("started")
    assert oplog.stage == "started" and not oplog.finished
    await oplog.mark("confirmed", transactionId="sig")

    assert oplog.finished
    assert oplog.healthy
    assert len(oplog.operation_id) == 32
    assert [c.stage for c in await journal.get_checkpoints(oplog.operation_id)] == [
        "started", "confirmed",
    ]


async def test_unconfirmed_is_finished_for_the_operation():
    oplog = OperationLog(FailingJournal(), "sign", "wallet")
    await oplog.mark("unconfirmed")
    assert oplog.finished


async def test_operation_log_survives_journal_failure():
    oplog = OperationLog(FailingJournal(), "sign", "wallet")

    assert not await oplog.mark("started")
    assert not oplog.healthy
    assert oplog.stage == "started"
