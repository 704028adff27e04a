"""SQLite implementation of the OperationJournal protocol."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from arcade_tx.models.records import Checkpoint, LaunchRecord

SCHEMA = """
-- Operation checkpoints (one row per stage transition)
CREATE TABLE IF NOT EXISTS checkpoints (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    operation_id TEXT NOT NULL,
    kind TEXT NOT NULL,
    stage TEXT NOT NULL,
    caller TEXT NOT NULL,
    detail TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_checkpoints_operation ON checkpoints(operation_id);

-- Token launches
CREATE TABLE IF NOT EXISTS token_launches (
    token_address TEXT PRIMARY KEY,
    token_name TEXT NOT NULL,
    token_ticker TEXT NOT NULL,
    description TEXT NOT NULL,
    image_url TEXT NOT NULL,
    creator TEXT NOT NULL,
    website TEXT,
    twitter TEXT,
    telegram TEXT,
    is_launched INTEGER NOT NULL DEFAULT 0,
    transaction_id TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

# Stages after which an operation is finished, successfully or not.
TERMINAL_STAGES = ("confirmed", "executed", "failed")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteJournal:
    """SQLite-backed implementation of the OperationJournal protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Journal not initialized. Call initialize() first."
        return self._db

    # ── Checkpoints ────────────────────────────────────────

    async def record(
        self,
        operation_id: str,
        kind: str,
        stage: str,
        caller: str,
        detail: dict | None = None,
    ) -> None:
        await self.db.execute(
            "INSERT INTO checkpoints (operation_id, kind, stage, caller, detail, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            (operation_id, kind, stage, caller, json.dumps(detail or {}), _now()),
        )
        await self.db.commit()

    async def get_checkpoints(self, operation_id: str) -> list[Checkpoint]:
        async with self.db.execute(
            "SELECT * FROM checkpoints WHERE operation_id=? ORDER BY id",
            (operation_id,),
        ) as cur:
            rows = await cur.fetchall()
        return [self._row_to_checkpoint(r) for r in rows]

    async def get_open_operations(self, limit: int = 50) -> list[Checkpoint]:
        """Latest checkpoint of every operation that never reached a terminal stage."""
        placeholders = ",".join("?" for _ in TERMINAL_STAGES)
        query = (
            "SELECT c.* FROM checkpoints c"
            " JOIN (SELECT operation_id, MAX(id) AS last_id FROM checkpoints"
            "       GROUP BY operation_id) latest ON c.id = latest.last_id"
            f" WHERE c.stage NOT IN ({placeholders})"
            " ORDER BY c.id DESC LIMIT ?"
        )
        async with self.db.execute(query, (*TERMINAL_STAGES, limit)) as cur:
            rows = await cur.fetchall()
        return [self._row_to_checkpoint(r) for r in rows]

    @staticmethod
    def _row_to_checkpoint(row: aiosqlite.Row) -> Checkpoint:
        return Checkpoint(
            operation_id=row["operation_id"],
            kind=row["kind"],
            stage=row["stage"],
            caller=row["caller"],
            detail=json.loads(row["detail"]),
            created_at=row["created_at"],
        )

    # ── Launches ───────────────────────────────────────────

    async def save_launch(self, record: LaunchRecord) -> None:
        now = _now()
        await self.db.execute(
            "INSERT INTO token_launches (token_address, token_name, token_ticker,"
            " description, image_url, creator, website, twitter, telegram,"
            " is_launched, transaction_id, created_at, updated_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
            " ON CONFLICT(token_address) DO UPDATE SET"
            " token_name=excluded.token_name, token_ticker=excluded.token_ticker,"
            " description=excluded.description, image_url=excluded.image_url,"
            " website=excluded.website, twitter=excluded.twitter,"
            " telegram=excluded.telegram, updated_at=excluded.updated_at",
            (
                record.token_address, record.token_name, record.token_ticker,
                record.description, record.image_url, record.creator,
                record.website, record.twitter, record.telegram,
                int(record.is_launched), record.transaction_id, now, now,
            ),
        )
        await self.db.commit()

    async def mark_launched(self, token_address: str, transaction_id: str | None) -> bool:
        cur = await self.db.execute(
            "UPDATE token_launches SET is_launched=1,"
            " transaction_id=COALESCE(?, transaction_id), updated_at=?"
            " WHERE token_address=?",
            (transaction_id, _now(), token_address),
        )
        await self.db.commit()
        return cur.rowcount > 0

    async def get_launch(self, token_address: str) -> LaunchRecord | None:
        async with self.db.execute(
            "SELECT * FROM token_launches WHERE token_address=?", (token_address,),
        ) as cur:
            row = await cur.fetchone()
        if row is None:
            return None
        return LaunchRecord(
            token_address=row["token_address"],
            token_name=row["token_name"],
            token_ticker=row["token_ticker"],
            description=row["description"],
            image_url=row["image_url"],
            creator=row["creator"],
            website=row["website"],
            twitter=row["twitter"],
            telegram=row["telegram"],
            is_launched=bool(row["is_launched"]),
            transaction_id=row["transaction_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
