"""OperationJournal protocol - checkpoints and launch records."""

from __future__ import annotations

from typing import Protocol

from arcade_tx.models.records import Checkpoint, LaunchRecord


class OperationJournal(Protocol):
    """Makes a crash between "signed" and "broadcast" diagnosable."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        ...

    # ── Checkpoints ────────────────────────────────────────

    async def record(
        self,
        operation_id: str,
        kind: str,
        stage: str,
        caller: str,
        detail: dict | None = None,
    ) -> None:
        ...

    async def get_checkpoints(self, operation_id: str) -> list[Checkpoint]:
        ...

    # ── Launches ───────────────────────────────────────────

    async def save_launch(self, record: LaunchRecord) -> None:
        ...

    async def mark_launched(self, token_address: str, transaction_id: str | None) -> bool:
        """Returns False if no launch with that address exists."""
        ...

    async def get_launch(self, token_address: str) -> LaunchRecord | None:
        ...
