"""Per-operation checkpoint writer on top of the journal."""

from __future__ import annotations

import logging
import uuid

from arcade_tx.interfaces.journal import OperationJournal
from arcade_tx.storage.sqlite import TERMINAL_STAGES

log = logging.getLogger(__name__)

JOURNAL_WARNING = "operation journal could not be written"


def new_operation_id() -> str:
    return uuid.uuid4().hex


class OperationLog:
    """Records stage transitions for one operation.

    A journal failure is logged but never changes the operation's outcome:
    once a transaction may be on the wire, the result must reach the caller.
    """

    def __init__(
        self,
        journal: OperationJournal,
        kind: str,
        caller: str,
        operation_id: str | None = None,
    ) -> None:
        self._journal = journal
        self.kind = kind
        self.caller = caller
        self.operation_id = operation_id or new_operation_id()
        self.healthy = True
        self.stage: str | None = None

    @property
    def finished(self) -> bool:
        return self.stage in TERMINAL_STAGES or self.stage == "unconfirmed"

    async def mark(self, stage: str, **detail: object) -> bool:
        self.stage = stage
        log.debug("%s %s -> %s %s", self.kind, self.operation_id[:8], stage, detail)
        try:
            await self._journal.record(
                self.operation_id, self.kind, stage, self.caller, dict(detail),
            )
        except Exception as exc:
            self.healthy = False
            log.error(
                "Journal write failed for %s %s at stage %s: %s",
                self.kind, self.operation_id, stage, exc, exc_info=True,
            )
            return False
        return True
