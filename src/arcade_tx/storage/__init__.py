"""Operation journal storage."""

from arcade_tx.storage.oplog import OperationLog, new_operation_id
from arcade_tx.storage.sqlite import SQLiteJournal

__all__ = ["OperationLog", "SQLiteJournal", "new_operation_id"]
