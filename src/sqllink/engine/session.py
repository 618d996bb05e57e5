from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from threading import RLock
from typing import Any, Callable, Iterator, List, Optional

from sqllink.common.cancellation import CancellationToken
from sqllink.engine.rows import Row


class UndoOperation(str, Enum):
    INSERT = "INSERT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class UndoLogRecord:
    table: str
    operation: UndoOperation
    row: Row


class UndoLog:
    """Append-only record of row changes made by one engine session."""

    def __init__(self):
        self._records: List[UndoLogRecord] = []
        self._lock = RLock()

    def add(self, record: UndoLogRecord) -> None:
        with self._lock:
            self._records.append(record)

    def records(self) -> List[UndoLogRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[UndoLogRecord]:
        return iter(self.records())


class EngineSession:
    """The local engine session a linked table operation runs on behalf of.

    Args:
        undo_log: Where row changes are recorded for local recovery.
        value_converter: Converts a local value to the form bound on the remote
            statement. Defaults to passing values through unchanged.
    """

    def __init__(
        self,
        undo_log: Optional[UndoLog] = None,
        value_converter: Optional[Callable[[Any], Any]] = None,
    ):
        self.undo_log = undo_log if undo_log is not None else UndoLog()
        self._value_converter = value_converter

    def log(self, table: Any, operation: UndoOperation, row: Row) -> None:
        name = getattr(table, "name", None) or str(table)
        self.undo_log.add(UndoLogRecord(table=name, operation=operation, row=row))

    def convert_to_remote(self, value: Any) -> Any:
        if self._value_converter is None:
            return value
        return self._value_converter(value)


@dataclass
class CommandContext:
    """The statement being executed; exposes the cooperative cancellation hook."""

    sql: Optional[str] = None
    cancellation: CancellationToken = field(default_factory=CancellationToken)

    def check_canceled(self) -> None:
        self.cancellation.check()
