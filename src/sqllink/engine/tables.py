from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from threading import RLock
from typing import Dict, List, Optional, Sequence, Tuple

from .capabilities import TableCapability
from .protocols import TableProtocol
from .rows import Row
from .session import CommandContext, EngineSession, UndoOperation

logger = logging.getLogger(__name__)


class TableKind(str, Enum):
    REGULAR = "regular"
    VIEW = "view"
    LINKED = "linked"


@dataclass(frozen=True)
class TableVariant:
    """Tagged variant the engine dispatches on instead of a table class hierarchy."""

    kind: TableKind
    table: TableProtocol

    @classmethod
    def linked(cls, table: TableProtocol) -> "TableVariant":
        return cls(kind=TableKind.LINKED, table=table)

    @property
    def name(self) -> str:
        return self.table.name

    def supports(self, capability: TableCapability) -> bool:
        return capability in self.table.capabilities()


def replace_rows(
    table: TableProtocol,
    command: CommandContext,
    session: EngineSession,
    rows: Sequence[Tuple[Row, Row]],
) -> None:
    """Generic row replacement: delete every old row, then insert every new row.

    Each change is recorded in the session undo log, and cancellation is checked
    before every row.
    """
    for old_row, _ in rows:
        command.check_canceled()
        table.remove_row(session, old_row)
        session.log(table, UndoOperation.DELETE, old_row)
    for _, new_row in rows:
        command.check_canceled()
        table.add_row(session, new_row)
        session.log(table, UndoOperation.INSERT, new_row)


class TableRegistry:
    """Keeps tables registered with the engine, keyed by (schema, name)."""

    def __init__(self):
        self._tables: Dict[Tuple[str, str], TableVariant] = {}
        self._lock = RLock()

    def register(self, schema: str, variant: TableVariant) -> TableVariant:
        key = (schema, variant.name)
        with self._lock:
            if key in self._tables:
                raise ValueError(f"Table already registered: {schema}.{variant.name}")
            self._tables[key] = variant
        logger.info(f"Registered {variant.kind.value} table {schema}.{variant.name}")
        return variant

    def get(self, schema: str, name: str) -> Optional[TableVariant]:
        with self._lock:
            return self._tables.get((schema, name))

    def list_tables(self) -> List[TableVariant]:
        with self._lock:
            return list(self._tables.values())

    def drop(self, schema: str, name: str, session: Optional[EngineSession] = None) -> None:
        """Unregisters a table and releases everything it holds."""
        with self._lock:
            variant = self._tables.pop((schema, name), None)
        if variant is None:
            raise ValueError(f"Unknown table: {schema}.{name}")
        variant.table.remove_children_and_resources(session)
        logger.info(f"Dropped {variant.kind.value} table {schema}.{name}")
