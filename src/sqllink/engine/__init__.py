from .capabilities import TableCapability
from .rows import DEFAULT, Row
from .session import CommandContext, EngineSession, UndoLog, UndoLogRecord, UndoOperation
from .protocols import IndexProtocol, TableProtocol
from .tables import TableKind, TableRegistry, TableVariant, replace_rows

__all__ = [
    "TableCapability",
    "DEFAULT",
    "Row",
    "CommandContext",
    "EngineSession",
    "UndoLog",
    "UndoLogRecord",
    "UndoOperation",
    "IndexProtocol",
    "TableProtocol",
    "TableKind",
    "TableRegistry",
    "TableVariant",
    "replace_rows",
]
