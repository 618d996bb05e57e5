from enum import Enum


class TableCapability(str, Enum):
    """Capability flags a table variant can advertise to the engine."""

    SCAN = "scan"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    ROW_COUNT = "row_count"


ALL_CAPABILITIES = frozenset(TableCapability)
READ_CAPABILITIES = frozenset({TableCapability.SCAN, TableCapability.ROW_COUNT})
