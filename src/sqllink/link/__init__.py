from .catalog import (
    ColumnRow,
    IndexInfoRow,
    IndexInfoType,
    InspectorCatalog,
    PrimaryKeyRow,
    RemoteCatalog,
    TableRow,
)
from .connection import ConnectionManager
from .dialect import DialectFlags, DialectNormalizer, VendorFamily, normalize_identifier
from .executor import StatementExecutor
from .indexes import IndexReconstructor
from .introspection import SchemaIntrospector, TableShape
from .models import Column, Index, IndexKind, LinkDefinition, LinkKey, TypeDescriptor, TypeKind
from .scan_index import LinkedIndex
from .session import PreparedStatement, RemoteSession, SessionPool
from .table import LinkedTable

__all__ = [
    "ColumnRow",
    "IndexInfoRow",
    "IndexInfoType",
    "InspectorCatalog",
    "PrimaryKeyRow",
    "RemoteCatalog",
    "TableRow",
    "ConnectionManager",
    "DialectFlags",
    "DialectNormalizer",
    "VendorFamily",
    "normalize_identifier",
    "StatementExecutor",
    "IndexReconstructor",
    "SchemaIntrospector",
    "TableShape",
    "Column",
    "Index",
    "IndexKind",
    "LinkDefinition",
    "LinkKey",
    "TypeDescriptor",
    "TypeKind",
    "LinkedIndex",
    "PreparedStatement",
    "RemoteSession",
    "SessionPool",
    "LinkedTable",
]
