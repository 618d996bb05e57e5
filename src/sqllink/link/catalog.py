"""
Remote catalog access.

Reconstruction works on flat catalog rows (one row per column, per primary key
column, per index column) in the shape relational catalogs report them. The
`InspectorCatalog` produces those rows from SQLAlchemy's `Inspector`; tests and
other drivers can supply any object that satisfies `RemoteCatalog`.
"""
from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any, Iterable, List, Optional, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict
from sqlalchemy import inspect
from sqlalchemy import types as sqltypes

from .dialect import DialectFlags, get_dialect_flags
from .models import TypeDescriptor, TypeKind

logger = logging.getLogger(__name__)


class TableRow(BaseModel):
    catalog: Optional[str] = None
    schema_name: Optional[str] = None
    table_name: str

    model_config = ConfigDict(frozen=True)


class ColumnRow(BaseModel):
    catalog: Optional[str] = None
    schema_name: Optional[str] = None
    table_name: Optional[str] = None
    column_name: str
    kind: TypeKind = TypeKind.OTHER
    type_name: Optional[str] = None
    precision: int = 0
    scale: int = 0
    nullable: bool = True

    model_config = ConfigDict(frozen=True)


class PrimaryKeyRow(BaseModel):
    column_name: str
    key_seq: int
    pk_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class IndexInfoType(IntEnum):
    """Index row kinds, numbered as relational catalogs number them."""
    STATISTIC = 0
    CLUSTERED = 1
    HASHED = 2
    OTHER = 3


class IndexInfoRow(BaseModel):
    index_name: Optional[str] = None
    column_name: Optional[str] = None
    non_unique: bool = True
    type: IndexInfoType = IndexInfoType.OTHER
    ordinal_position: int = 0

    model_config = ConfigDict(frozen=True)


@runtime_checkable
class RemoteCatalog(Protocol):
    """Catalog metadata of one remote connection."""

    def dialect_flags(self) -> DialectFlags:
        ...

    def tables(self, schema: Optional[str], table: str) -> List[TableRow]:
        ...

    def columns(self, schema: Optional[str], table: str) -> Iterable[ColumnRow]:
        ...

    def primary_keys(self, schema: Optional[str], table: str) -> Iterable[PrimaryKeyRow]:
        ...

    def index_info(self, schema: Optional[str], table: str) -> Iterable[IndexInfoRow]:
        ...


def _kind_for_sqla_type(sa_type: Any) -> TypeKind:
    if isinstance(sa_type, sqltypes.Boolean):
        return TypeKind.BOOLEAN
    if isinstance(sa_type, sqltypes.Integer):
        if type(sa_type).__name__.upper() == "TINYINT":
            return TypeKind.TINYINT
        if isinstance(sa_type, sqltypes.SmallInteger):
            return TypeKind.SMALLINT
        if isinstance(sa_type, sqltypes.BigInteger):
            return TypeKind.BIGINT
        return TypeKind.INTEGER
    if isinstance(sa_type, sqltypes.Float):
        if isinstance(sa_type, sqltypes.REAL):
            return TypeKind.REAL
        if type(sa_type).__name__.upper().startswith("DOUBLE"):
            return TypeKind.DOUBLE
        return TypeKind.FLOAT
    if isinstance(sa_type, sqltypes.Numeric):
        if isinstance(sa_type, sqltypes.DECIMAL):
            return TypeKind.DECIMAL
        return TypeKind.NUMERIC
    if isinstance(sa_type, sqltypes.DateTime):
        return TypeKind.TIMESTAMP
    if isinstance(sa_type, sqltypes.Date):
        return TypeKind.DATE
    if isinstance(sa_type, sqltypes.Time):
        return TypeKind.TIME
    if isinstance(sa_type, sqltypes.String):
        if isinstance(sa_type, sqltypes.Text):
            return TypeKind.CLOB
        if isinstance(sa_type, sqltypes.CHAR):
            return TypeKind.CHAR
        return TypeKind.VARCHAR
    if isinstance(sa_type, sqltypes.LargeBinary):
        return TypeKind.BLOB
    if isinstance(sa_type, sqltypes.BINARY):
        return TypeKind.BINARY
    if isinstance(sa_type, sqltypes._Binary):
        return TypeKind.VARBINARY
    if isinstance(sa_type, sqltypes.JSON):
        return TypeKind.JSON
    return TypeKind.OTHER


def describe_sqla_type(sa_type: Any) -> TypeDescriptor:
    """Maps a reflected SQLAlchemy type to a raw (uncorrected) TypeDescriptor."""
    kind = _kind_for_sqla_type(sa_type)
    precision = 0
    scale = 0
    if isinstance(sa_type, sqltypes.Numeric):
        precision = sa_type.precision or 0
        scale = getattr(sa_type, "scale", None) or 0
    elif isinstance(sa_type, (sqltypes.String, sqltypes._Binary)):
        precision = getattr(sa_type, "length", None) or 0
    elif isinstance(sa_type, (sqltypes.DateTime, sqltypes.Time)):
        precision = getattr(sa_type, "precision", None) or getattr(sa_type, "fsp", None) or 0
    try:
        type_name = str(sa_type)
    except Exception:
        # some reflected types cannot be compiled without a dialect
        type_name = type(sa_type).__name__
    return TypeDescriptor(kind=kind, precision=int(precision), scale=int(scale), type_name=type_name)


_DBAPI_TYPE_OBJECTS = (
    ("NUMBER", TypeKind.DECIMAL),
    ("DATETIME", TypeKind.TIMESTAMP),
    ("STRING", TypeKind.VARCHAR),
    ("BINARY", TypeKind.VARBINARY),
)


def _kind_for_type_code(type_code: Any, dbapi: Any) -> TypeKind:
    if dbapi is None or type_code is None:
        return TypeKind.OTHER
    for attr, kind in _DBAPI_TYPE_OBJECTS:
        type_object = getattr(dbapi, attr, None)
        if type_object is not None and type_code == type_object:
            return kind
    return TypeKind.OTHER


def probe_column_rows(description: Sequence[Sequence[Any]], dbapi: Any) -> List[ColumnRow]:
    """Derives column rows from a DBAPI ``cursor.description``.

    Args:
        description: The 7-item sequences describing each result column.
        dbapi: The DBAPI module, whose type objects classify ``type_code``.

    Returns:
        One ColumnRow per result column, in result order.
    """
    rows = []
    for entry in description or ():
        name, type_code = entry[0], entry[1]
        internal_size = entry[3] if len(entry) > 3 else None
        precision = entry[4] if len(entry) > 4 else None
        scale = entry[5] if len(entry) > 5 else None
        null_ok = entry[6] if len(entry) > 6 else None
        kind = _kind_for_type_code(type_code, dbapi)
        if kind in (TypeKind.VARCHAR, TypeKind.VARBINARY) and not precision:
            precision = internal_size
        rows.append(ColumnRow(
            column_name=str(name),
            kind=kind,
            type_name=None if type_code is None else str(type_code),
            precision=precision if isinstance(precision, int) else 0,
            scale=scale if isinstance(scale, int) else 0,
            nullable=null_ok is not False,
        ))
    return rows


class InspectorCatalog:
    """
    RemoteCatalog backed by SQLAlchemy reflection on a live connection.

    A schema of ``None`` searches every schema the remote reports, the way
    relational catalogs treat a null schema pattern.
    """

    def __init__(self, connection: Any):
        self._connection = connection
        self._inspector = inspect(connection)

    def dialect_flags(self) -> DialectFlags:
        return get_dialect_flags(self._connection.dialect)

    def _schemas_for(self, schema: Optional[str]) -> List[Optional[str]]:
        if schema is not None:
            return [schema]
        try:
            return list(self._inspector.get_schema_names()) or [None]
        except NotImplementedError:
            return [None]

    def tables(self, schema: Optional[str], table: str) -> List[TableRow]:
        found = []
        for schema_name in self._schemas_for(schema):
            if self._inspector.has_table(table, schema=schema_name):
                found.append(TableRow(schema_name=schema_name, table_name=table))
        return found

    def columns(self, schema: Optional[str], table: str) -> Iterable[ColumnRow]:
        for match in self.tables(schema, table):
            for info in self._inspector.get_columns(table, schema=match.schema_name):
                described = describe_sqla_type(info["type"])
                yield ColumnRow(
                    schema_name=match.schema_name,
                    table_name=table,
                    column_name=info["name"],
                    kind=described.kind,
                    type_name=described.type_name,
                    precision=described.precision,
                    scale=described.scale,
                    nullable=bool(info.get("nullable", True)),
                )

    def primary_keys(self, schema: Optional[str], table: str) -> Iterable[PrimaryKeyRow]:
        constraint = self._inspector.get_pk_constraint(table, schema=schema) or {}
        name = constraint.get("name")
        for seq, column_name in enumerate(constraint.get("constrained_columns") or (), start=1):
            yield PrimaryKeyRow(column_name=column_name, key_seq=seq, pk_name=name)

    def index_info(self, schema: Optional[str], table: str) -> Iterable[IndexInfoRow]:
        seen = set()
        for index in self._inspector.get_indexes(table, schema=schema):
            seen.add(index.get("name"))
            non_unique = not index.get("unique", False)
            for position, column_name in enumerate(index.get("column_names") or (), start=1):
                # expression elements are reported as None
                yield IndexInfoRow(
                    index_name=index.get("name"),
                    column_name=column_name,
                    non_unique=non_unique,
                    ordinal_position=position,
                )
        try:
            constraints = self._inspector.get_unique_constraints(table, schema=schema)
        except NotImplementedError:
            constraints = []
        for constraint in constraints:
            name = constraint.get("name")
            if not name or name in seen:
                continue
            for position, column_name in enumerate(constraint.get("column_names") or (), start=1):
                yield IndexInfoRow(
                    index_name=name,
                    column_name=column_name,
                    non_unique=False,
                    ordinal_position=position,
                )
