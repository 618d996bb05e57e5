from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from sqllink.common.errors import AmbiguousRemoteObject, ObjectNotFound, remote_message

from .catalog import ColumnRow, InspectorCatalog, RemoteCatalog, probe_column_rows
from .dialect import DialectFlags, DialectNormalizer, VendorFamily
from .indexes import IndexReconstructor
from .models import Column, Index, IndexKind, LinkDefinition, TypeDescriptor, TypeKind
from .session import RemoteSession

logger = logging.getLogger(__name__)

DECIMAL_DEFAULT_PRECISION = 65535
DECIMAL_DEFAULT_SCALE = 32767
DATE_PRECISION = 10
TIMESTAMP_MAX_PRECISION = 29
TIME_MAX_PRECISION = 18


def convert_precision(kind: TypeKind, precision: int) -> int:
    # Oracle reports 0 for unconstrained DECIMAL and 7 for DATE
    if kind in (TypeKind.DECIMAL, TypeKind.NUMERIC):
        return DECIMAL_DEFAULT_PRECISION if precision == 0 else precision
    if kind == TypeKind.DATE:
        return max(DATE_PRECISION, precision)
    if kind == TypeKind.TIMESTAMP:
        return max(TIMESTAMP_MAX_PRECISION, precision)
    if kind == TypeKind.TIME:
        return max(TIME_MAX_PRECISION, precision)
    return precision


def convert_scale(kind: TypeKind, scale: int) -> int:
    # Oracle reports -127 for unconstrained DECIMAL
    if kind in (TypeKind.DECIMAL, TypeKind.NUMERIC) and scale < 0:
        return DECIMAL_DEFAULT_SCALE
    return scale


@dataclass
class TableShape:
    """Everything read from the remote side during one metadata pass."""

    columns: List[Column]
    column_map: Dict[str, Column]
    qualified_name: str
    is_query: bool
    flags: DialectFlags
    vendor: VendorFamily
    scan_index: Index
    indexes: List[Index] = field(default_factory=list)
    remote_schema: Optional[str] = None

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


class SchemaIntrospector:
    """
    Discovers the columns and indexes of a linked remote table.

    Columns come from the remote catalog when the link names a table, otherwise
    (sub-query links, or catalogs that report the table in several places) from
    the result shape of a zero-row probe query.

    Args:
        definition: The link being introspected.
        catalog_factory: Builds a RemoteCatalog from a live connection.
    """

    def __init__(
        self,
        definition: LinkDefinition,
        catalog_factory: Callable[[Any], RemoteCatalog] = InspectorCatalog,
    ):
        self.definition = definition
        self._catalog_factory = catalog_factory

    def read_metadata(self, session: RemoteSession) -> TableShape:
        """
        Reads the remote table shape. Must run under the session lock.

        Raises:
            AmbiguousRemoteObject: If the table name matches several remote tables.
            ObjectNotFound: If the probe query against the table fails.
        """
        catalog = self._catalog_factory(session.connection)
        flags = catalog.dialect_flags()
        session.flags = flags
        normalize = DialectNormalizer(flags, session.vendor)

        table = self.definition.remote_table
        remote_schema = self.definition.remote_schema
        is_query = self.definition.is_query

        columns: List[Column] = []
        reported_schema = None
        if not is_query:
            matches = catalog.tables(remote_schema, table)
            if len(matches) > 1:
                raise AmbiguousRemoteObject(
                    f"Schema name must match: {table} exists in more than one remote schema",
                    details={"schemas": [m.schema_name for m in matches]},
                )
            columns, reported_schema = self._catalog_columns(catalog.columns(remote_schema, table), normalize)

        if "." not in table and reported_schema:
            qualified_name = f"{reported_schema}.{table}"
        else:
            qualified_name = table

        probed = self._probe(session, qualified_name, table)
        if not columns:
            columns = self._to_columns(probed, normalize)

        column_map = {c.name: c for c in columns}
        scan_index = Index(kind=IndexKind.NON_UNIQUE, columns=tuple(columns))
        shape = TableShape(
            columns=columns,
            column_map=column_map,
            qualified_name=qualified_name,
            is_query=is_query,
            flags=flags,
            vendor=session.vendor,
            scan_index=scan_index,
            indexes=[scan_index],
            remote_schema=reported_schema,
        )
        if not is_query:
            reconstructor = IndexReconstructor(column_map, normalize)
            shape.indexes.extend(reconstructor.read_indexes(catalog, remote_schema, table))
        logger.debug(f"Linked {qualified_name}: columns={shape.column_names}, indexes={len(shape.indexes)}")
        return shape

    def _catalog_columns(self, rows, normalize) -> Tuple[List[Column], Optional[str]]:
        """Collects columns while every row reports the same catalog and schema.

        Returns:
            The columns (empty when the rows disagree) and the first reported schema.
        """
        gathered: List[ColumnRow] = []
        catalog = None
        schema = None
        for row in rows:
            if catalog is None:
                catalog = row.catalog
            if schema is None:
                schema = row.schema_name
            if row.catalog != catalog or row.schema_name != schema:
                # the table exists in several places, use the probe instead
                gathered = []
                break
            gathered.append(row)
        return self._to_columns(gathered, normalize), schema

    def _to_columns(self, rows: List[ColumnRow], normalize) -> List[Column]:
        columns = []
        for ordinal, row in enumerate(rows):
            descriptor = TypeDescriptor(
                kind=row.kind,
                precision=convert_precision(row.kind, row.precision),
                scale=convert_scale(row.kind, row.scale),
                type_name=row.type_name,
            )
            columns.append(Column(
                name=normalize(row.column_name),
                type=descriptor,
                ordinal=ordinal,
                remote_name=row.column_name,
                nullable=row.nullable,
            ))
        return columns

    def _probe(self, session: RemoteSession, qualified_name: str, table: str) -> List[ColumnRow]:
        sql = f"SELECT * FROM {qualified_name} T WHERE 1=0"
        connection = session.connection
        try:
            result = connection.exec_driver_sql(sql)
            try:
                return probe_column_rows(result.cursor.description, connection.dialect.dbapi)
            finally:
                result.close()
        except SQLAlchemyError as exc:
            text = remote_message(exc)
            raise ObjectNotFound(
                f"Table {table}({text}) not found",
                sql=sql,
                remote_message=text,
                details={"qualified_name": qualified_name},
            ) from exc
