from __future__ import annotations

import logging
import sys
from threading import RLock
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from sqllink.common.errors import (
    LinkError,
    ReadOnlyViolation,
    TableClosed,
    UnsupportedOperation,
    wrap_exception,
)
from sqllink.common.logger import link_context
from sqllink.common.settings import Settings, settings as default_settings
from sqllink.engine.capabilities import ALL_CAPABILITIES, READ_CAPABILITIES, TableCapability
from sqllink.engine.rows import Row
from sqllink.engine.session import CommandContext, EngineSession, UndoOperation
from sqllink.engine.tables import TableVariant, replace_rows

from . import ddl
from .catalog import InspectorCatalog, RemoteCatalog
from .connection import ConnectionManager
from .dialect import DialectFlags, VendorFamily, vendor_family_from_url
from .executor import StatementExecutor
from .introspection import SchemaIntrospector, TableShape
from .models import Column, Index, IndexKind, LinkDefinition
from .scan_index import LinkedIndex
from .session import PreparedStatement, RemoteSession, SessionPool

logger = logging.getLogger(__name__)

ROW_COUNT_APPROXIMATION = 100_000


class LinkedTable:
    """
    A table stored in a remote database, exposed as a table of the local engine.

    Construction connects to the remote side and reads its columns and indexes.
    With ``definition.force`` a link whose remote side cannot be reached is
    still created, without columns; every later remote access then raises the
    remembered connect failure until the table is recreated.

    Args:
        schema_name: Local schema the table is registered in.
        table_id: Local numeric object id.
        name: Local table name.
        definition: Remote target and link options.
        pool: Where remote sessions come from.
        settings: Settings providing defaults; the module settings if omitted.
        catalog_factory: Builds the catalog reader for a remote connection.
    """

    def __init__(
        self,
        schema_name: str,
        table_id: int,
        name: str,
        definition: LinkDefinition,
        pool: SessionPool,
        settings: Optional[Settings] = None,
        catalog_factory: Callable[[Any], RemoteCatalog] = InspectorCatalog,
    ):
        settings = settings or default_settings
        self.schema_name = schema_name
        self.id = table_id
        self.name = name
        self._definition = definition
        self._read_only = definition.read_only
        self._fetch_size = definition.fetch_size
        self._default_fetch_size = settings.default_fetch_size
        self._global_temporary = definition.global_temporary
        self.vendor: VendorFamily = vendor_family_from_url(definition.url)
        self.flags = DialectFlags()

        self.columns: List[Column] = []
        self._column_map: Dict[str, Column] = {}
        self._qualified_name = definition.remote_table
        self._scan_index: Optional[LinkedIndex] = None
        self._indexes: List[LinkedIndex] = []
        self._count_lock = RLock()
        self._valid = True

        self._introspector = SchemaIntrospector(definition, catalog_factory)
        self._connection = ConnectionManager(definition.key, pool, self._read_metadata, name)
        self.executor = StatementExecutor(self._connection, name, self._effective_fetch_size)

        with link_context(name):
            try:
                self._connection.connect()
            except LinkError as exc:
                if not definition.force:
                    raise
                logger.warning(f"Linked table {name} created without a connection: {exc}")
                self._install_scan_index()

    def _read_metadata(self, session: RemoteSession) -> None:
        shape = self._introspector.read_metadata(session)
        self.flags = shape.flags
        if self._scan_index is None:
            self._adopt(shape)
        elif shape.column_names != [c.name for c in self.columns]:
            # columns and indexes stay fixed for the lifetime of the table
            logger.warning(
                f"Remote table {shape.qualified_name} changed shape since it was linked; "
                f"keeping columns {[c.name for c in self.columns]}"
            )

    def _adopt(self, shape: TableShape) -> None:
        self.columns = shape.columns
        self._column_map = shape.column_map
        self._qualified_name = shape.qualified_name
        self._scan_index = LinkedIndex(self, shape.scan_index)
        self._indexes = [self._scan_index]
        self._indexes.extend(LinkedIndex(self, index) for index in shape.indexes if index is not shape.scan_index)

    def _install_scan_index(self) -> None:
        self.columns = []
        self._column_map = {}
        self._scan_index = LinkedIndex(self, Index(kind=IndexKind.NON_UNIQUE, columns=()))
        self._indexes = [self._scan_index]

    def _check_valid(self) -> None:
        if not self._valid:
            raise TableClosed(f"Linked table {self.name} has been removed")

    def _check_read_only(self) -> None:
        if self._read_only:
            raise ReadOnlyViolation(f"Linked table {self.name} is read only")

    @property
    def definition(self) -> Optional[LinkDefinition]:
        return self._definition

    @property
    def qualified_name(self) -> str:
        return self._qualified_name

    @property
    def connect_failure(self) -> Optional[LinkError]:
        return self._connection.connect_failure

    @property
    def session(self) -> Optional[RemoteSession]:
        return self._connection.session

    @property
    def read_only(self) -> bool:
        return self._read_only

    @read_only.setter
    def read_only(self, value: bool) -> None:
        self._read_only = value

    @property
    def fetch_size(self) -> int:
        return self._fetch_size

    @fetch_size.setter
    def fetch_size(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"Fetch size must not be negative: {value}")
        self._fetch_size = value

    def _effective_fetch_size(self) -> int:
        # 0 defers to the configured default, which is never written to the DDL
        return self._fetch_size or self._default_fetch_size

    @property
    def global_temporary(self) -> bool:
        return self._global_temporary

    @global_temporary.setter
    def global_temporary(self, value: bool) -> None:
        self._global_temporary = value

    @property
    def comment(self) -> Optional[str]:
        return self._definition.comment if self._definition else None

    def capabilities(self) -> FrozenSet[TableCapability]:
        if self._read_only:
            return READ_CAPABILITIES
        return ALL_CAPABILITIES

    def as_variant(self) -> TableVariant:
        return TableVariant.linked(self)

    def get_column(self, name: str) -> Optional[Column]:
        return self._column_map.get(name)

    def column_sql(self, column: Column) -> str:
        """The remote column name, quoted for the remote dialect when needed."""
        return self._connection.require_session().quote_identifier(column.remote_name)

    def execute(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        reuse_prepared: bool = True,
        session: Optional[EngineSession] = None,
    ) -> Optional[PreparedStatement]:
        self._check_valid()
        with link_context(self.name):
            return self.executor.execute(sql, params, reuse_prepared, session)

    def reuse_prepared_statement(self, statement: PreparedStatement, sql: str) -> None:
        self.executor.reuse_prepared_statement(statement, sql)

    def get_scan_index(self, session: Optional[EngineSession] = None) -> LinkedIndex:
        self._check_valid()
        return self._scan_index

    def get_indexes(self) -> List[LinkedIndex]:
        return list(self._indexes)

    def get_unique_index(self) -> Optional[LinkedIndex]:
        for index in self._indexes:
            if index.is_unique:
                return index
        return None

    def add_row(self, session: Optional[EngineSession], row: Row) -> None:
        self._check_read_only()
        self.get_scan_index(session).add(session, row)

    def remove_row(self, session: Optional[EngineSession], row: Row) -> None:
        self._check_read_only()
        self.get_scan_index(session).remove(session, row)

    def update_rows(
        self,
        command: CommandContext,
        session: EngineSession,
        rows: Sequence[Tuple[Row, Row]],
    ) -> None:
        """
        Applies (old, new) row pairs.

        With ``emit_updates`` every pair becomes one remote UPDATE. Otherwise the
        engine's generic path deletes all old rows and then inserts all new rows.
        """
        self._check_read_only()
        self._check_valid()
        with link_context(self.name):
            if not self._definition.emit_updates:
                replace_rows(self, command, session, rows)
                return
            for old_row, new_row in rows:
                command.check_canceled()
                self._scan_index.update(old_row, new_row, session)
                session.log(self, UndoOperation.DELETE, old_row)
                session.log(self, UndoOperation.INSERT, new_row)

    def get_row_count(self, session: Optional[EngineSession] = None) -> int:
        """Exact number of rows in the remote table."""
        self._check_valid()
        sql = f"SELECT COUNT(*) FROM {self._qualified_name} AS T"
        with self._count_lock, link_context(self.name):
            try:
                with self.executor.open_statement(sql, None, session) as statement:
                    return int(statement.result.scalar_one())
            except SQLAlchemyError as exc:
                raise wrap_exception(sql, exc) from exc

    def get_row_count_approximation(self, session: Optional[EngineSession] = None) -> int:
        return ROW_COUNT_APPROXIMATION

    def can_get_row_count(self, session: Optional[EngineSession] = None) -> bool:
        return True

    def can_drop(self) -> bool:
        return True

    def is_insertable(self) -> bool:
        return not self._read_only

    def is_deterministic(self) -> bool:
        return False

    def max_data_modification_id(self) -> int:
        # data may have been modified externally
        return sys.maxsize

    def check_writing_allowed(self) -> None:
        # only the remote database can decide
        pass

    def is_oracle(self) -> bool:
        return self.vendor == VendorFamily.ORACLE

    def check_support_alter(self) -> None:
        raise UnsupportedOperation(f"ALTER is not supported on linked table {self.name}")

    def add_index(self, *args: Any, **kwargs: Any) -> None:
        raise UnsupportedOperation(f"Creating an index is not supported on linked table {self.name}")

    def truncate(self, session: Optional[EngineSession] = None) -> int:
        raise UnsupportedOperation(f"TRUNCATE is not supported on linked table {self.name}")

    def convert_insert_row(self, session: Optional[EngineSession], row: Row, overriding_system: Optional[bool] = None) -> None:
        self._convert_row(session, row)

    def convert_update_row(self, session: Optional[EngineSession], row: Row) -> None:
        self._convert_row(session, row)

    def _convert_row(self, session: Optional[EngineSession], row: Row) -> None:
        for column in self.columns:
            value = row.get_value(column.ordinal)
            if value is None:
                continue
            converted = column.validate_convert_update_sequence(session, value, row)
            if converted is not value:
                row.set_value(column.ordinal, converted)

    def get_create_sql(self) -> str:
        self._check_valid()
        definition = self._definition.model_copy(update={
            "read_only": self._read_only,
            "fetch_size": self._fetch_size,
            "global_temporary": self._global_temporary,
        })
        return ddl.create_sql(self.schema_name, self.name, definition)

    def get_drop_sql(self) -> str:
        return ddl.drop_sql(self.schema_name, self.name)

    def close(self, session: Optional[EngineSession] = None) -> None:
        """Releases the remote session. Safe to call more than once."""
        self._connection.close()

    def remove_children_and_resources(self, session: Optional[EngineSession] = None) -> None:
        """Tears the table down for good; it cannot be used afterwards."""
        self.close(session)
        self._definition = None
        self._indexes = []
        self._scan_index = None
        self._valid = False
        logger.debug(f"Removed linked table {self.schema_name}.{self.name}")

    def __repr__(self) -> str:
        return f"LinkedTable({self.schema_name}.{self.name} -> {self._qualified_name})"
