from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Tuple

from sqllink.common.errors import UnsupportedOperation
from sqllink.engine.rows import DEFAULT, Row
from sqllink.engine.session import EngineSession

from .models import LOB_KINDS, Column, Index, IndexKind

if TYPE_CHECKING:
    from .table import LinkedTable


class LinkedIndex:
    """
    An index of a linked table. Every operation is translated to remote SQL.

    The remote database does the actual index lookups; the local definition
    only tells the engine which columns can be searched.
    """

    def __init__(self, table: "LinkedTable", index: Index):
        self.table = table
        self.index = index

    @property
    def name(self) -> Optional[str]:
        return self.index.name

    @property
    def kind(self) -> IndexKind:
        return self.index.kind

    @property
    def columns(self) -> Tuple[Column, ...]:
        return self.index.columns

    @property
    def is_unique(self) -> bool:
        return self.index.is_unique

    def scan(self, session: Optional[EngineSession] = None) -> Iterator[Row]:
        sql = f"SELECT * FROM {self.table.qualified_name} T"
        return self._select(sql, [], session)

    def find(self, session: Optional[EngineSession], first: Optional[Row] = None, last: Optional[Row] = None) -> Iterator[Row]:
        """Rows whose index columns lie between ``first`` and ``last`` (inclusive).

        A None bound, or a None value inside a bound row, leaves that side open.
        """
        conditions: List[str] = []
        params: List[Any] = []
        for column in self.columns:
            column_sql = self.table.column_sql(column)
            if first is not None:
                value = first.get_value(column.ordinal)
                if value is not None:
                    conditions.append(f"{column_sql}>=?")
                    params.append(value)
            if last is not None:
                value = last.get_value(column.ordinal)
                if value is not None:
                    conditions.append(f"{column_sql}<=?")
                    params.append(value)
        sql = f"SELECT * FROM {self.table.qualified_name} T"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        return self._select(sql, params, session)

    def _select(self, sql: str, params: List[Any], session: Optional[EngineSession]) -> Iterator[Row]:
        with self.table.executor.open_statement(sql, params, session) as statement:
            for record in statement.result:
                yield Row(record)

    def add(self, session: Optional[EngineSession], row: Row) -> None:
        """Inserts ``row``; DEFAULT values are left out so the remote default applies."""
        names: List[str] = []
        params: List[Any] = []
        for column in self.table.columns:
            value = row.get_value(column.ordinal)
            if value is DEFAULT:
                continue
            names.append(self.table.column_sql(column))
            params.append(value)
        if names:
            markers = ", ".join("?" for _ in names)
            sql = f"INSERT INTO {self.table.qualified_name}({', '.join(names)}) VALUES({markers})"
        else:
            sql = f"INSERT INTO {self.table.qualified_name} DEFAULT VALUES"
        self.table.execute(sql, params, True, session)

    def remove(self, session: Optional[EngineSession], row: Row) -> None:
        params: List[Any] = []
        sql = f"DELETE FROM {self.table.qualified_name} WHERE {self._row_condition(row, params)}"
        self.table.execute(sql, params, True, session)

    def update(self, old_row: Row, new_row: Row, session: Optional[EngineSession]) -> None:
        """Issues one remote UPDATE that turns ``old_row`` into ``new_row``."""
        assignments: List[str] = []
        params: List[Any] = []
        for column in self.table.columns:
            value = new_row.get_value(column.ordinal)
            column_sql = self.table.column_sql(column)
            if value is DEFAULT:
                assignments.append(f"{column_sql}=DEFAULT")
            else:
                assignments.append(f"{column_sql}=?")
                params.append(value)
        condition = self._row_condition(old_row, params)
        sql = f"UPDATE {self.table.qualified_name} SET {', '.join(assignments)} WHERE {condition}"
        self.table.execute(sql, params, True, session)

    def _row_condition(self, row: Row, params: List[Any]) -> str:
        # large objects cannot be compared on most remotes
        conditions: List[str] = []
        for column in self.table.columns:
            if column.type.kind in LOB_KINDS:
                continue
            column_sql = self.table.column_sql(column)
            value = row.get_value(column.ordinal)
            if value is None:
                conditions.append(f"{column_sql} IS NULL")
            else:
                conditions.append(f"{column_sql}=?")
                params.append(value)
        if not conditions:
            raise UnsupportedOperation(
                f"Linked table {self.table.name} has no comparable columns to identify a row"
            )
        return " AND ".join(conditions)

    def __repr__(self) -> str:
        return f"LinkedIndex({self.name!r}, {self.kind.value}, {self.index.column_names})"
