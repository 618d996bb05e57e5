"""
Index reconstruction from remote catalog rows.

Remote catalogs report primary keys and indexes as flat rows, one per indexed
column. Primary key rows are not sorted by their sequence number and index rows
of different indexes arrive one after another, sometimes mixed with statistics
rows. Columns that cannot be resolved (expression indexes, hidden columns) cut
the index short; see `bind_leading_columns`.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from .catalog import IndexInfoRow, IndexInfoType, PrimaryKeyRow, RemoteCatalog
from .models import Column, Index, IndexKind

logger = logging.getLogger(__name__)


def bind_leading_columns(columns: Sequence[Optional[Column]], kind: IndexKind, name: Optional[str] = None) -> Optional[Index]:
    """
    Binds an index to its leading recognized columns.

    Args:
        columns: Resolved index columns in index order; None marks a column that
            could not be resolved.
        kind: The kind of index to build.
        name: The remote index name.

    Returns:
        The index, or None when not even the first column is recognized.
    """
    first_unresolved = next((i for i, column in enumerate(columns) if column is None), -1)
    if first_unresolved == 0:
        logger.info("Omitting linked index - no recognized columns.")
        return None
    if first_unresolved > 0:
        logger.info(
            f"Unrecognized columns in linked index. Registering the index against the leading "
            f"{first_unresolved} recognized columns of {len(columns)} total columns."
        )
        columns = columns[:first_unresolved]
    return Index(kind=kind, columns=tuple(columns), name=name)


class IndexReconstructor:
    """
    Rebuilds primary key and secondary index definitions of a named-table link.

    Args:
        column_map: Canonical column name to Column.
        normalize: Maps a remote-reported name to its canonical form.
    """

    def __init__(self, column_map: Dict[str, Column], normalize: Callable[[str], str]):
        self._column_map = column_map
        self._normalize = normalize

    def _resolve(self, column_name: Optional[str]) -> Optional[Column]:
        if column_name is None:
            return None
        return self._column_map.get(self._normalize(column_name))

    def read_indexes(self, catalog: RemoteCatalog, schema: Optional[str], table: str) -> List[Index]:
        """Reads the primary key and secondary indexes reported by the catalog.

        Drivers that cannot report primary keys or index info contribute no
        indexes for that part.
        """
        indexes: List[Index] = []
        pk_name = None
        try:
            pk_rows = list(catalog.primary_keys(schema, table))
        except (SQLAlchemyError, NotImplementedError) as exc:
            logger.warning(f"Could not read primary key of {table}: {exc}")
            pk_rows = []
        if pk_rows:
            primary_key, pk_name = self.read_primary_key(pk_rows)
            if primary_key is not None:
                indexes.append(primary_key)

        try:
            index_rows = list(catalog.index_info(schema, table))
        except (SQLAlchemyError, NotImplementedError) as exc:
            logger.warning(f"Could not read indexes of {table}: {exc}")
            index_rows = []
        indexes.extend(self.read_secondary_indexes(index_rows, pk_name))
        return indexes

    def read_primary_key(self, rows: Iterable[PrimaryKeyRow]) -> Tuple[Optional[Index], Optional[str]]:
        """
        Orders primary key columns by their 1-based sequence numbers.

        A sequence of 0 appends the column, since some drivers report every
        key column with sequence 0.

        Returns:
            The primary key index (None if truncated away) and the constraint name.
        """
        pk_name = None
        columns: List[Optional[Column]] = []
        for row in rows:
            if not pk_name:
                pk_name = row.pk_name
            while len(columns) < row.key_seq:
                columns.append(None)
            column = self._resolve(row.column_name)
            if row.key_seq == 0:
                columns.append(column)
            else:
                columns[row.key_seq - 1] = column
        return bind_leading_columns(columns, IndexKind.PRIMARY_KEY, pk_name), pk_name

    def read_secondary_indexes(self, rows: Iterable[IndexInfoRow], pk_name: Optional[str] = None) -> List[Index]:
        """Groups consecutive index rows by index name into indexes."""
        indexes: List[Index] = []
        index_name: Optional[str] = None
        columns: List[Optional[Column]] = []
        kind = IndexKind.NON_UNIQUE
        started = False

        def flush():
            index = bind_leading_columns(columns, kind, index_name)
            if index is not None:
                indexes.append(index)

        for row in rows:
            if row.type == IndexInfoType.STATISTIC:
                continue
            if pk_name is not None and row.index_name == pk_name:
                continue
            if started and index_name != row.index_name:
                flush()
                started = False
            if not started:
                index_name = row.index_name
                columns = []
                started = True
            kind = IndexKind.NON_UNIQUE if row.non_unique else IndexKind.UNIQUE
            columns.append(self._resolve(row.column_name))
        if started:
            flush()
        return indexes
