from typing import Callable, List, Optional
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from sqllink.link.catalog import ColumnRow, IndexInfoRow, PrimaryKeyRow, TableRow
from sqllink.link.dialect import DialectFlags, VendorFamily
from sqllink.link.session import RemoteSession


class FakeCatalog:
    """RemoteCatalog serving fixed rows and recording the calls made."""

    def __init__(self, flags: Optional[DialectFlags] = None):
        self.flags = flags or DialectFlags()
        self.table_rows: List[TableRow] = []
        self.column_rows: List[ColumnRow] = []
        self.pk_rows: List[PrimaryKeyRow] = []
        self.index_rows: List[IndexInfoRow] = []
        self.pk_error: Optional[Exception] = None
        self.index_error: Optional[Exception] = None
        self.calls: List[str] = []

    def dialect_flags(self) -> DialectFlags:
        return self.flags

    def tables(self, schema, table):
        self.calls.append("tables")
        return list(self.table_rows)

    def columns(self, schema, table):
        self.calls.append("columns")
        return iter(self.column_rows)

    def primary_keys(self, schema, table):
        self.calls.append("primary_keys")
        if self.pk_error is not None:
            raise self.pk_error
        return iter(self.pk_rows)

    def index_info(self, schema, table):
        self.calls.append("index_info")
        if self.index_error is not None:
            raise self.index_error
        return iter(self.index_rows)


class FakePool:
    """SessionPool stand-in handing out sessions over mocked connections."""

    def __init__(self, connection_factory: Optional[Callable[[], MagicMock]] = None):
        self.connection_factory = connection_factory or MagicMock
        self.connect_failures = 0
        self.acquired: List[RemoteSession] = []
        self.released = []

    def acquire(self, key):
        if self.connect_failures > 0:
            self.connect_failures -= 1
            raise OperationalError("connect", {}, Exception("connection refused"))
        session = RemoteSession(key, self.connection_factory(), VendorFamily.GENERIC)
        session.use_count = 1
        self.acquired.append(session)
        return session

    def release(self, session, force=False):
        self.released.append((session, force))
        session.discard(force=force)


@pytest.fixture()
def fake_catalog():
    return FakeCatalog()


@pytest.fixture()
def fake_pool():
    return FakePool()


@pytest.fixture()
def remote_error():
    def build(message: str = "boom") -> OperationalError:
        return OperationalError("SELECT 1", {}, Exception(message))
    return build
