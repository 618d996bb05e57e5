from unittest.mock import MagicMock

import pytest

from sqllink.common.errors import QueryCancelled
from sqllink.engine.capabilities import TableCapability
from sqllink.engine.rows import DEFAULT, Row
from sqllink.engine.session import CommandContext, EngineSession, UndoOperation
from sqllink.engine.tables import TableKind, TableRegistry, TableVariant, replace_rows


class RecordingTable:
    name = "MEMO"

    def __init__(self):
        self.calls = []

    def capabilities(self):
        return {TableCapability.SCAN}

    def add_row(self, session, row):
        self.calls.append(("add", row.values))

    def remove_row(self, session, row):
        self.calls.append(("remove", row.values))

    def remove_children_and_resources(self, session=None):
        self.calls.append(("removed", None))


def test_replace_rows_deletes_everything_before_inserting():
    # Validates the generic update path because unique keys may move between rows.
    # Arrange
    table = RecordingTable()
    session = EngineSession()
    rows = [(Row([1]), Row([2])), (Row([2]), Row([3]))]

    # Act
    replace_rows(table, CommandContext(), session, rows)

    # Assert
    assert table.calls == [("remove", [1]), ("remove", [2]), ("add", [2]), ("add", [3])]
    assert [r.operation for r in session.undo_log] == [
        UndoOperation.DELETE, UndoOperation.DELETE, UndoOperation.INSERT, UndoOperation.INSERT,
    ]
    assert {r.table for r in session.undo_log} == {"MEMO"}


def test_replace_rows_stops_when_cancelled():
    # Arrange
    table = RecordingTable()
    command = CommandContext()
    command.cancellation.cancel()

    # Act / Assert
    with pytest.raises(QueryCancelled):
        replace_rows(table, command, EngineSession(), [(Row([1]), Row([2]))])
    assert table.calls == []


def test_registry_drop_releases_table_resources():
    # Validates the drop path because dropping a link must close its remote session.
    # Arrange
    registry = TableRegistry()
    table = RecordingTable()
    registry.register("PUBLIC", TableVariant(kind=TableKind.LINKED, table=table))

    # Act
    registry.drop("PUBLIC", "MEMO")

    # Assert
    assert table.calls == [("removed", None)]
    assert registry.get("PUBLIC", "MEMO") is None


def test_registry_rejects_duplicate_names():
    # Arrange
    registry = TableRegistry()
    variant = TableVariant.linked(RecordingTable())
    registry.register("PUBLIC", variant)

    # Act / Assert
    with pytest.raises(ValueError):
        registry.register("PUBLIC", variant)
    assert registry.list_tables() == [variant]
    assert variant.supports(TableCapability.SCAN)
    assert not variant.supports(TableCapability.INSERT)


def test_row_and_default_marker():
    # Act
    row = Row([DEFAULT, None])
    row.set_value(1, "x")

    # Assert
    assert row == Row([DEFAULT, "x"])
    assert repr(row) == "Row([DEFAULT, 'x'])"
    assert len(row) == 2


def test_engine_session_converts_values_for_remote():
    # Arrange
    session = EngineSession(value_converter=MagicMock(return_value="converted"))

    # Act / Assert
    assert session.convert_to_remote(1) == "converted"
    assert EngineSession().convert_to_remote(1) == 1
