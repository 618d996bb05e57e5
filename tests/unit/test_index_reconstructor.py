import logging

import pytest

from sqllink.link.catalog import IndexInfoRow, IndexInfoType, PrimaryKeyRow
from sqllink.link.indexes import IndexReconstructor, bind_leading_columns
from sqllink.link.models import Column, IndexKind, TypeDescriptor, TypeKind


@pytest.fixture()
def column_map():
    kind = TypeDescriptor(kind=TypeKind.INTEGER)
    return {name: Column(name=name, type=kind, ordinal=i) for i, name in enumerate(["A", "B", "C", "D"])}


@pytest.fixture()
def reconstructor(column_map):
    return IndexReconstructor(column_map, str.upper)


def test_primary_key_columns_follow_key_sequence(reconstructor):
    # Validates ordering by sequence because catalogs do not sort primary key rows.
    # Arrange
    rows = [
        PrimaryKeyRow(column_name="b", key_seq=2, pk_name="PK_T"),
        PrimaryKeyRow(column_name="a", key_seq=1, pk_name="PK_T"),
    ]

    # Act
    index, pk_name = reconstructor.read_primary_key(rows)

    # Assert
    assert index.kind == IndexKind.PRIMARY_KEY
    assert index.column_names == ["A", "B"]
    assert pk_name == "PK_T"


def test_primary_key_sequence_zero_appends(reconstructor):
    # Validates the zero-sequence case because some drivers report every key column as 0.
    # Act
    index, pk_name = reconstructor.read_primary_key([PrimaryKeyRow(column_name="a", key_seq=0)])

    # Assert
    assert index.column_names == ["A"]
    assert pk_name is None


def test_primary_key_name_taken_from_first_non_empty_row(reconstructor):
    # Validates the constraint name because it filters the matching index rows later.
    # Arrange
    rows = [
        PrimaryKeyRow(column_name="a", key_seq=1, pk_name=""),
        PrimaryKeyRow(column_name="b", key_seq=2, pk_name="PK_T"),
    ]

    # Act
    _, pk_name = reconstructor.read_primary_key(rows)

    # Assert
    assert pk_name == "PK_T"


def test_interleaved_index_rows_form_two_indexes(reconstructor):
    # Validates grouping because index rows arrive flat and may include statistics rows.
    # Arrange
    rows = [
        IndexInfoRow(index_name=None, column_name=None, type=IndexInfoType.STATISTIC),
        IndexInfoRow(index_name="IX_AB", column_name="a", non_unique=True, ordinal_position=1),
        IndexInfoRow(index_name="IX_AB", column_name="b", non_unique=True, ordinal_position=2),
        IndexInfoRow(index_name="UX_C", column_name="c", non_unique=False, ordinal_position=1),
    ]

    # Act
    indexes = reconstructor.read_secondary_indexes(rows)

    # Assert
    assert [(i.name, i.kind, i.column_names) for i in indexes] == [
        ("IX_AB", IndexKind.NON_UNIQUE, ["A", "B"]),
        ("UX_C", IndexKind.UNIQUE, ["C"]),
    ]


def test_index_rows_of_the_primary_key_are_skipped(reconstructor):
    # Validates the primary key filter because the key index must not be registered twice.
    # Arrange
    rows = [
        IndexInfoRow(index_name="PK_T", column_name="a", non_unique=False),
        IndexInfoRow(index_name="IX_D", column_name="d"),
    ]

    # Act
    indexes = reconstructor.read_secondary_indexes(rows, pk_name="PK_T")

    # Assert
    assert [i.name for i in indexes] == ["IX_D"]


def test_index_with_unresolved_first_column_is_omitted(reconstructor, caplog):
    # Validates truncation at position 0 because such an index cannot be searched locally.
    # Arrange
    rows = [
        IndexInfoRow(index_name="IX_EXPR", column_name=None),
        IndexInfoRow(index_name="IX_EXPR", column_name="a"),
    ]

    # Act
    with caplog.at_level(logging.INFO, logger="sqllink.link.indexes"):
        indexes = reconstructor.read_secondary_indexes(rows)

    # Assert
    assert indexes == []
    assert "no recognized columns" in caplog.text


def test_index_keeps_leading_recognized_columns(reconstructor, caplog):
    # Validates truncation at position k because the prefix is still a usable index.
    # Arrange
    rows = [
        IndexInfoRow(index_name="IX_MIXED", column_name="a"),
        IndexInfoRow(index_name="IX_MIXED", column_name="hidden"),
        IndexInfoRow(index_name="IX_MIXED", column_name="b"),
    ]

    # Act
    with caplog.at_level(logging.INFO, logger="sqllink.link.indexes"):
        indexes = reconstructor.read_secondary_indexes(rows)

    # Assert
    assert [i.column_names for i in indexes] == [["A"]]
    assert "leading 1 recognized columns of 3 total columns" in caplog.text


def test_bind_leading_columns_keeps_all_when_resolved(column_map):
    # Validates the no-truncation branch because most indexes resolve fully.
    # Act
    index = bind_leading_columns([column_map["A"], column_map["B"]], IndexKind.UNIQUE, "UX")

    # Assert
    assert index.column_names == ["A", "B"]
    assert index.is_unique


def test_read_indexes_tolerates_catalog_without_primary_key_support(reconstructor, fake_catalog, caplog):
    # Validates the warning path because some drivers cannot report primary keys.
    # Arrange
    fake_catalog.pk_error = NotImplementedError("primary keys")
    fake_catalog.index_rows = [IndexInfoRow(index_name="IX_A", column_name="a")]

    # Act
    with caplog.at_level(logging.WARNING, logger="sqllink.link.indexes"):
        indexes = reconstructor.read_indexes(fake_catalog, None, "T")

    # Assert
    assert [i.name for i in indexes] == ["IX_A"]
    assert "Could not read primary key" in caplog.text


def test_read_indexes_combines_primary_key_and_secondary(reconstructor, fake_catalog):
    # Validates the full pass because the primary key comes first in the index list.
    # Arrange
    fake_catalog.pk_rows = [PrimaryKeyRow(column_name="a", key_seq=1, pk_name="PK_T")]
    fake_catalog.index_rows = [
        IndexInfoRow(index_name="PK_T", column_name="a", non_unique=False),
        IndexInfoRow(index_name="IX_B", column_name="b"),
    ]

    # Act
    indexes = reconstructor.read_indexes(fake_catalog, None, "T")

    # Assert
    assert [(i.kind, i.column_names) for i in indexes] == [
        (IndexKind.PRIMARY_KEY, ["A"]),
        (IndexKind.NON_UNIQUE, ["B"]),
    ]
