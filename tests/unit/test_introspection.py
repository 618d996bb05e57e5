import pytest

from sqllink.common.errors import AmbiguousRemoteObject, ObjectNotFound
from sqllink.link.catalog import ColumnRow, PrimaryKeyRow, TableRow
from sqllink.link.dialect import DialectFlags, VendorFamily
from sqllink.link.introspection import SchemaIntrospector, convert_precision, convert_scale
from sqllink.link.models import IndexKind, LinkDefinition, TypeKind


def _introspector(catalog, url, table="users", schema=None):
    definition = LinkDefinition(url=url, remote_table=table, remote_schema=schema)
    return SchemaIntrospector(definition, catalog_factory=lambda connection: catalog)


def test_catalog_columns_get_contiguous_ordinals_and_one_scan_index(fake_catalog, remote_session, sqlite_url):
    # Validates column discovery because ordinals address row values for the table lifetime.
    # Arrange
    fake_catalog.flags = DialectFlags(stores_lower_case=True)
    fake_catalog.table_rows = [TableRow(schema_name="main", table_name="users")]
    fake_catalog.column_rows = [
        ColumnRow(schema_name="main", column_name="id", kind=TypeKind.INTEGER),
        ColumnRow(schema_name="main", column_name="name", kind=TypeKind.VARCHAR, precision=20),
        ColumnRow(schema_name="main", column_name="Age", kind=TypeKind.INTEGER),
    ]

    # Act
    shape = _introspector(fake_catalog, sqlite_url).read_metadata(remote_session)

    # Assert
    assert [(c.name, c.remote_name, c.ordinal) for c in shape.columns] == [
        ("ID", "id", 0),
        ("NAME", "name", 1),
        ("Age", "Age", 2),
    ]
    assert shape.qualified_name == "main.users"
    assert shape.indexes[0] is shape.scan_index
    assert shape.scan_index.kind == IndexKind.NON_UNIQUE
    assert shape.scan_index.column_names == ["ID", "NAME", "Age"]
    assert remote_session.flags == DialectFlags(stores_lower_case=True)


def test_type_corrections_applied_to_catalog_columns(fake_catalog, remote_session, sqlite_url):
    # Validates precision fixes because some remotes report 0 or negative values.
    # Arrange
    fake_catalog.column_rows = [
        ColumnRow(column_name="AMOUNT", kind=TypeKind.DECIMAL, precision=0, scale=-127),
        ColumnRow(column_name="BORN", kind=TypeKind.DATE, precision=7),
        ColumnRow(column_name="SEEN", kind=TypeKind.TIMESTAMP, precision=11),
        ColumnRow(column_name="AT", kind=TypeKind.TIME, precision=8),
    ]

    # Act
    shape = _introspector(fake_catalog, sqlite_url).read_metadata(remote_session)

    # Assert
    types = {c.name: (c.type.precision, c.type.scale) for c in shape.columns}
    assert types == {"AMOUNT": (65535, 32767), "BORN": (10, 0), "SEEN": (29, 0), "AT": (18, 0)}


def test_precision_and_scale_helpers_leave_other_types_alone():
    # Validates the correction table because only listed types are adjusted.
    # Act / Assert
    assert convert_precision(TypeKind.NUMERIC, 12) == 12
    assert convert_precision(TypeKind.VARCHAR, 0) == 0
    assert convert_scale(TypeKind.NUMERIC, 2) == 2
    assert convert_scale(TypeKind.INTEGER, -1) == -1


def test_rows_from_different_schemas_fall_back_to_probe(fake_catalog, remote_session, sqlite_url):
    # Validates the mismatch fallback because the same name may exist in several schemas.
    # Arrange
    fake_catalog.flags = DialectFlags(stores_mixed_case=True, supports_mixed_case_identifiers=True)
    fake_catalog.column_rows = [
        ColumnRow(schema_name="main", column_name="only_in_main"),
        ColumnRow(schema_name="other", column_name="only_in_other"),
    ]

    # Act
    shape = _introspector(fake_catalog, sqlite_url).read_metadata(remote_session)

    # Assert
    assert shape.qualified_name == "main.users"
    assert shape.column_names == ["ID", "NAME", "AGE", "EMAIL"]


def test_query_link_skips_catalog_and_indexes(fake_catalog, remote_session, sqlite_url):
    # Validates sub-query links because they have no catalog entry to read.
    # Arrange
    introspector = _introspector(fake_catalog, sqlite_url, table="(SELECT id, name FROM users)")

    # Act
    shape = introspector.read_metadata(remote_session)

    # Assert
    assert shape.is_query
    assert shape.qualified_name == "(SELECT id, name FROM users)"
    assert fake_catalog.calls == []
    assert shape.column_names == ["id", "name"]
    assert shape.indexes == [shape.scan_index]


def test_ambiguous_table_name_is_rejected(fake_catalog, remote_session, sqlite_url):
    # Validates ambiguity detection because linking the wrong table would be silent.
    # Arrange
    fake_catalog.table_rows = [
        TableRow(schema_name="main", table_name="users"),
        TableRow(schema_name="audit", table_name="users"),
    ]

    # Act / Assert
    with pytest.raises(AmbiguousRemoteObject) as exc_info:
        _introspector(fake_catalog, sqlite_url).read_metadata(remote_session)
    assert exc_info.value.details == {"schemas": ["main", "audit"]}


def test_failed_probe_raises_object_not_found(fake_catalog, remote_session, sqlite_url):
    # Validates the accessibility probe because a missing table must fail the link.
    # Act
    with pytest.raises(ObjectNotFound) as exc_info:
        _introspector(fake_catalog, sqlite_url, table="missing").read_metadata(remote_session)

    # Assert
    error = exc_info.value
    assert error.sql == "SELECT * FROM missing T WHERE 1=0"
    assert "no such table" in error.remote_message
    assert error.details == {"qualified_name": "missing"}


def test_named_table_reads_primary_key(fake_catalog, remote_session, sqlite_url):
    # Validates index reconstruction runs for named tables after the scan index.
    # Arrange
    fake_catalog.column_rows = [ColumnRow(column_name="ID", kind=TypeKind.INTEGER)]
    fake_catalog.pk_rows = [PrimaryKeyRow(column_name="ID", key_seq=1)]

    # Act
    shape = _introspector(fake_catalog, sqlite_url).read_metadata(remote_session)

    # Assert
    assert [i.kind for i in shape.indexes] == [IndexKind.NON_UNIQUE, IndexKind.PRIMARY_KEY]
    assert fake_catalog.calls == ["tables", "columns", "primary_keys", "index_info"]


def test_mysql_vendor_folds_catalog_names(fake_catalog, remote_session, sqlite_url):
    # Validates the vendor override during introspection because MySQL reports mixed case.
    # Arrange
    remote_session.vendor = VendorFamily.MYSQL
    fake_catalog.column_rows = [ColumnRow(column_name="Foo")]

    # Act
    shape = _introspector(fake_catalog, sqlite_url).read_metadata(remote_session)

    # Assert
    assert shape.column_names == ["FOO"]
    assert shape.columns[0].remote_name == "Foo"
