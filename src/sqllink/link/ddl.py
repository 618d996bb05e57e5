from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqllink.engine.rows import DEFAULT

from .models import LinkDefinition

HIDE_SQL = "--hide--"


def quote_string_sql(value: Optional[str]) -> str:
    """Renders a SQL string literal; None renders as NULL."""
    if value is None:
        return "NULL"
    return "'" + value.replace("'", "''") + "'"


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def render_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if value is DEFAULT:
        return "DEFAULT"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "X'" + bytes(value).hex() + "'"
    if isinstance(value, datetime.datetime):
        return f"TIMESTAMP '{value.isoformat(sep=' ')}'"
    if isinstance(value, datetime.date):
        return f"DATE '{value.isoformat()}'"
    if isinstance(value, datetime.time):
        return f"TIME '{value.isoformat()}'"
    return quote_string_sql(str(value))


def table_sql(schema_name: str, name: str) -> str:
    return f"{quote_identifier(schema_name)}.{quote_identifier(name)}"


def create_sql(schema_name: str, name: str, definition: LinkDefinition) -> str:
    """
    Builds the statement that recreates a linked table.

    FORCE is always emitted so the link can be recreated while the remote
    side is unreachable.
    """
    parts: List[str] = ["CREATE FORCE "]
    if definition.temporary:
        parts.append("GLOBAL " if definition.global_temporary else "LOCAL ")
        parts.append("TEMPORARY ")
    parts.append("LINKED TABLE ")
    parts.append(table_sql(schema_name, name))
    if definition.comment is not None:
        parts.append(" COMMENT ")
        parts.append(quote_string_sql(definition.comment))
    arguments = [
        definition.driver,
        definition.url,
        definition.user,
        definition.password.get_secret_value() if definition.password is not None else None,
    ]
    if definition.remote_schema:
        arguments.append(definition.remote_schema)
    arguments.append(definition.remote_table)
    parts.append("(" + ", ".join(quote_string_sql(a) for a in arguments) + ")")
    if definition.emit_updates:
        parts.append(" EMIT UPDATES")
    if definition.read_only:
        parts.append(" READONLY")
    if definition.fetch_size != 0:
        parts.append(f" FETCH_SIZE {definition.fetch_size}")
    parts.append(f" /*{HIDE_SQL}*/")
    return "".join(parts)


def drop_sql(schema_name: str, name: str) -> str:
    return "DROP TABLE IF EXISTS " + table_sql(schema_name, name)
