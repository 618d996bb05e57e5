from __future__ import annotations

import datetime
import threading
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from sqllink.common.errors import ValueConversionError
from sqllink.engine.rows import DEFAULT, Row


class TypeKind(str, Enum):
    """Semantic type of a linked column, after the remote type has been mapped."""

    BOOLEAN = "BOOLEAN"
    TINYINT = "TINYINT"
    SMALLINT = "SMALLINT"
    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    DECIMAL = "DECIMAL"
    NUMERIC = "NUMERIC"
    REAL = "REAL"
    DOUBLE = "DOUBLE"
    FLOAT = "FLOAT"
    CHAR = "CHAR"
    VARCHAR = "VARCHAR"
    CLOB = "CLOB"
    BINARY = "BINARY"
    VARBINARY = "VARBINARY"
    BLOB = "BLOB"
    DATE = "DATE"
    TIME = "TIME"
    TIMESTAMP = "TIMESTAMP"
    JSON = "JSON"
    OTHER = "OTHER"


INTEGER_KINDS = {TypeKind.TINYINT, TypeKind.SMALLINT, TypeKind.INTEGER, TypeKind.BIGINT}
DECIMAL_KINDS = {TypeKind.DECIMAL, TypeKind.NUMERIC}
FLOAT_KINDS = {TypeKind.REAL, TypeKind.DOUBLE, TypeKind.FLOAT}
STRING_KINDS = {TypeKind.CHAR, TypeKind.VARCHAR, TypeKind.CLOB}
BINARY_KINDS = {TypeKind.BINARY, TypeKind.VARBINARY, TypeKind.BLOB}
LOB_KINDS = {TypeKind.CLOB, TypeKind.BLOB}


class TypeDescriptor(BaseModel):
    kind: TypeKind
    precision: int = 0
    scale: int = 0
    type_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def convert(self, value: Any) -> Any:
        """Converts a local value to the Python type matching this column type.

        Raises:
            ValueError / TypeError: If the value cannot be represented.
        """
        kind = self.kind
        if kind in INTEGER_KINDS:
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(f"{value!r} is not an integral value")
            return int(value)
        if kind in DECIMAL_KINDS:
            if isinstance(value, Decimal):
                return value
            try:
                return Decimal(str(value))
            except InvalidOperation as exc:
                raise ValueError(f"{value!r} is not a numeric value") from exc
        if kind in FLOAT_KINDS:
            return float(value)
        if kind == TypeKind.BOOLEAN:
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in ("true", "t", "1", "yes", "y"):
                    return True
                if lowered in ("false", "f", "0", "no", "n"):
                    return False
                raise ValueError(f"{value!r} is not a boolean value")
            return bool(value)
        if kind in STRING_KINDS:
            text = value if isinstance(value, str) else str(value)
            if kind != TypeKind.CLOB and self.precision and len(text) > self.precision:
                raise ValueError(f"Value too long, length {len(text)} exceeds precision {self.precision}")
            return text
        if kind in BINARY_KINDS:
            if isinstance(value, (bytearray, memoryview)):
                return bytes(value)
            if not isinstance(value, bytes):
                raise TypeError(f"{type(value).__name__} is not a binary value")
            return value
        if kind == TypeKind.DATE:
            if isinstance(value, datetime.datetime):
                return value.date()
            if isinstance(value, str):
                return datetime.date.fromisoformat(value)
            if not isinstance(value, datetime.date):
                raise TypeError(f"{type(value).__name__} is not a date value")
            return value
        if kind == TypeKind.TIMESTAMP:
            if isinstance(value, datetime.datetime):
                return value
            if isinstance(value, datetime.date):
                return datetime.datetime.combine(value, datetime.time())
            if isinstance(value, str):
                return datetime.datetime.fromisoformat(value)
            raise TypeError(f"{type(value).__name__} is not a timestamp value")
        if kind == TypeKind.TIME:
            if isinstance(value, datetime.datetime):
                return value.time()
            if isinstance(value, str):
                return datetime.time.fromisoformat(value)
            if not isinstance(value, datetime.time):
                raise TypeError(f"{type(value).__name__} is not a time value")
            return value
        return value

    def __str__(self) -> str:
        if self.kind in DECIMAL_KINDS:
            return f"{self.kind.value}({self.precision}, {self.scale})"
        if self.precision and self.kind in STRING_KINDS | BINARY_KINDS:
            return f"{self.kind.value}({self.precision})"
        return self.kind.value


class ColumnSequence:
    """Locally generated values for an identity-like column."""

    def __init__(self, start: int = 1, increment: int = 1):
        self._next = start
        self._increment = increment
        self._lock = threading.Lock()

    def next_value(self) -> int:
        with self._lock:
            value = self._next
            self._next += self._increment
            return value

    def observe(self, value: int) -> None:
        """Moves the sequence past an explicitly supplied value."""
        with self._lock:
            if self._increment > 0 and value >= self._next:
                self._next = value + self._increment
            elif self._increment < 0 and value <= self._next:
                self._next = value + self._increment


@dataclass(eq=False)
class Column:
    name: str
    type: TypeDescriptor
    ordinal: int
    remote_name: Optional[str] = None
    nullable: bool = True
    default: Any = None
    sequence: Optional[ColumnSequence] = None

    def __post_init__(self):
        if self.remote_name is None:
            self.remote_name = self.name

    def validate_convert_update_sequence(self, session: Any, value: Any, row: Optional[Row] = None) -> Any:
        """Substitutes the default for a DEFAULT marker, then converts to the column type.

        A DEFAULT marker with no local default or sequence is kept, so the remote
        side applies its own default.
        """
        if value is DEFAULT:
            if self.sequence is not None:
                value = self.sequence.next_value()
            elif self.default is not None:
                value = self.default() if callable(self.default) else self.default
            else:
                return DEFAULT
        if value is None:
            return None
        try:
            converted = self.type.convert(value)
        except (ValueError, TypeError) as exc:
            raise ValueConversionError(
                f"Data conversion error converting {value!r} for column {self.name} ({self.type}): {exc}",
                details={"column": self.name},
            ) from exc
        if self.sequence is not None and isinstance(converted, int):
            self.sequence.observe(converted)
        return converted

    def __repr__(self) -> str:
        return f"Column({self.name!r}, {self.type}, ordinal={self.ordinal})"


class IndexKind(str, Enum):
    PRIMARY_KEY = "PRIMARY_KEY"
    UNIQUE = "UNIQUE"
    NON_UNIQUE = "NON_UNIQUE"


@dataclass(frozen=True)
class Index:
    kind: IndexKind
    columns: Tuple[Column, ...]
    name: Optional[str] = None

    @property
    def is_unique(self) -> bool:
        return self.kind in (IndexKind.PRIMARY_KEY, IndexKind.UNIQUE)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


class LinkKey(NamedTuple):
    """Identifies a remote target; sessions are pooled by this key."""
    driver: Optional[str]
    url: str
    user: Optional[str]
    password: Optional[str]


class LinkDefinition(BaseModel):
    """Construction inputs of a linked table."""

    driver: Optional[str] = Field(default=None, description="DBAPI driver folded into the URL (e.g. 'psycopg2').")
    url: str = Field(..., description="SQLAlchemy URL of the remote database.")
    user: Optional[str] = None
    password: Optional[SecretStr] = None
    remote_schema: Optional[str] = Field(default=None, description="Remote schema, or None to search all.")
    remote_table: str = Field(..., description="Remote table name or a parenthesized sub-query.")
    emit_updates: bool = False
    force: bool = False
    read_only: bool = False
    fetch_size: int = Field(default=0, ge=0)
    temporary: bool = False
    global_temporary: bool = False
    comment: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def key(self) -> LinkKey:
        return LinkKey(
            driver=self.driver,
            url=self.url,
            user=self.user,
            password=self.password.get_secret_value() if self.password is not None else None,
        )

    @property
    def is_query(self) -> bool:
        return self.remote_table.startswith("(")
