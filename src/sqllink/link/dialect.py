from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class VendorFamily(str, Enum):
    """Remote database family, classified from the connection URL."""

    MYSQL = "mysql"
    POSTGRES = "postgres"
    ORACLE = "oracle"
    SQLSERVER = "sqlserver"
    SQLITE = "sqlite"
    GENERIC = "generic"


_URL_PREFIXES = (
    (("mysql", "mariadb"), VendorFamily.MYSQL),
    (("postgresql", "postgres"), VendorFamily.POSTGRES),
    (("oracle",), VendorFamily.ORACLE),
    (("mssql", "sqlserver"), VendorFamily.SQLSERVER),
    (("sqlite",), VendorFamily.SQLITE),
)


def vendor_family_from_url(url: str) -> VendorFamily:
    """Classifies a connection URL by its scheme prefix.

    Both SQLAlchemy URLs (``mysql+pymysql://``) and JDBC-style URLs
    (``jdbc:mysql:``) are recognized.
    """
    scheme = (url or "").strip().lower()
    if scheme.startswith("jdbc:"):
        scheme = scheme[len("jdbc:"):]
    for prefixes, family in _URL_PREFIXES:
        if scheme.startswith(prefixes):
            return family
    return VendorFamily.GENERIC


@dataclass(frozen=True)
class DialectFlags:
    """
    Case-folding behavior reported by the remote database.

    Attributes:
        stores_lower_case: Unquoted identifiers are stored in lower case.
        stores_mixed_case: Unquoted identifiers are stored as written, case-insensitively.
        stores_mixed_case_quoted: Quoted identifiers are stored as written, case-insensitively.
        supports_mixed_case_identifiers: Unquoted identifiers are case-sensitive.
    """
    stores_lower_case: bool = False
    stores_mixed_case: bool = False
    stores_mixed_case_quoted: bool = False
    supports_mixed_case_identifiers: bool = False


DEFAULT_DIALECT_FLAGS: Dict[str, DialectFlags] = {
    "postgresql": DialectFlags(stores_lower_case=True),
    "mysql": DialectFlags(stores_mixed_case_quoted=True, supports_mixed_case_identifiers=True),
    "mariadb": DialectFlags(stores_mixed_case_quoted=True, supports_mixed_case_identifiers=True),
    "mssql": DialectFlags(stores_mixed_case=True, stores_mixed_case_quoted=True),
    "sqlite": DialectFlags(stores_mixed_case=True, supports_mixed_case_identifiers=True),
    "teradata": DialectFlags(stores_mixed_case=True),
    "h2": DialectFlags(stores_mixed_case_quoted=True, supports_mixed_case_identifiers=True),
}


def get_dialect_flags(dialect: Any) -> DialectFlags:
    """
    Retrieves case-folding flags for a SQLAlchemy dialect.

    Dialects that normalize names (Oracle, DB2, Firebird) report case-insensitive
    identifiers in lower case, so they are treated as lower-case storage.

    Args:
        dialect: A SQLAlchemy ``Dialect`` instance.

    Returns:
        The DialectFlags for the dialect.
    """
    name = getattr(dialect, "name", "") or ""
    key = name.lower()
    if key in DEFAULT_DIALECT_FLAGS:
        return DEFAULT_DIALECT_FLAGS[key]
    if getattr(dialect, "requires_name_normalize", False):
        return DialectFlags(stores_lower_case=True)
    return DialectFlags()


def normalize_identifier(name: str, flags: DialectFlags, vendor: VendorFamily) -> str:
    """
    Maps a remote-reported identifier to its canonical local form.

    Rules are checked in order and the first match wins.

    Args:
        name: The identifier as reported by the remote database.
        flags: Case-folding flags captured at connect time.
        vendor: The remote vendor family.

    Returns:
        The canonical identifier.
    """
    if vendor == VendorFamily.MYSQL:
        # MySQL column names are not case-sensitive on any platform
        return name.upper()
    if (flags.stores_mixed_case or flags.stores_lower_case) and name == name.lower():
        return name.upper()
    if flags.stores_mixed_case and not flags.supports_mixed_case_identifiers:
        # Teradata
        return name.upper()
    if flags.stores_mixed_case and flags.stores_mixed_case_quoted:
        # SQL Server: identifiers are case-insensitive even if quoted
        return name.upper()
    return name


class DialectNormalizer:
    """Binds flags and vendor so every consumer of remote names folds them identically."""

    def __init__(self, flags: DialectFlags, vendor: VendorFamily):
        self.flags = flags
        self.vendor = vendor

    def __call__(self, name: str) -> str:
        return normalize_identifier(name, self.flags, self.vendor)
