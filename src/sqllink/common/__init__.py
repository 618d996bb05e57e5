from .errors import (
    ErrorCode,
    ErrorInfo,
    LinkError,
    ConnectFailure,
    AmbiguousRemoteObject,
    ObjectNotFound,
    UnsupportedOperation,
    ReadOnlyViolation,
    RemoteExecutionFailure,
    ValueConversionError,
    TableClosed,
    QueryCancelled,
    wrap_exception,
)
from .cancellation import CancellationToken

__all__ = [
    "ErrorCode",
    "ErrorInfo",
    "LinkError",
    "ConnectFailure",
    "AmbiguousRemoteObject",
    "ObjectNotFound",
    "UnsupportedOperation",
    "ReadOnlyViolation",
    "RemoteExecutionFailure",
    "ValueConversionError",
    "TableClosed",
    "QueryCancelled",
    "wrap_exception",
    "CancellationToken",
]
