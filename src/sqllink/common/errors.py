from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import DBAPIError


class ErrorCode(str, Enum):
    """Standardized error codes for linked table failures."""
    CONNECT_FAILED = "CONNECT_FAILED"
    AMBIGUOUS_REMOTE_OBJECT = "AMBIGUOUS_REMOTE_OBJECT"
    OBJECT_NOT_FOUND = "OBJECT_NOT_FOUND"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    READ_ONLY_VIOLATION = "READ_ONLY_VIOLATION"
    REMOTE_EXECUTION_FAILED = "REMOTE_EXECUTION_FAILED"
    VALUE_CONVERSION_FAILED = "VALUE_CONVERSION_FAILED"
    TABLE_CLOSED = "TABLE_CLOSED"
    CANCELLED = "CANCELLED"


RETRYABLE_ERRORS = {
    ErrorCode.CONNECT_FAILED,
    ErrorCode.REMOTE_EXECUTION_FAILED,
}


class ErrorInfo(BaseModel):
    """Structured view of a LinkError.

    Attributes:
        error_code (ErrorCode): The standardized error code.
        message (str): Human-readable message, including SQL and remote text.
        sql (Optional[str]): The SQL statement that failed, if any.
        remote_message (Optional[str]): The remote system's literal error message.
        retryable (bool): Whether the failure class is retried internally.
        details (Optional[Any]): Additional context.
    """
    model_config = ConfigDict(extra="ignore")

    error_code: ErrorCode
    message: str
    sql: Optional[str] = None
    remote_message: Optional[str] = None
    retryable: bool = False
    details: Optional[Any] = None


class LinkError(Exception):
    """Base class for every error raised by a linked table."""

    code: ErrorCode = ErrorCode.REMOTE_EXECUTION_FAILED

    def __init__(
        self,
        message: str,
        *,
        sql: Optional[str] = None,
        remote_message: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        self.sql = sql
        self.remote_message = remote_message
        self.details = details

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(
            error_code=self.code,
            message=self.message,
            sql=self.sql,
            remote_message=self.remote_message,
            retryable=self.code in RETRYABLE_ERRORS,
            details=self.details,
        )


class ConnectFailure(LinkError):
    """Remote unreachable or credentials rejected after the retry budget."""
    code = ErrorCode.CONNECT_FAILED


class AmbiguousRemoteObject(LinkError):
    """The remote table name matches more than one remote table."""
    code = ErrorCode.AMBIGUOUS_REMOTE_OBJECT


class ObjectNotFound(LinkError):
    """The accessibility probe against the remote object failed."""
    code = ErrorCode.OBJECT_NOT_FOUND


class UnsupportedOperation(LinkError):
    code = ErrorCode.UNSUPPORTED_OPERATION


class ReadOnlyViolation(LinkError):
    code = ErrorCode.READ_ONLY_VIOLATION


class RemoteExecutionFailure(LinkError):
    code = ErrorCode.REMOTE_EXECUTION_FAILED


class ValueConversionError(LinkError):
    code = ErrorCode.VALUE_CONVERSION_FAILED


class TableClosed(LinkError):
    code = ErrorCode.TABLE_CLOSED


class QueryCancelled(LinkError):
    code = ErrorCode.CANCELLED


def remote_message(exc: BaseException) -> str:
    """Returns the remote driver's own message for an exception.

    SQLAlchemy wraps DBAPI errors; the original driver text lives on ``orig``.
    """
    if isinstance(exc, LinkError):
        return exc.remote_message or exc.message
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc)


def wrap_exception(sql: str, exc: BaseException) -> RemoteExecutionFailure:
    """Wraps an exception that occurred while accessing a linked table.

    Args:
        sql (str): The SQL statement sent to the remote database.
        exc (BaseException): The exception raised by the remote database.

    Returns:
        RemoteExecutionFailure: The wrapped error, carrying SQL and remote text.
    """
    text = remote_message(exc)
    return RemoteExecutionFailure(
        f"Error accessing linked table with SQL statement {sql}, cause: {text}",
        sql=sql,
        remote_message=text,
    )
