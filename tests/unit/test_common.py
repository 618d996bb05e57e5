import json
import logging

import pytest
from sqlalchemy.exc import OperationalError

from sqllink.common.cancellation import CancellationToken
from sqllink.common.errors import (
    ConnectFailure,
    ErrorCode,
    QueryCancelled,
    ReadOnlyViolation,
    wrap_exception,
)
from sqllink.common.logger import JsonFormatter, LinkContextFilter, current_link, link_context
from sqllink.common.resilience import MAX_RETRY, Outcome, create_breaker


def test_wrap_exception_carries_sql_and_remote_text():
    # Validates error wrapping because users need both the statement and the remote reason.
    # Arrange
    cause = OperationalError("SELECT 1", {}, Exception("table locked"))

    # Act
    error = wrap_exception("DELETE FROM T WHERE ID=?", cause)

    # Assert
    assert error.code == ErrorCode.REMOTE_EXECUTION_FAILED
    assert str(error) == "Error accessing linked table with SQL statement DELETE FROM T WHERE ID=?, cause: table locked"
    info = error.to_info()
    assert info.sql == "DELETE FROM T WHERE ID=?"
    assert info.remote_message == "table locked"
    assert info.retryable


def test_error_info_marks_non_retryable_codes():
    # Act / Assert
    assert not ReadOnlyViolation("read only").to_info().retryable
    assert ConnectFailure("down").to_info().error_code == ErrorCode.CONNECT_FAILED


def test_outcome_values():
    # Validates the attempt result type because retry loops branch on it.
    # Act
    success = Outcome.success(3)
    failure = Outcome.failure(RuntimeError("x"))

    # Assert
    assert success.ok and success.value == 3
    assert not failure.ok and isinstance(failure.error, RuntimeError)
    assert MAX_RETRY == 2


def test_create_breaker_uses_given_thresholds():
    # Act
    breaker = create_breaker("LINK_BREAKER[test]", fail_max=3, reset_timeout=10)

    # Assert
    assert breaker.name == "LINK_BREAKER[test]"
    assert breaker.fail_max == 3
    assert breaker.reset_timeout == 10


def test_link_context_is_stamped_on_records():
    # Validates log context because messages from shared code must name their table.
    # Arrange
    record = logging.LogRecord("sqllink", logging.INFO, __file__, 1, "connected", None, None)
    log_filter = LinkContextFilter()

    # Act
    with link_context("ORDERS"):
        log_filter.filter(record)
        inside = current_link()

    # Assert
    assert inside == "ORDERS"
    assert current_link() is None
    payload = json.loads(JsonFormatter().format(record))
    assert payload["link"] == "ORDERS"
    assert payload["message"] == "connected"


def test_cancellation_token():
    # Arrange
    token = CancellationToken()
    token.check()

    # Act
    token.cancel()

    # Assert
    assert token.is_cancelled()
    with pytest.raises(QueryCancelled):
        token.check()
    token.reset()
    assert not token.is_cancelled()
