from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from sqllink.common.errors import wrap_exception
from sqllink.common.resilience import MAX_RETRY, Outcome
from sqllink.engine.session import EngineSession

from .connection import ConnectionManager
from .ddl import render_literal
from .session import PreparedStatement, RemoteSession

logger = logging.getLogger(__name__)


def format_trace(name: str, sql: str, params: Optional[Sequence[Any]]) -> str:
    """Renders a statement as ``NAME:\\n<sql> {1: v1, 2: v2};`` for the debug trace."""
    parts = [f"{name}:\n{sql}"]
    if params:
        bound = ", ".join(f"{i}: {render_literal(v)}" for i, v in enumerate(params, start=1))
        parts.append(f" {{{bound}}}")
    parts.append(";")
    return "".join(parts)


class StatementExecutor:
    """
    Runs parameterized SQL on the remote session of a linked table.

    Prepared statements are cached on the session by their SQL text. A cached
    statement is removed while in use, so two callers never share one.

    Args:
        connection: The linked table's connection manager.
        name: Linked table name, used in the debug trace.
        fetch_size: Returns the current fetch-size hint.
    """

    def __init__(self, connection: ConnectionManager, name: str, fetch_size: Callable[[], int] = lambda: 0):
        self.connection = connection
        self.name = name
        self._fetch_size = fetch_size

    def execute(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        reuse_prepared: bool = True,
        session: Optional[EngineSession] = None,
    ) -> Optional[PreparedStatement]:
        """
        Executes ``sql`` with 1-based positional ``params``.

        Args:
            sql: SQL text with ``?`` parameter markers.
            params: Local values, converted for the remote side through ``session``.
            reuse_prepared: Put the statement back into the cache right away.
            session: The engine session the statement runs for.

        Returns:
            None if the statement was put back, otherwise the executed statement.
            The caller must hand it back through ``reuse_prepared_statement`` or
            close it.

        Raises:
            LinkError: The remembered connect failure of a disconnected table.
            RemoteExecutionFailure: If the statement keeps failing after reconnecting.
        """
        remote = self.connection.require_session()
        outcome: Outcome[PreparedStatement] = Outcome()
        for attempt in range(MAX_RETRY + 1):
            outcome = self._attempt(remote, sql, params, session)
            if outcome.ok:
                break
            if attempt >= MAX_RETRY:
                raise wrap_exception(sql, outcome.error) from outcome.error
            logger.warning(f"Statement on linked table {self.name} failed, reconnecting: {outcome.error}")
            remote = self.connection.reconnect(remote)

        statement = outcome.value
        if reuse_prepared:
            self.reuse_prepared_statement(statement, sql)
            return None
        return statement

    def _attempt(
        self,
        remote: RemoteSession,
        sql: str,
        params: Optional[Sequence[Any]],
        session: Optional[EngineSession],
    ) -> Outcome[PreparedStatement]:
        values: List[Any] = []
        for value in params or ():
            values.append(session.convert_to_remote(value) if session is not None else value)
        with remote.lock:
            statement = remote.take_statement(sql)
            if statement is None:
                statement = remote.prepare(sql, self._fetch_size())
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(format_trace(self.name, sql, params))
            try:
                statement.execute(values)
            except SQLAlchemyError as exc:
                statement.close()
                return Outcome.failure(exc)
        return Outcome.success(statement)

    def reuse_prepared_statement(self, statement: PreparedStatement, sql: str) -> None:
        """Adds a statement the caller is done with back to the cache.

        Statements of a session that has since been discarded are closed instead.
        """
        remote = self.connection.session
        if remote is None or remote.closed or statement.session is not remote:
            statement.close()
            return
        statement.close_result()
        remote.put_statement(sql, statement)

    @contextmanager
    def open_statement(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        session: Optional[EngineSession] = None,
    ) -> Iterator[PreparedStatement]:
        """Executes ``sql`` and yields the statement with its result still open.

        The statement goes back to the cache when the block exits normally and
        is closed otherwise.
        """
        statement = self.execute(sql, params, reuse_prepared=False, session=session)
        try:
            yield statement
        except BaseException:
            statement.close()
            raise
        self.reuse_prepared_statement(statement, sql)
