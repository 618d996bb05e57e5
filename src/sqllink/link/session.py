from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pybreaker
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, CursorResult, Engine, make_url
from sqlalchemy.engine.url import URL

from sqllink.common.resilience import create_breaker
from sqllink.common.settings import settings

from .dialect import DialectFlags, VendorFamily, vendor_family_from_url
from .models import LinkKey

logger = logging.getLogger(__name__)


def compile_positional(sql: str) -> Tuple[str, int]:
    """
    Rewrites ``?`` markers into named binds ``:p1``, ``:p2``...

    Markers inside quoted literals and identifiers are left alone, and colons
    inside literals are escaped so SQLAlchemy does not read them as binds.

    Args:
        sql: SQL text using ``?`` positional markers.

    Returns:
        The rewritten SQL and the number of markers found.
    """
    out: List[str] = []
    count = 0
    quote: Optional[str] = None
    for ch in sql:
        if quote is not None:
            if ch == ":":
                out.append("\\:")
                continue
            out.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"', "`"):
            quote = ch
            out.append(ch)
        elif ch == "?":
            count += 1
            out.append(f":p{count}")
        else:
            out.append(ch)
    return "".join(out), count


class PreparedStatement:
    """A reusable remote statement, bound to the RemoteSession that prepared it."""

    def __init__(self, session: "RemoteSession", sql: str, fetch_size: int = 0):
        self.sql = sql
        self.session = session
        compiled, self.parameter_count = compile_positional(sql)
        clause = text(compiled)
        if fetch_size:
            clause = clause.execution_options(stream_results=True, max_row_buffer=fetch_size)
        self.fetch_size = fetch_size
        self._clause = clause
        self.result: Optional[CursorResult] = None
        self.closed = False

    def execute(self, params: Sequence[Any] = ()) -> CursorResult:
        """Executes with 1-based positional parameters."""
        self.close_result()
        bound = {f"p{i}": value for i, value in enumerate(params, start=1)}
        self.result = self.session.connection.execute(self._clause, bound)
        return self.result

    def close_result(self) -> None:
        if self.result is not None:
            try:
                self.result.close()
            finally:
                self.result = None

    def close(self) -> None:
        self.close_result()
        self.closed = True

    def __repr__(self) -> str:
        return f"PreparedStatement({self.sql!r})"


class RemoteSession:
    """
    A single live connection to the remote source.

    Every remote call, statement cache mutation and close must hold ``lock``.
    The statement cache lives and dies with the session.
    """

    def __init__(self, key: LinkKey, connection: Connection, vendor: VendorFamily):
        self.key = key
        self.connection = connection
        self.vendor = vendor
        self.flags = DialectFlags()
        self.lock = RLock()
        self.use_count = 0
        self.closed = False
        self._statements: Dict[str, PreparedStatement] = {}

    @property
    def dialect(self):
        return self.connection.dialect

    def quote_identifier(self, name: str) -> str:
        return self.connection.dialect.identifier_preparer.quote(name)

    def prepare(self, sql: str, fetch_size: int = 0) -> PreparedStatement:
        return PreparedStatement(self, sql, fetch_size)

    def take_statement(self, sql: str) -> Optional[PreparedStatement]:
        """Removes and returns the cached statement for ``sql``, if any."""
        with self.lock:
            return self._statements.pop(sql, None)

    def put_statement(self, sql: str, statement: PreparedStatement) -> None:
        """Caches ``statement`` under ``sql``; last writer wins."""
        with self.lock:
            if self.closed or statement.session is not self:
                statement.close()
                return
            previous = self._statements.get(sql)
            self._statements[sql] = statement
        if previous is not None and previous is not statement:
            previous.close()

    def cached_statements(self) -> List[str]:
        with self.lock:
            return list(self._statements)

    def clear_statements(self) -> None:
        with self.lock:
            statements = list(self._statements.values())
            self._statements.clear()
        for statement in statements:
            statement.close()

    def discard(self, force: bool = False) -> None:
        """Closes the connection and invalidates the statement cache.

        With ``force`` the DBAPI connection is invalidated instead of being
        returned to the engine's pool.
        """
        with self.lock:
            if self.closed:
                return
            self.closed = True
            self.clear_statements()
            try:
                if force:
                    self.connection.invalidate()
            finally:
                self.connection.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"RemoteSession({self.key.url!r}, {state})"


def build_url(key: LinkKey) -> URL:
    """Builds the SQLAlchemy URL for a link key.

    The driver is folded into the drivername when the URL names none, and
    user/password override the credentials embedded in the URL.
    """
    url = make_url(key.url)
    if key.driver and "+" not in url.drivername:
        url = url.set(drivername=f"{url.drivername}+{key.driver}")
    if key.user:
        url = url.set(username=key.user)
    if key.password:
        url = url.set(password=key.password)
    return url


class SessionPool:
    """
    Hands out RemoteSessions for link keys.

    Sessions are exclusive to one linked table unless sharing is enabled, in
    which case tables with the same key share one ref-counted session. Each key
    gets its own circuit breaker around connection acquisition.
    """

    def __init__(
        self,
        share_sessions: Optional[bool] = None,
        breaker_fail_max: Optional[int] = None,
        breaker_reset_timeout: Optional[int] = None,
        engine_factory: Optional[Callable[..., Engine]] = None,
    ):
        self._share = settings.share_linked_sessions if share_sessions is None else share_sessions
        self._fail_max = breaker_fail_max or settings.breaker_fail_max
        self._reset_timeout = (
            settings.breaker_reset_timeout if breaker_reset_timeout is None else breaker_reset_timeout
        )
        self._engine_factory = engine_factory or create_engine
        self._engines: Dict[LinkKey, Engine] = {}
        self._breakers: Dict[LinkKey, pybreaker.CircuitBreaker] = {}
        self._shared: Dict[LinkKey, RemoteSession] = {}
        self._lock = RLock()

    @property
    def share_sessions(self) -> bool:
        return self._share

    def _engine_for(self, key: LinkKey) -> Engine:
        with self._lock:
            engine = self._engines.get(key)
            if engine is None:
                engine = self._engine_factory(build_url(key), pool_pre_ping=settings.pool_pre_ping)
                self._engines[key] = engine
            return engine

    def breaker_for(self, key: LinkKey) -> pybreaker.CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(key)
            if breaker is None:
                url = make_url(key.url)
                breaker = create_breaker(
                    name=f"LINK_BREAKER[{url.render_as_string(hide_password=True)}]",
                    fail_max=self._fail_max,
                    reset_timeout=self._reset_timeout,
                )
                self._breakers[key] = breaker
            return breaker

    def acquire(self, key: LinkKey) -> RemoteSession:
        """
        Returns a connected session for ``key``.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the remote cannot be reached.
            pybreaker.CircuitBreakerError: If the breaker for ``key`` is open.
        """
        with self._lock:
            if self._share:
                shared = self._shared.get(key)
                if shared is not None and not shared.closed:
                    shared.use_count += 1
                    return shared
        engine = self._engine_for(key)
        connection = self.breaker_for(key).call(engine.connect)
        # every remote statement commits on its own
        connection = connection.execution_options(isolation_level="AUTOCOMMIT")
        session = RemoteSession(key, connection, vendor_family_from_url(key.url))
        session.use_count = 1
        with self._lock:
            if self._share:
                self._shared[key] = session
        logger.debug(f"Opened remote session for {engine.url.render_as_string(hide_password=True)}")
        return session

    def release(self, session: RemoteSession, force: bool = False) -> None:
        """
        Gives a session back.

        The session is closed once no table uses it, or immediately with
        ``force`` (used when the session is suspected broken).
        """
        with self._lock:
            session.use_count -= 1
            if not force and session.use_count > 0:
                return
            if self._shared.get(session.key) is session:
                del self._shared[session.key]
        session.discard(force=force)

    def close(self) -> None:
        """Closes shared sessions and disposes every engine."""
        with self._lock:
            shared = list(self._shared.values())
            self._shared.clear()
            engines = list(self._engines.values())
            self._engines.clear()
        for session in shared:
            session.discard()
        for engine in engines:
            engine.dispose()
