from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, Optional

import pybreaker
from sqlalchemy.exc import SQLAlchemyError

from sqllink.common.errors import (
    AmbiguousRemoteObject,
    ConnectFailure,
    LinkError,
    ObjectNotFound,
    remote_message,
)
from sqllink.common.resilience import MAX_RETRY, Outcome

from .models import LinkKey
from .session import RemoteSession, SessionPool

logger = logging.getLogger(__name__)

# Introspection found the remote object unusable; reconnecting cannot help.
NON_RETRYABLE = (AmbiguousRemoteObject, ObjectNotFound)


class ConnectionManager:
    """
    Owns the remote session of one linked table.

    Every successful connect runs ``on_connect`` (schema introspection) while
    holding the session lock, so a session is never handed to callers before
    the table metadata has been read from it. Connecting, reconnecting and
    closing are serialized; concurrent callers block until the current one is
    done.

    Args:
        key: The remote target.
        pool: Where sessions are acquired and released.
        on_connect: Handshake run against each freshly acquired session.
        name: Linked table name, used in log messages.
    """

    def __init__(
        self,
        key: LinkKey,
        pool: SessionPool,
        on_connect: Callable[[RemoteSession], None],
        name: str = "",
    ):
        self.key = key
        self.name = name
        self._pool = pool
        self._on_connect = on_connect
        self._lock = RLock()
        self.session: Optional[RemoteSession] = None
        self.connect_failure: Optional[LinkError] = None

    @property
    def connected(self) -> bool:
        return self.session is not None and not self.session.closed

    def connect(self) -> RemoteSession:
        """
        Acquires a session and runs the handshake, retrying up to MAX_RETRY times.

        Each call starts a fresh retry budget. When the budget is spent the final
        error is remembered and raised.

        Raises:
            ConnectFailure: If the remote cannot be reached or the handshake fails.
            AmbiguousRemoteObject, ObjectNotFound: If introspection rejects the
                remote object; these are not retried.
        """
        with self._lock:
            self.connect_failure = None
            outcome: Outcome[RemoteSession] = Outcome.failure(ConnectFailure(f"Could not connect to {self.name}"))
            for attempt in range(MAX_RETRY + 1):
                outcome = self._attempt()
                if outcome.ok:
                    self.session = outcome.value
                    return self.session
                if isinstance(outcome.error, NON_RETRYABLE):
                    break
                if attempt < MAX_RETRY:
                    logger.warning(
                        f"Connect attempt {attempt + 1} for linked table {self.name} failed, retrying: {outcome.error}"
                    )
            self.connect_failure = outcome.error
            raise outcome.error

    def _attempt(self) -> Outcome[RemoteSession]:
        try:
            session = self._pool.acquire(self.key)
        except (SQLAlchemyError, pybreaker.CircuitBreakerError) as exc:
            text = remote_message(exc)
            failure = ConnectFailure(
                f"Error opening connection for linked table {self.name}, cause: {text}",
                remote_message=text,
            )
            failure.__cause__ = exc
            return Outcome.failure(failure)

        try:
            with session.lock:
                self._on_connect(session)
        except Exception as exc:
            self._pool.release(session, force=True)
            if isinstance(exc, LinkError):
                return Outcome.failure(exc)
            text = remote_message(exc)
            failure = ConnectFailure(
                f"Error reading metadata for linked table {self.name}, cause: {text}",
                remote_message=text,
            )
            failure.__cause__ = exc
            return Outcome.failure(failure)
        return Outcome.success(session)

    def reconnect(self, failed: Optional[RemoteSession] = None) -> RemoteSession:
        """Discards the current session (and its statement cache) and connects anew.

        When ``failed`` is given and another caller has already replaced that
        session, the live replacement is returned instead.
        """
        with self._lock:
            if failed is not None and self.session is not failed and self.connected:
                return self.session
            self.discard()
            return self.connect()

    def discard(self) -> None:
        with self._lock:
            session, self.session = self.session, None
            if session is not None:
                self._pool.release(session, force=True)

    def require_session(self) -> RemoteSession:
        """Returns the live session, or raises the remembered connect failure."""
        if self.connect_failure is not None:
            raise self.connect_failure
        session = self.session
        if session is None:
            raise ConnectFailure(f"Linked table {self.name} is not connected")
        return session

    def close(self) -> None:
        """Releases the session; calling it again does nothing."""
        with self._lock:
            session, self.session = self.session, None
            if session is not None:
                self._pool.release(session)
