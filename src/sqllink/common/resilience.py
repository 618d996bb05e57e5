"""
Resilience Module: bounded retries and circuit breakers for remote sessions.

Linked tables retry connects and statements a fixed number of times. Each attempt
returns an `Outcome` instead of raising, so the retry loops stay explicit and the
last error is surfaced once the budget is spent.

Session acquisition is additionally guarded by a per-target `pybreaker` breaker,
so a dead remote fails fast for every link pointing at it.
"""
from dataclasses import dataclass
from typing import Generic, List, Optional, Type, TypeVar

import pybreaker

from sqllink.common.logger import get_logger

logger = get_logger("resilience")

MAX_RETRY = 2

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a single attempt: either a value or the error that ended it."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Outcome[T]":
        return cls(error=error)


class ObservabilityListener(pybreaker.CircuitBreakerListener):
    """Listener to export circuit breaker state changes and failures to logs."""

    def state_change(self, cb, old_state, new_state):
        old_name = old_state.name if old_state else None
        logger.warning(
            f"Circuit Breaker '{cb.name}' changed state: {old_name} -> {new_state.name}"
        )

    def failure(self, cb, exc):
        logger.error(
            f"Circuit Breaker '{cb.name}' recorded failure: {type(exc).__name__}: {exc}"
        )


def create_breaker(
    name: str,
    fail_max: int = 5,
    reset_timeout: int = 30,
    exclude: Optional[List[Type[Exception]]] = None
) -> pybreaker.CircuitBreaker:
    """Factory to create a configured Circuit Breaker."""
    return pybreaker.CircuitBreaker(
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        name=name,
        listeners=[ObservabilityListener()],
        exclude=exclude or []
    )
