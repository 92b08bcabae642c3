"""
Circuit breaker for calls to external AI providers.

A scan must never hang on a provider that keeps failing: after a few
consecutive failures the breaker opens and callers fail fast, which sends
the scan straight to the rule-based task source.
"""

import time
from typing import Any, Awaitable, Callable

from backend.app.core.logging import get_logger

logger = get_logger(__name__)


class CircuitBreakerOpenException(Exception):
    """Raised when the circuit is open and calls are blocked."""
    pass


class CircuitBreaker:
    """
    States:
    - CLOSED: calls pass through.
    - OPEN: calls raise CircuitBreakerOpenException until recovery_timeout elapses.
    - HALF-OPEN: one trial call decides between CLOSED and OPEN.
    """

    def __init__(self, name: str, failure_threshold: int = 5, recovery_timeout: int = 30):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.reset()

    def reset(self) -> None:
        self.failure_count = 0
        self.opened_at = 0.0
        self.state = "CLOSED"

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        if self.state == "OPEN":
            if time.monotonic() - self.opened_at < self.recovery_timeout:
                raise CircuitBreakerOpenException(
                    f"Circuit '{self.name}' is OPEN after {self.failure_count} failures"
                )
            self.state = "HALF-OPEN"
            logger.info(f"Circuit '{self.name}' HALF-OPEN, allowing a trial call")

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            self._record_failure(e)
            raise

        if self.state == "HALF-OPEN":
            logger.info(f"Circuit '{self.name}' CLOSED, provider recovered")
        self.failure_count = 0
        self.state = "CLOSED"
        return result

    def _record_failure(self, error: Exception) -> None:
        self.failure_count += 1
        logger.warning(
            f"Circuit '{self.name}' failure {self.failure_count}/{self.failure_threshold}: {error}"
        )
        if self.state == "HALF-OPEN" or self.failure_count >= self.failure_threshold:
            self.state = "OPEN"
            self.opened_at = time.monotonic()
            logger.warning(f"Circuit '{self.name}' OPEN for {self.recovery_timeout}s")


llm_circuit_breaker = CircuitBreaker("llm", failure_threshold=3, recovery_timeout=60)
