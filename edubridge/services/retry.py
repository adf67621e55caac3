"""
edubridge/services/retry.py
Bounded retry with exponential backoff for storage operations

Only transient failures are retried. Domain errors (validation, authorization,
not found, conflict) propagate on the first occurrence, so a conditional
approval that lost a race surfaces as ConflictError instead of being replayed.
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import OperationalError, DisconnectionError, TimeoutError as PoolTimeoutError

from edubridge.config.settings import settings
from edubridge.errors import EduBridgeError, TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_EXCEPTIONS = (
    OperationalError,
    DisconnectionError,
    PoolTimeoutError,
    asyncio.TimeoutError,
    ConnectionError,
)

# Consecutive failures after which the connection is considered degraded
DEGRADED_THRESHOLD = 3


@dataclass(frozen=True)
class RetryPolicy:
    """
    Immutable retry parameters.

    delay(n) = min(base_delay * 2**(n-1), max_delay) + uniform(0, jitter)
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 8.0
    jitter: float = 0.5
    timeout: float = 10.0
    degraded_delay: float = 2.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            base_delay=settings.RETRY_BASE_DELAY_SECONDS,
            max_delay=settings.RETRY_MAX_DELAY_SECONDS,
            jitter=settings.RETRY_JITTER_SECONDS,
            timeout=settings.OPERATION_TIMEOUT_SECONDS,
        )

    def backoff(self, attempt: int) -> float:
        """Base delay before retrying after failed attempt `attempt` (1-based), without jitter."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def delay_for(self, attempt: int, degraded: bool = False) -> float:
        delay = self.backoff(attempt)
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)
        if degraded:
            delay += self.degraded_delay
        return delay


class ConnectionHealth:
    """
    Process-wide storage health, held on app.state and passed in explicitly.
    """

    def __init__(self):
        self.consecutive_failures = 0
        self.total_failures = 0

    @property
    def degraded(self) -> bool:
        return self.consecutive_failures > DEGRADED_THRESHOLD

    def record_success(self):
        self.consecutive_failures = 0

    def record_failure(self):
        self.consecutive_failures += 1
        self.total_failures += 1

    def snapshot(self) -> dict:
        return {
            "status": "degraded" if self.degraded else "ok",
            "consecutive_failures": self.consecutive_failures,
            "total_failures": self.total_failures,
        }


def is_transient(error: BaseException) -> bool:
    if isinstance(error, TransientError):
        return True
    if isinstance(error, EduBridgeError):
        return False
    return isinstance(error, TRANSIENT_EXCEPTIONS)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    health: Optional[ConnectionHealth] = None,
    on_retry: Optional[Callable[[], Awaitable[None]]] = None,
    operation_name: str = "operation",
    idempotent: bool = True,
) -> T:
    """
    Run `operation` with a per-attempt timeout, retrying transient failures.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        policy: Retry parameters (defaults from settings)
        health: Shared ConnectionHealth to update, if any
        on_retry: Awaited before each new attempt, e.g. session.rollback
        operation_name: Used in log lines
        idempotent: False for writes that must not be replayed once they may
            have landed (inserts, counter bumps, deletes). Such attempts run
            without the per-attempt timeout, so a dispatched write is never
            cancelled mid-flight, and a timeout raised from inside them is
            not retried.

    Returns:
        The operation's result

    Raises:
        EduBridgeError subclasses unchanged on first occurrence
        TransientError chained to the last cause once attempts are exhausted,
        or at once for a timeout inside a non-idempotent write
    """
    policy = policy or RetryPolicy.from_settings()
    timeout = policy.timeout if idempotent else None
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = await asyncio.wait_for(operation(), timeout=timeout)
        except Exception as e:
            if not is_transient(e):
                raise

            if not idempotent and isinstance(e, asyncio.TimeoutError):
                if health is not None:
                    health.record_failure()
                logger.error(
                    f"{operation_name} timed out; not retried because the write may have landed"
                )
                raise TransientError(f"{operation_name} timed out", cause=e) from e

            last_error = e
            if health is not None:
                health.record_failure()

            if attempt >= policy.max_attempts:
                break

            degraded = health.degraded if health is not None else False
            delay = policy.delay_for(attempt, degraded=degraded)
            logger.warning(
                f"{operation_name} attempt {attempt}/{policy.max_attempts} failed: "
                f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s"
                + (" (connection degraded)" if degraded else "")
            )
            await asyncio.sleep(delay)
            if on_retry is not None:
                await on_retry()
            continue

        if health is not None:
            health.record_success()
        return result

    logger.error(
        f"{operation_name} failed after {policy.max_attempts} attempts: "
        f"{type(last_error).__name__}: {last_error}"
    )
    raise TransientError(
        f"{operation_name} failed after {policy.max_attempts} attempts",
        cause=last_error,
    ) from last_error
