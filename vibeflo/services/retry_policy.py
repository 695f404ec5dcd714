import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from vibeflo.errors import ApiError, GatewayError, RequestTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

NON_RETRYABLE_STATUSES = {401, 404}
TIMEOUT_CODES = {"ECONNABORTED", "ETIMEDOUT"}
TIMEOUT_STATUSES = {408, 504}


def is_timeout_error(exc: BaseException) -> bool:
    """True for client-side timeouts and server-reported timeout conditions.

    A "timeout" message only counts on gateway errors, and on API errors only
    for 5xx responses; a 4xx body that mentions a timeout field is a
    validation failure, not a timeout.
    """
    if isinstance(exc, (RequestTimeoutError, TimeoutError)):
        return True
    if getattr(exc, "code", None) in TIMEOUT_CODES:
        return True
    if isinstance(exc, ApiError):
        if exc.status_code in TIMEOUT_STATUSES:
            return True
        return exc.status_code >= 500 and "timeout" in str(exc).lower()
    return isinstance(exc, GatewayError) and "timeout" in str(exc).lower()


def exponential_backoff(
    attempt: int,
    initial_delay: float,
    jitter: Callable[[float, float], float] = random.uniform,
) -> float:
    """Delay in seconds before the attempt following ``attempt`` (0-based)."""
    return initial_delay * (2 ** attempt) * jitter(0.9, 1.1)


@dataclass
class RetryPolicy:
    """Retry an async operation on transient failures with exponential backoff.

    ``max_retries`` is the total attempt budget. 401 and 404 responses are
    surfaced after the first attempt, anything ``is_retryable`` rejects is
    surfaced immediately, and once the budget is spent the last failure is
    raised.
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    is_retryable: Callable[[BaseException], bool] = is_timeout_error
    backoff: Callable[[int, float], float] = exponential_backoff

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "operation") -> T:
        attempts = max(1, self.max_retries)
        for attempt in range(attempts):
            try:
                return await operation()
            except Exception as exc:
                if isinstance(exc, ApiError) and exc.status_code in NON_RETRYABLE_STATUSES:
                    raise
                if not self.is_retryable(exc):
                    raise
                if attempt == attempts - 1:
                    logger.warning(
                        "%s failed after %d attempts: %s", label, attempts, exc
                    )
                    raise

                delay = self.backoff(attempt, self.initial_delay)
                logger.warning(
                    "%s attempt %d/%d timed out, retrying in %.2fs",
                    label,
                    attempt + 1,
                    attempts,
                    delay,
                )
                await asyncio.sleep(delay)

        raise RuntimeError("unreachable")  # pragma: no cover
