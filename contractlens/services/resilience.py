from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from sqlalchemy.exc import DBAPIError, OperationalError

from contractlens.core.config import get_settings
from contractlens.services.telemetry import increment_counter


logger = logging.getLogger(__name__)


TransientException = (TimeoutError, asyncio.TimeoutError, OSError, OperationalError)


def _default_retryable(exc: Exception) -> bool:
    # Retry only transient store failures (timeouts, dropped connections).
    if isinstance(exc, TransientException):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return False


@dataclass(frozen=True)
class RetryPolicy:
    timeout_ms: int
    max_attempts: int
    backoff_ms: int


def default_retry_policy() -> RetryPolicy:
    settings = get_settings()
    return RetryPolicy(
        timeout_ms=settings.report_fetch_timeout_ms,
        max_attempts=settings.report_fetch_max_attempts,
        backoff_ms=settings.report_fetch_backoff_ms,
    )


async def retry_async(
    func: Callable[[], Awaitable[Any]],
    *,
    policy: RetryPolicy | None = None,
    retryable: Callable[[Exception], bool] | None = None,
    name: str = "call",
) -> Any:
    # Each attempt gets its own timeout; backoff is jittered and exponential.
    policy = policy or default_retry_policy()
    retryable = retryable or _default_retryable
    attempt = 1
    while True:
        try:
            return await asyncio.wait_for(func(), timeout=policy.timeout_ms / 1000.0)
        except Exception as exc:  # noqa: BLE001 - caller handles non-transient failures
            if attempt >= max(policy.max_attempts, 1) or not retryable(exc):
                raise
            increment_counter("report_fetch_retries_total")
            logger.info("retrying_call name=%s attempt=%s error=%r", name, attempt, exc)
            jitter = random.uniform(0.5, 1.5)
            sleep_s = (policy.backoff_ms / 1000.0) * (2 ** (attempt - 1)) * jitter
            await asyncio.sleep(sleep_s)
            attempt += 1
