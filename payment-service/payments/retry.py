"""Explicit retry policy for calls into the order service."""
from dataclasses import dataclass
from typing import Awaitable, Callable, NoReturn, TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_exception, stop_after_attempt, wait_exponential

from payments.config import (
    PAYMENT_RETRY_MAX_ATTEMPTS,
    PAYMENT_RETRY_WAIT_MAX,
    PAYMENT_RETRY_WAIT_MIN,
    PAYMENT_RETRY_WAIT_MULTIPLIER,
)
from payments.order_client import OrderServiceError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, OrderServiceError) and exc.is_transient


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    wait_multiplier: float = 1
    wait_min: float = 2
    wait_max: float = 10
    retry_on: Callable[[BaseException], bool] = is_transient

    @classmethod
    def from_env(cls) -> "RetryPolicy":
        return cls(
            max_attempts=PAYMENT_RETRY_MAX_ATTEMPTS,
            wait_multiplier=PAYMENT_RETRY_WAIT_MULTIPLIER,
            wait_min=PAYMENT_RETRY_WAIT_MIN,
            wait_max=PAYMENT_RETRY_WAIT_MAX,
        )


def _log_retry(retry_state: RetryCallState) -> None:
    logger.warning(
        "order_service_retry",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()),
        sleep=retry_state.next_action.sleep if retry_state.next_action else None,
    )


async def call_with_retry(
    policy: RetryPolicy,
    operation: Callable[[], Awaitable[T]],
    fallback: Callable[[BaseException], NoReturn],
) -> T:
    """
    Await ``operation`` until it succeeds or the policy gives up.

    Exceptions the policy does not retry propagate unchanged on the first
    occurrence. When the attempts run out, ``fallback`` is called with the last
    exception; it is expected to raise.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(multiplier=policy.wait_multiplier, min=policy.wait_min, max=policy.wait_max),
        retry=retry_if_exception(policy.retry_on),
        before_sleep=_log_retry,
    )
    try:
        return await retrying(operation)
    except RetryError as e:
        fallback(e.last_attempt.exception())
        raise
