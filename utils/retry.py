"""
Retry logic for handling remote failures.

Two layers live here:

* ``retry_with_backoff`` transparently retries idempotent-safe transport
  failures (connection drops, timeouts, 5xx) with exponential backoff,
  before any error reaches the scraper.
* ``RetryPolicy`` decides, per classified failure, whether the scraper
  waits and retries the same page, skips it, or aborts the project.
"""
import logging
import time
from enum import Enum
from typing import Callable, NamedTuple, Optional

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    retry_if_exception,
)

from utils.errors import FailureKind

logger = logging.getLogger(__name__)


def is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception is safe to retry at the transport level."""
    if isinstance(exception, requests.exceptions.HTTPError):
        response = exception.response
        status_code = response.status_code if response is not None else None
        return status_code is not None and status_code >= 500
    return isinstance(exception, (
        requests.exceptions.ConnectionError,
        requests.exceptions.Timeout,
        requests.exceptions.ChunkedEncodingError
    ))


def backoff_delay(
    attempt: int,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0
) -> float:
    """Delay before retry number ``attempt`` (1-based) of the backoff schedule."""
    if attempt < 1:
        return 0.0
    return min(initial_delay * exponential_base ** (attempt - 1), max_delay)


def retry_with_backoff(
    max_retries: int = 5,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    sleep: Callable[[float], None] = time.sleep
):
    """
    Decorator for retrying functions with exponential backoff.

    Only errors accepted by ``is_retryable_error`` are retried; everything
    else propagates on the first occurrence. Waits follow ``backoff_delay``.

    Args:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential backoff
        sleep: Sleep function, replaceable in tests
    """
    def wait(retry_state) -> float:
        return backoff_delay(
            retry_state.attempt_number, initial_delay, max_delay, exponential_base
        )

    def log_retry(retry_state) -> None:
        exc = retry_state.outcome.exception()
        logger.warning(
            f"Retryable error in {retry_state.fn.__name__} "
            f"(attempt {retry_state.attempt_number}/{max_retries + 1}): "
            f"{str(exc)[:100]}. Retrying..."
        )

    def decorator(func: Callable) -> Callable:
        return retry(
            stop=stop_after_attempt(max_retries + 1),
            wait=wait,
            retry=retry_if_exception(is_retryable_error),
            before_sleep=log_retry,
            sleep=sleep,
            reraise=True
        )(func)

    return decorator


class RetryAction(Enum):
    RETRY = "retry"
    SKIP = "skip"
    ABORT = "abort"


class RetryDecision(NamedTuple):
    action: RetryAction
    delay: float = 0.0


class RetryPolicy:
    """
    Maps ``(attempt, failure kind)`` to a retry decision.

    The policy is pure: it never sleeps and never touches the network, so
    the scraper's reaction to every failure class can be tested directly.
    """

    def __init__(
        self,
        base_delay: float,
        rate_limit_multiplier: int = 3,
        server_error_multiplier: int = 2,
        max_attempts: int = 10,
        unclassified: str = "skip"
    ):
        """
        Args:
            base_delay: Base delay in seconds
            rate_limit_multiplier: Multiple of the base delay to wait after a 429
            server_error_multiplier: Multiple of the base delay to wait after a 5xx
            max_attempts: Failed attempts of one page after which retrying stops
            unclassified: "skip", "retry" or "abort" for unclassified failures
        """
        self.base_delay = base_delay
        self.rate_limit_multiplier = rate_limit_multiplier
        self.server_error_multiplier = server_error_multiplier
        self.max_attempts = max_attempts
        self.unclassified = unclassified

    @classmethod
    def from_config(cls, config) -> "RetryPolicy":
        return cls(
            base_delay=config.base_delay,
            rate_limit_multiplier=config.rate_limit_multiplier,
            server_error_multiplier=config.server_error_multiplier,
            max_attempts=config.page_retry_limit,
            unclassified=config.unclassified_failure_policy,
        )

    def decide(self, attempt: int, kind: FailureKind) -> RetryDecision:
        """
        Decide how to react to the ``attempt``-th consecutive failure of a page.

        Args:
            attempt: 1-based count of consecutive failures for the same page
            kind: Classified failure

        Returns:
            RetryDecision with the action and, for RETRY, the delay in seconds
        """
        if kind is FailureKind.CONNECTIVITY:
            return RetryDecision(RetryAction.ABORT)

        delay: Optional[float] = None
        if kind is FailureKind.RATE_LIMITED:
            delay = self.base_delay * self.rate_limit_multiplier
        elif kind is FailureKind.SERVER:
            delay = self.base_delay * self.server_error_multiplier
        elif self.unclassified == "skip":
            return RetryDecision(RetryAction.SKIP)
        elif self.unclassified == "abort":
            return RetryDecision(RetryAction.ABORT)
        else:
            delay = self.base_delay

        if attempt >= self.max_attempts:
            return RetryDecision(RetryAction.ABORT)
        return RetryDecision(RetryAction.RETRY, delay)
