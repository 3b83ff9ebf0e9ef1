"""
Retry/backoff policy for network calls.

Delay grows exponentially with jitter: base * 2**attempt plus up to 30% of
that. Only transient failures are retried, and cancellation stops the loop
immediately.
"""
import logging
import random
from typing import Callable, Optional, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
)

from .cancellation import CancellationToken
from .errors import (
    NetworkError,
    NoInternetError,
    RequestFailedError,
    RequestTimeoutError,
    ServerError,
)

logger = logging.getLogger("network.retry")

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0
JITTER_RATIO = 0.3


class RetryPolicy:
    """
    Classifies errors and computes backoff delays.

    Usage:
        policy = RetryPolicy()
        data = policy.call(lambda: fetch(), max_retries=2, base_delay=1.0, token=token)
    """

    def __init__(self, jitter_ratio: float = JITTER_RATIO, rng: Optional[random.Random] = None):
        """
        Args:
            jitter_ratio: Upper bound of the jitter as a fraction of the exponential delay
            rng: Random source for jitter (injectable for deterministic tests)
        """
        self.jitter_ratio = jitter_ratio
        self._rng = rng or random.Random()

    def is_retryable(self, error: BaseException) -> bool:
        """True for timeouts, connectivity loss, server errors, 5xx and 429."""
        if isinstance(error, (RequestTimeoutError, NoInternetError, ServerError)):
            return True
        if isinstance(error, RequestFailedError):
            return error.status_code >= 500 or error.status_code == 429
        return False

    def delay(self, attempt: int, base_delay: float = DEFAULT_BASE_DELAY) -> float:
        """
        Backoff before retry number `attempt + 1` (attempt counts from 0).

        Always within [exponential, exponential * (1 + jitter_ratio)].
        """
        exponential = base_delay * (2 ** attempt)
        jitter = self._rng.uniform(0.0, self.jitter_ratio) * exponential
        return exponential + jitter

    def call(
        self,
        fn: Callable[[], T],
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        token: Optional[CancellationToken] = None,
    ) -> T:
        """
        Run `fn`, retrying retryable NetworkErrors up to `max_retries` times.

        Cancellation is checked before and after each attempt and interrupts
        the backoff sleep.

        Raises:
            RequestCancelledError: As soon as cancellation is observed
            NetworkError: The last error once retries are exhausted or on a
                terminal error
        """
        token = token or CancellationToken()

        def attempt() -> T:
            token.raise_if_cancelled()
            result = fn()
            token.raise_if_cancelled()
            return result

        def wait(retry_state: RetryCallState) -> float:
            return self.delay(retry_state.attempt_number - 1, base_delay)

        def log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            message = error.user_message if isinstance(error, NetworkError) else str(error)
            logger.warning(
                f"Request failed: {message} Retrying in "
                f"{retry_state.next_action.sleep:.2f}s "
                f"({retry_state.attempt_number}/{max_retries})"
            )

        retrying = Retrying(
            stop=stop_after_attempt(max_retries + 1),
            wait=wait,
            retry=retry_if_exception(self.is_retryable),
            sleep=token.sleep,
            before_sleep=log_retry,
            reraise=True,
        )
        return retrying(attempt)
