"""Exponential backoff for deployer calls that fail transiently."""

import time
import random
from typing import Callable, TypeVar

from strata_deploy.utils.errors import DeployError, NetworkError
from strata_deploy.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

# Failures of the transport rather than of the deployment itself
TRANSIENT_EXCEPTIONS = (ConnectionError, TimeoutError, NetworkError)


def is_transient(error: BaseException) -> bool:
    """Whether retrying the same deployment could plausibly succeed."""
    if isinstance(error, TRANSIENT_EXCEPTIONS):
        return True
    return isinstance(error, DeployError) and error.retryable


class RetryStrategy:
    """Retries transient failures with capped exponential backoff.

    A deploy that reverted or was rejected is never retried; only errors that
    ``is_transient`` accepts are.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        sleep: Callable[[float], None] = time.sleep
    ):
        """Initialize retry strategy.

        Args:
            max_retries: Retries after the first attempt
            base_delay: Seconds to wait before the first retry
            max_delay: Upper bound on any single wait
            exponential_base: Growth factor between consecutive waits
            jitter: Add up to 10% random extra wait
            sleep: Function used to wait between attempts
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """Decide whether to retry after ``attempt`` (0-indexed) failed with ``error``."""
        return attempt < self.max_retries and is_transient(error)

    def get_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt ``attempt`` (0-indexed)."""
        delay = min(self.base_delay * self.exponential_base ** attempt, self.max_delay)
        if self.jitter:
            delay += random.uniform(0, delay * 0.1)
        return delay

    def execute_with_retry(self, func: Callable[..., T], *args, **kwargs) -> T:
        """Call ``func`` until it succeeds or fails with a non-retryable error.

        Raises:
            The last exception raised by ``func``
        """
        for attempt in range(self.max_attempts):
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                if not self.should_retry(e, attempt):
                    if attempt > 0:
                        logger.error(f"Giving up after {attempt + 1} attempts: {e}")
                    raise

                delay = self.get_delay(attempt)
                logger.warning(
                    f"Attempt {attempt + 1}/{self.max_attempts} failed "
                    f"({type(e).__name__}: {e}); retrying in {delay:.2f}s"
                )
                self.sleep(delay)
                continue

            if attempt > 0:
                logger.info(f"Succeeded on attempt {attempt + 1}")
            return result

        # should_retry refuses the final attempt, so the loop always returns or raises
        raise AssertionError("unreachable")
