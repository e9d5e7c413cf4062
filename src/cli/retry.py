"""Retry utilities with exponential backoff."""

import logging

import structlog
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.stdlib.get_logger(__name__)


def _backoff(max_attempts: int, min_wait: float, max_wait: float, exceptions: tuple):
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def http_retry(
    max_attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 4.0,
    exceptions: tuple = (Exception,),
):
    """Retry decorator for remote store reads.

    Waits are short: the merge read path must not hold local-only results
    hostage to a flaky remote.

    Args:
        max_attempts: Max retry attempts
        min_wait: Min wait between retries (seconds)
        max_wait: Max wait between retries (seconds)
        exceptions: Exception types to retry on
    """
    return _backoff(max_attempts, min_wait, max_wait, exceptions)


def llm_retry(
    max_attempts: int = 3,
    min_wait: float = 2.0,
    max_wait: float = 30.0,
    exceptions: tuple = (Exception,),
):
    """Retry decorator for LLM API calls.

    Uses longer max_wait for rate limiting scenarios. Works on both plain and
    async callables (tenacity detects coroutines).
    """
    return _backoff(max_attempts, min_wait, max_wait, exceptions)

