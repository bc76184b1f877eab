"""Backoff for opening device transports.

Only session setup goes through here. A load or commit that fails is
reported to the caller as is; replaying configuration changes is never
done automatically.
"""
import logging
from typing import Callable

import paramiko
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    retry_if_not_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)

# Socket and SSH setup failures that can clear up on their own
RETRYABLE_EXCEPTIONS = (
    ConnectionRefusedError,
    ConnectionResetError,
    TimeoutError,
    EOFError,
    paramiko.SSHException,
    OSError,
)

# Subclasses of retryable types that will fail the same way every time
FATAL_EXCEPTIONS = (
    paramiko.AuthenticationException,
    paramiko.BadHostKeyException,
)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable:
    """Retry a sync or async callable with exponential backoff.

    Rejected credentials and host keys are raised on the first attempt
    even though they derive from ``paramiko.SSHException``.

    Args:
        max_attempts: Attempts before the last error is re-raised
        min_wait: Lower bound of the wait between attempts (seconds)
        max_wait: Upper bound of the wait between attempts (seconds)
        exceptions: Exception types that trigger another attempt
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions) & retry_if_not_exception_type(FATAL_EXCEPTIONS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
