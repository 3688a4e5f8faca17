"""Backoff for throttled AWS API calls.

Only throttling is retried here. Dependency violations are not a property of
a single call and are retried by the destroyer across passes instead.
"""
import time
import random
import logging
from botocore.exceptions import ClientError

THROTTLING_CODES = frozenset([
    'Throttling',
    'ThrottlingException',
    'ThrottledException',
    'RequestLimitExceeded',
    'TooManyRequestsException',
    'SlowDown',
])


class ThrottledError(Exception):
    """Still throttled after the last attempt."""

    def __init__(self, description, attempts, last_error):
        super().__init__(f"Max retries ({attempts}) exceeded for {description}")
        self.description = description
        self.attempts = attempts
        self.last_error = last_error


def error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', '')


def with_backoff(operation, description, max_attempts=8, base_delay=1.2, max_delay=60):
    """Call ``operation``, sleeping with jittered exponential backoff on throttling.

    Any other ClientError propagates untouched on the first occurrence.
    """
    last_error = None
    for attempt in range(max_attempts):
        try:
            return operation()
        except ClientError as e:
            code = error_code(e)
            if code not in THROTTLING_CODES:
                raise
            last_error = e
            if attempt == max_attempts - 1:
                break
            jitter = random.uniform(0.5, 1.5)
            delay = min(base_delay * (2 ** attempt) * jitter, max_delay)
            logging.warning(f'{description} throttled ({code}); retrying in {delay:.2f} seconds...')
            time.sleep(delay)
    raise ThrottledError(description, max_attempts, last_error)
