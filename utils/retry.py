"""
Retry policies (tenacity) shared by services.

Every policy is bounded, logs each retry before sleeping, and re-raises
the last error once attempts are exhausted.
"""
import logging

from sqlalchemy.exc import OperationalError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type, before_sleep_log

from exceptions.product import ProductFetchException

logger = logging.getLogger(__name__)

# Product "load more": 3 attempts, 1s initial delay, factor 2, capped at 5s
LOAD_MORE_ATTEMPTS = 3
LOAD_MORE_INITIAL_DELAY = 1
LOAD_MORE_MAX_DELAY = 5


def load_more_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(LOAD_MORE_ATTEMPTS),
        wait=wait_exponential(multiplier=LOAD_MORE_INITIAL_DELAY, min=LOAD_MORE_INITIAL_DELAY,
                              max=LOAD_MORE_MAX_DELAY),
        retry=retry_if_exception_type(ProductFetchException),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def db_write_retry():
    """Transient database errors (locked SQLite file, dropped connection)."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
