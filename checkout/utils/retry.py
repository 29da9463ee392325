# checkout/utils/retry.py
import logging

import requests
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from checkout.utils.settings import CATALOG_RETRY_ATTEMPTS
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


def http_retry(attempts: int | None = None):
    """Retry catalog calls on transport errors and error statuses, the last error is re-raised."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts or CATALOG_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
