import logging
import time

from community_map.errors import MaxRetriesExceededError, RateLimitedError

MAX_RETRIES = 10
BASE_DELAY = 1.0

# Get logger
logger = logging.getLogger(__name__)


def with_retry(fn, max_retries=MAX_RETRIES, base_delay=BASE_DELAY, sleep=None):
    """
    Call ``fn`` and retry it while it reports a rate limit.

    Waits the service's ``retry_after`` hint when given, otherwise
    ``base_delay * 2 ** attempt``. Any other exception propagates immediately.

    Raises:
        MaxRetriesExceededError: if every attempt was rate limited.
    """
    sleep = sleep or time.sleep
    for attempt in range(max_retries):
        try:
            return fn()
        except RateLimitedError as e:
            wait_time = e.retry_after if e.retry_after is not None else base_delay * (2 ** attempt)
            logger.warning(f"Rate limited. Retrying after {wait_time}s (attempt {attempt + 1}/{max_retries})")
            sleep(wait_time)

    raise MaxRetriesExceededError(f"Max retries exceeded ({max_retries} attempts)")
