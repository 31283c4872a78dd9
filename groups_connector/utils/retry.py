"""Backoff for transient Microsoft Graph failures.

Graph throttles with 429 (and sometimes 503/504) and usually says how long to
wait in ``Retry-After``. When the failing call carries such a hint the wait
follows it; otherwise the wait doubles per attempt.
"""

import time
from functools import wraps
from typing import Callable, Tuple, Type

import structlog

log = structlog.stdlib.get_logger()


def exponential_backoff_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    delay_hint: Callable[[Exception], float | None] | None = None,
) -> Callable:
    """
    Retry a Graph call on transient errors.

    Args:
        max_retries: Retries after the first attempt
        base_delay: First wait in seconds when no hint is given
        max_delay: Upper bound for any single wait, hinted or not
        exceptions: Exception types treated as transient
        sleep: Function used to wait between attempts
        delay_hint: Returns the server-requested wait for an error, or None

    Returns:
        Decorator applying the retry policy
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        log.error(
                            "graph_retries_exhausted",
                            function=func.__name__,
                            max_retries=max_retries,
                            error=str(e),
                        )
                        raise

                    hinted = delay_hint(e) if delay_hint else None
                    if hinted is None:
                        delay = min(base_delay * (2**attempt), max_delay)
                    else:
                        delay = min(hinted, max_delay)

                    log.warning(
                        "graph_call_backing_off",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay_seconds=delay,
                        server_requested=hinted is not None,
                        error=str(e),
                    )

                    sleep(delay)

        return wrapper

    return decorator
