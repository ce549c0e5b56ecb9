"""
Deadline helper for advisory reads.

Status and log endpoints must answer quickly even when Redis is slow;
their data is informational, so a late answer is replaced by a fallback.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='bridge-status')


def run_with_timeout(func: Callable[[], Any], timeout: float, fallback: Any) -> Any:
    """
    Run func with a deadline.

    Returns func's result, or fallback if it takes longer than timeout
    seconds or raises. A timed-out call keeps running in the background.
    """
    future = _executor.submit(func)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        logger.warning('%s timed out after %ss, using fallback',
                       getattr(func, '__qualname__', repr(func)), timeout)
    except Exception as e:
        logger.warning('%s failed (%s), using fallback',
                       getattr(func, '__qualname__', repr(func)), e)
    return fallback
