# src/xml_transform/retrying.py

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from xml_transform.pipeline.sequencer import Transform

logger = logging.getLogger(__name__)


def with_retries(
    transform: Transform,
    *,
    max_attempts: int = 3,
    wait_min: float = 0.5,
    wait_max: float = 10.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[Any], Awaitable[Any]]:
    """Wrap a transform so it retries on failure.

    The pipeline itself never retries; a transform that talks to a flaky
    service can be wrapped with this before it is handed to transform_xml.

    Args:
        transform: Sync or async transform.
        max_attempts: Total attempts, including the first.
        wait_min: Lower bound of the exponential backoff, in seconds.
        wait_max: Upper bound of the exponential backoff, in seconds.
        retry_on: Exception types worth another attempt. Anything else is
            raised immediately.

    Returns:
        An async transform. The last failure is re-raised unchanged once
        attempts are exhausted.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    async def retrying_transform(record: Any) -> Any:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=wait_min, min=wait_min, max=wait_max),
            retry=retry_if_exception_type(retry_on),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                result = transform(record)
                if inspect.isawaitable(result):
                    result = await result
                return result

    return retrying_transform
