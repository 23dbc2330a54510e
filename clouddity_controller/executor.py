"""
Sequential fail-fast execution of per-record operations.

Records are processed strictly one at a time, in order. The first failure
stops the run; records already processed are not rolled back.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")
Operation = Callable[[R], Awaitable[object]]
CompletionCallback = Callable[[Exception | None], object]


async def run_sequential(
    records: Iterable[R],
    operation: Operation,
    on_complete: CompletionCallback | None = None,
) -> Exception | None:
    """
    Await ``operation`` on each record in order, stopping at the first error.

    The operation for a record is not started until the previous one has
    finished, so at most one operation is ever in flight.

    Args:
        records: Records to process, in processing order
        operation: Async callable; raising signals failure for that record
        on_complete: Optional callback receiving the error, or None on success

    Returns:
        The exception raised by the failing operation (unchanged), or None
    """
    error: Exception | None = None
    processed = 0
    for record in records:
        try:
            await operation(record)
        except Exception as e:
            logger.debug(f"Operation failed after {processed} records: {e}")
            error = e
            break
        processed += 1

    if error is None:
        logger.debug(f"Sequential run completed: {processed} records")
    if on_complete is not None:
        on_complete(error)
    return error
