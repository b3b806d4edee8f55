"""
Dual completion delivery.

Every operation is one asynchronous unit of work. Callers either await it,
or pass a node-style callback `callback(error, result)` and let it run in
the background. Both routes observe the same execution and the same error.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Optional, Set, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")
Callback = Callable[[Optional[BaseException], Any], None]

# Strong references to callback-driven tasks until they finish
_background: Set[asyncio.Future] = set()


def deliver(
    work: Coroutine[Any, Any, T],
    callback: Optional[Callback] = None,
) -> Union[Awaitable[T], asyncio.Future]:
    """Hand back `work` for awaiting, or schedule it and report to `callback`.

    Args:
        work: The coroutine performing the operation
        callback: Optional `callback(error, result)`

    Returns:
        The coroutine itself when no callback is given, otherwise the
        scheduled task (which may also be awaited)

    Raises:
        RuntimeError: If a callback is given outside a running event loop
    """
    if callback is None:
        return work

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        work.close()
        raise RuntimeError(
            "Callback-style calls must be made from a running event loop; "
            "await the operation instead"
        ) from None

    task = loop.create_task(work)

    def _report(done: asyncio.Future) -> None:
        if done.cancelled():
            callback(asyncio.CancelledError(), None)
            return
        error = done.exception()
        if error is not None:
            callback(error, None)
        else:
            callback(None, done.result())

    task.add_done_callback(_report)
    _background.add(task)
    task.add_done_callback(_background.discard)
    return task
