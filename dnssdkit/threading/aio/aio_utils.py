"""
Utilities for working with asyncio event loops.

The zeroconf provider schedules its browse and resolve work onto the
zeroconf event loop, and the event sink hands notifications to the observer
loop. Both go through the helpers here so that callers on any thread can
use them.
"""

import asyncio
import concurrent.futures
from asyncio import AbstractEventLoop
from collections.abc import Callable
from typing import Any, Coroutine, Optional, ParamSpec, TypeVar

from dnssdkit.threading.aio.global_event_loop import (
    get_global_event_loop,
    is_global_event_loop_set,
)


def get_running_loop_or_none() -> AbstractEventLoop | None:
    """
    Returns the event loop this function was called from, or None if it was
    not called from a running event loop.
    """
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def is_running_on_event_loop(
    event_loop: Optional[AbstractEventLoop] = None,
) -> bool:
    """
    Returns True if called from `event_loop`, or from any running event loop
    if `event_loop` is None.
    """
    current_loop = get_running_loop_or_none()
    if current_loop is None:
        return False
    return event_loop is None or current_loop is event_loop


def resolve_event_loop(
    event_loop: Optional[AbstractEventLoop] = None,
) -> AbstractEventLoop:
    """
    Returns `event_loop`, falling back to the dnssdkit global event loop.

    Raises:
        RuntimeError: If `event_loop` is None and the global loop is not set.
    """
    if event_loop is not None:
        return event_loop
    if not is_global_event_loop_set():
        raise RuntimeError("ERROR: dnssdkit global event loop not set!")
    return get_global_event_loop()


P = ParamSpec("P")
T = TypeVar("T")


# pylint: disable=keyword-arg-before-vararg
def run_on_event_loop(
    call: Callable[P, Coroutine[Any, Any, T]],
    event_loop: Optional[AbstractEventLoop] = None,
    *args: P.args,
    **kwargs: P.kwargs,
) -> concurrent.futures.Future[T]:
    """
    Schedules the coroutine `call(*args, **kwargs)` on `event_loop` (or the
    global loop) from any thread.

    Returns:
        A future for the coroutine's result.

    Raises:
        RuntimeError: If no event_loop was given and the global loop is unset.
    """
    loop = resolve_event_loop(event_loop)
    return asyncio.run_coroutine_threadsafe(call(*args, **kwargs), loop)


# pylint: disable=keyword-arg-before-vararg
def call_on_event_loop(
    call: Callable[..., Any],
    event_loop: Optional[AbstractEventLoop] = None,
    *args: Any,
) -> None:
    """
    Schedules the plain callable `call(*args)` on `event_loop` (or the global
    loop) from any thread. Calls scheduled on the same loop run in the order
    they were scheduled.

    Raises:
        RuntimeError: If no event_loop was given and the global loop is unset.
    """
    loop = resolve_event_loop(event_loop)
    loop.call_soon_threadsafe(call, *args)
