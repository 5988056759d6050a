"""
Manages the global asyncio event loop used by `dnssdkit`.

Discovery notifications are delivered on a single observer-facing event
loop. Unless a `DiscoverySession` is given an explicit loop, it uses the
global loop managed here. The loop can be an existing one (for example the
loop of an asyncio application) or one created on a dedicated thread.

Access to the module state is guarded by a `threading.Lock`.
"""

import asyncio
import logging
import threading
from asyncio import AbstractEventLoop

from dnssdkit.threading.aio.event_loop_factory import EventLoopFactory
from dnssdkit.threading.thread_watcher import ThreadWatcher

__g_global_event_loop: AbstractEventLoop | None = None
__g_event_loop_factory: EventLoopFactory | None = None

__g_global_event_loop_lock = threading.Lock()


def is_global_event_loop_set() -> bool:
    """Returns True if the dnssdkit global event loop has been set."""
    return __g_global_event_loop is not None


def get_global_event_loop() -> AbstractEventLoop:
    """Retrieves the global event loop.

    Raises:
        AssertionError: If the global event loop has not been set.
    """
    assert (
        __g_global_event_loop is not None
    ), "Global event loop accessed before being set."
    return __g_global_event_loop


def clear_dnssdkit_event_loop(try_stop_loop: bool = True) -> None:
    """Clears the global event loop reference.

    Args:
        try_stop_loop: If True and the loop was created by
            `create_dnssdkit_event_loop_from_watcher`, stop it. Loops set from
            outside are never stopped.
    """
    global __g_global_event_loop  # pylint: disable=global-statement
    global __g_event_loop_factory  # pylint: disable=global-statement

    with __g_global_event_loop_lock:
        if __g_global_event_loop is None:
            return

        if (
            try_stop_loop
            and __g_event_loop_factory is not None
            and __g_global_event_loop.is_running()
        ):
            logging.debug("Stopping dnssdkit-owned global event loop.")
            __g_global_event_loop.call_soon_threadsafe(
                __g_global_event_loop.stop
            )

        __g_global_event_loop = None
        __g_event_loop_factory = None


def create_dnssdkit_event_loop_from_watcher(watcher: ThreadWatcher) -> None:
    """Creates a new event loop on a new thread and makes it the global loop.

    Errors raised on that thread are reported to `watcher`.

    Raises:
        RuntimeError: If the global event loop has already been set.
    """
    global __g_global_event_loop  # pylint: disable=global-statement
    global __g_event_loop_factory  # pylint: disable=global-statement

    with __g_global_event_loop_lock:
        if __g_global_event_loop is not None:
            raise RuntimeError("Only one Global Event Loop may be set")

        factory = EventLoopFactory(watcher)
        __g_global_event_loop = factory.start_asyncio_loop()
        __g_event_loop_factory = factory


def set_dnssdkit_event_loop(event_loop: AbstractEventLoop) -> None:
    """Sets an existing event loop as the global loop.

    Raises:
        AssertionError: If `event_loop` is None.
        RuntimeError: If the global event loop has already been set.
    """
    assert event_loop is not None, "Cannot set global event loop to None."

    global __g_global_event_loop  # pylint: disable=global-statement

    with __g_global_event_loop_lock:
        if __g_global_event_loop is not None:
            raise RuntimeError("Only one Global Event Loop may be set")

        __g_global_event_loop = event_loop


def set_dnssdkit_event_loop_to_current_thread() -> None:
    """Sets the global loop to this thread's loop, creating one if needed.

    Raises:
        RuntimeError: If the global event loop has already been set.
    """
    global __g_global_event_loop  # pylint: disable=global-statement

    with __g_global_event_loop_lock:
        if __g_global_event_loop is not None:
            raise RuntimeError("Only one Global Event Loop may be set")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)

        __g_global_event_loop = loop
