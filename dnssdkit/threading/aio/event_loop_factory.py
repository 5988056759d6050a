"""Provides EventLoopFactory, which runs an asyncio event loop on its own
thread so that synchronous callers still get a serialized observer context
for discovery notifications.
"""

import asyncio
import logging
import threading
from typing import Any, Optional

from dnssdkit.threading.thread_watcher import ThreadWatcher


# pylint: disable=too-few-public-methods
class EventLoopFactory:
    """
    Creates an asyncio event loop running forever on a `ThrowingThread`
    tracked by a `ThreadWatcher`.
    """

    def __init__(self, watcher: ThreadWatcher) -> None:
        """
        Args:
            watcher: Receives unhandled exceptions from the loop's thread.

        Raises:
            ValueError: If the watcher argument is None.
            TypeError: If watcher is not a `ThreadWatcher`.
        """
        if watcher is None:
            raise ValueError(
                "Watcher argument cannot be None for EventLoopFactory."
            )
        if not isinstance(watcher, ThreadWatcher):
            raise TypeError(
                f"Watcher must be a ThreadWatcher, got {type(watcher).__name__}."
            )
        self.__watcher = watcher
        self.__event_loop_thread: Optional[threading.Thread] = None
        self.__event_loop: Optional[asyncio.AbstractEventLoop] = None

    def start_asyncio_loop(self) -> asyncio.AbstractEventLoop:
        """
        Starts a new event loop on a dedicated thread and returns it once it
        is running.
        """
        barrier = threading.Event()

        def handle_exception(
            _loop: asyncio.AbstractEventLoop, context: dict[str, Any]
        ) -> None:
            exception = context.get("exception")
            message = context.get("message")
            if exception is None:
                logging.error(
                    "Event loop handler called without exception: %s", message
                )
                return

            if isinstance(exception, asyncio.CancelledError):
                return

            logging.error(
                "Unhandled exception in dnssdkit event loop: %s",
                message,
                exc_info=exception,
            )
            self.__watcher.on_exception_seen(exception)

        def run_event_loop() -> None:
            local_event_loop = asyncio.new_event_loop()
            try:
                local_event_loop.set_exception_handler(handle_exception)
                asyncio.set_event_loop(local_event_loop)
                self.__event_loop = local_event_loop
                local_event_loop.call_soon(barrier.set)
                local_event_loop.run_forever()
            finally:
                if not local_event_loop.is_closed():
                    local_event_loop.close()

        self.__event_loop_thread = self.__watcher.create_tracked_thread(
            target=run_event_loop, name="dnssdkit-event-loop"
        )
        self.__event_loop_thread.start()

        barrier.wait()

        assert (
            self.__event_loop is not None
        ), "Event loop was not initialized in the thread."
        return self.__event_loop
