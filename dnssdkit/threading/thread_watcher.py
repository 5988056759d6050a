"""
Defines the `ThreadWatcher` class.

`ThreadWatcher` is the `ErrorWatcher` used throughout dnssdkit. It creates
`ThrowingThread`s that report into it, and it is the sink for exceptions
raised by discovery client callbacks on the observer event loop.
"""

import threading
from collections.abc import Callable
from typing import List

from dnssdkit.threading.error_watcher import ErrorWatcher
from dnssdkit.threading.throwing_thread import ThrowingThread


class ThreadWatcher(ErrorWatcher):
    """
    Collects exceptions from background threads and callbacks, and surfaces
    them to whichever thread calls `run_until_exception()` or
    `check_for_exception()`.
    """

    def __init__(self) -> None:
        self.__barrier = threading.Event()
        self.__exceptions_lock = threading.Lock()
        self.__exceptions: List[Exception] = []

    def create_tracked_thread(
        self,
        target: Callable[[], None],
        is_daemon: bool = True,
        name: str | None = None,
    ) -> threading.Thread:
        """
        Creates a `ThrowingThread` whose exceptions are reported here.

        Args:
            target: Callable invoked when the thread starts.
            is_daemon: Whether the thread is a daemon thread.
            name: Optional thread name.

        Returns:
            The created, not yet started, thread.
        """
        return ThrowingThread(
            target=target,
            on_error_cb=self.on_exception_seen,
            name=name,
            daemon=is_daemon,
        )

    def run_until_exception(self) -> None:
        """
        Blocks until an exception is recorded, then raises the first one.

        Raises:
            Exception: First exception recorded by the watcher.
        """
        while True:
            self.__barrier.wait()
            with self.__exceptions_lock:
                if not self.__exceptions:
                    self.__barrier.clear()
                    continue

                raise self.__exceptions[0]

    def check_for_exception(self) -> None:
        """
        Raises the first recorded exception, if any. Never blocks.

        Raises:
            Exception: First recorded exception if any exist.
        """
        if not self.__barrier.is_set():
            return

        with self.__exceptions_lock:
            if not self.__exceptions:
                return

            raise self.__exceptions[0]

    def on_exception_seen(self, e: Exception) -> None:
        """
        Records `e` and wakes any thread blocked in `run_until_exception()`.

        Args:
            e: The exception that was caught.
        """
        with self.__exceptions_lock:
            self.__exceptions.append(e)
            self.__barrier.set()
