"""
Defines the `ErrorWatcher` abstract base class.

Discovery notifications are delivered on a background event loop, so an
exception raised by a client callback cannot propagate to the code that
called `DiscoverySession.start()`. An `ErrorWatcher` is the place such
exceptions are collected and surfaced from, either by blocking in
`run_until_exception()` or by polling `check_for_exception()`.
"""

from abc import ABC, abstractmethod


class ErrorWatcher(ABC):
    """
    Abstract base class for objects that collect background exceptions.
    """

    @abstractmethod
    def on_exception_seen(self, e: Exception) -> None:
        """
        Records an exception raised on a background thread or loop.

        Args:
            e: The exception that was caught.
        """

    @abstractmethod
    def run_until_exception(self) -> None:
        """
        Blocks until an exception has been recorded, then raises it.

        Raises:
            Exception: The first exception recorded by this watcher.
        """

    @abstractmethod
    def check_for_exception(self) -> None:
        """
        Raises the first recorded exception, if any. Must not block.

        Raises:
            Exception: The first exception recorded by this watcher.
        """
