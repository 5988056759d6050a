"""Defines ThrowingThread, a thread that reports exceptions from its target."""

import logging
import threading
from collections.abc import Callable
from typing import Any, Optional


class ThrowingThread(threading.Thread):
    """
    `threading.Thread` whose target's exceptions are logged and handed to a
    callback instead of being printed and lost.

    Used to host the observer event loop created by `EventLoopFactory`.
    """

    def __init__(
        self,
        target: Callable[..., Any],
        on_error_cb: Callable[[Exception], None],
        args: tuple[Any, ...] = (),
        kwargs: Optional[dict[str, Any]] = None,
        name: Optional[str] = None,
        daemon: bool = True,
    ) -> None:
        """
        Initializes a ThrowingThread.

        Args:
            target: Callable invoked by `run()`.
            on_error_cb: Receives any exception raised by `target`.
            args: Positional arguments for `target`.
            kwargs: Keyword arguments for `target`.
            name: Thread name.
            daemon: Whether the thread is a daemon thread.
        """
        assert on_error_cb is not None, "on_error_cb cannot be None"
        self.__on_error_cb = on_error_cb
        self.__target = target
        self.__args = args
        self.__kwargs = kwargs if kwargs is not None else {}

        super().__init__(name=name, daemon=daemon)

    def run(self) -> None:
        try:
            self.__target(*self.__args, **self.__kwargs)
        # pylint: disable=broad-exception-caught # Reported, not swallowed.
        except Exception as e:
            logging.error(
                "Exception caught in thread %s: %r",
                self.name,
                e,
                exc_info=True,
            )
            self.__on_error_cb(e)
