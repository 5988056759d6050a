"""
Provides generic `Atomic[AtomicTypeT]` for thread-safe value access.

`EventSink` reads its current delivery generation on the observer event loop
while `DiscoverySession` opens and seals it from other threads. `Atomic`
wraps such a value so that reads and writes happen under one
`threading.Lock`.
"""

import threading
from typing import Generic, TypeVar

# Type variable for the generic type stored in Atomic.
AtomicTypeT = TypeVar("AtomicTypeT")


class Atomic(Generic[AtomicTypeT]):
    """
    This class provides atomic access (via locks) to an underlying value.
    """

    def __init__(self, value: AtomicTypeT) -> None:
        """
        Initializes the Atomic wrapper with an initial value.

        Args:
            value (AtomicTypeT): The initial value to be stored atomically.
        """
        self.__value: AtomicTypeT = value
        self.__lock = threading.Lock()

    def set(self, value: AtomicTypeT) -> None:
        """
        Atomically replaces the stored value.

        Args:
            value (AtomicTypeT): The new value to store.
        """
        with self.__lock:
            self.__value = value

    def get(self) -> AtomicTypeT:
        """
        Atomically retrieves the stored value.

        Returns:
            AtomicTypeT: The current value.
        """
        with self.__lock:
            return self.__value
