"""EventSink: delivers discovery notifications on one observer event loop."""

import asyncio
import collections
import dataclasses
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Deque, List, Optional

from dnssdkit.discovery.discovered_service import DiscoveredService
from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.discovery_error import DiscoveryError
from dnssdkit.threading.aio.aio_utils import call_on_event_loop
from dnssdkit.threading.aio.global_event_loop import (
    create_dnssdkit_event_loop_from_watcher,
    get_global_event_loop,
    is_global_event_loop_set,
)
from dnssdkit.threading.atomic import Atomic
from dnssdkit.threading.thread_watcher import ThreadWatcher

_logger = logging.getLogger(__name__)

DiscoverHandler = Callable[[DiscoveredService], Any]
FailHandler = Callable[[DiscoveryConfiguration, DiscoveryError], Any]
DisappearHandler = Callable[[DiscoveredService], Any]

# Generation value meaning "no run is accepting notifications".
_SEALED = -1


@dataclasses.dataclass(frozen=True)
class _Notification:
    generation: int
    targets: List[Callable[..., Any]]
    args: tuple[Any, ...]


class EventSink:
    """Serializes discovery notifications onto a single event loop.

    Notifications may be emitted from any thread. They are handed to the
    observer loop in emission order and delivered one at a time: a client
    callback that is a coroutine is awaited before the next notification is
    delivered. Each notification carries the generation of the discovery run
    that produced it, and is dropped if that run is no longer the open one
    when its turn comes.

    Notifications go to a `Client` object or to individual handler
    callables, never both.
    """

    class Client(ABC):
        """Interface for objects receiving discovery notifications."""

        @abstractmethod
        async def _on_service_discovered(
            self, service: DiscoveredService
        ) -> None:
            """A matching advertisement was resolved.

            Args:
                service: The configuration and the resolved advertisement.
            """
            raise NotImplementedError(
                "EventSink.Client._on_service_discovered must be implemented by subclasses."
            )

        @abstractmethod
        async def _on_discovery_failed(
            self,
            configuration: DiscoveryConfiguration,
            error: DiscoveryError,
        ) -> None:
            """Browsing or resolving failed for `configuration`."""
            raise NotImplementedError(
                "EventSink.Client._on_discovery_failed must be implemented by subclasses."
            )

        @abstractmethod
        async def _on_service_disappeared(
            self, service: DiscoveredService
        ) -> None:
            """A tracked advertisement left the network."""
            raise NotImplementedError(
                "EventSink.Client._on_service_disappeared must be implemented by subclasses."
            )

    def __init__(
        self,
        client: Optional["EventSink.Client"] = None,
        *,
        on_discover: Optional[DiscoverHandler] = None,
        on_fail: Optional[FailHandler] = None,
        on_disappear: Optional[DisappearHandler] = None,
        event_loop: Optional[asyncio.AbstractEventLoop] = None,
        error_watcher: Optional[ThreadWatcher] = None,
    ) -> None:
        """
        Args:
            client: Receives all three kinds of notification.
            on_discover: Handler for discoveries, if no client is given.
            on_fail: Handler for failures, if no client is given.
            on_disappear: Handler for disappearances, if no client is given.
            event_loop: Observer loop. Defaults to the dnssdkit global loop,
                which is created on a background thread if it is not set.
            error_watcher: Receives exceptions raised by client callbacks.

        Raises:
            ValueError: If both a client and handlers are given.
            TypeError: If client is not an `EventSink.Client`.
        """
        has_handlers = any(
            h is not None for h in (on_discover, on_fail, on_disappear)
        )
        if client is not None and has_handlers:
            raise ValueError(
                "Provide either a client or handler callables, not both."
            )
        if client is not None and not isinstance(client, EventSink.Client):
            raise TypeError(
                f"client must be EventSink.Client, got {type(client).__name__}."
            )

        self.__discover_targets: List[Callable[..., Any]] = []
        self.__fail_targets: List[Callable[..., Any]] = []
        self.__disappear_targets: List[Callable[..., Any]] = []
        if client is not None:
            # pylint: disable=W0212 # Calling client's notification methods.
            self.__discover_targets.append(client._on_service_discovered)
            self.__fail_targets.append(client._on_discovery_failed)
            self.__disappear_targets.append(client._on_service_disappeared)
        else:
            if on_discover is not None:
                self.__discover_targets.append(on_discover)
            if on_fail is not None:
                self.__fail_targets.append(on_fail)
            if on_disappear is not None:
                self.__disappear_targets.append(on_disappear)

        self.__event_loop = event_loop
        self.__error_watcher = error_watcher
        self.__generation = Atomic[int](_SEALED)

        # Only touched on the observer loop.
        self.__pending: Deque[_Notification] = collections.deque()
        self.__drain_task: Optional[asyncio.Task[None]] = None

    @property
    def error_watcher(self) -> Optional[ThreadWatcher]:
        """Watcher for callback errors.

        When none was given and this sink created the global event loop, this
        is the watcher that loop reports to.
        """
        return self.__error_watcher

    def open(self, generation: int) -> None:
        """Accepts notifications from run `generation` from now on."""
        self.__ensure_event_loop()
        self.__generation.set(generation)

    def seal(self) -> None:
        """Drops every notification not delivered yet, and all later ones."""
        self.__generation.set(_SEALED)

    def emit_discovered(
        self, generation: int, service: DiscoveredService
    ) -> None:
        self.__emit(generation, self.__discover_targets, (service,))

    def emit_failed(
        self,
        generation: int,
        configuration: DiscoveryConfiguration,
        error: DiscoveryError,
    ) -> None:
        self.__emit(generation, self.__fail_targets, (configuration, error))

    def emit_disappeared(
        self, generation: int, service: DiscoveredService
    ) -> None:
        self.__emit(generation, self.__disappear_targets, (service,))

    def __ensure_event_loop(self) -> None:
        if self.__event_loop is not None:
            return

        if not is_global_event_loop_set():
            watcher = self.__error_watcher or ThreadWatcher()
            try:
                create_dnssdkit_event_loop_from_watcher(watcher)
                _logger.info("Created dnssdkit global event loop for delivery.")
                # Callback errors go to the same watcher as loop errors.
                self.__error_watcher = watcher
            except RuntimeError:
                if not is_global_event_loop_set():
                    raise
                _logger.debug("Global event loop was set concurrently.")
        self.__event_loop = get_global_event_loop()

    def __emit(
        self,
        generation: int,
        targets: List[Callable[..., Any]],
        args: tuple[Any, ...],
    ) -> None:
        if not targets:
            return
        if generation != self.__generation.get():
            _logger.debug("Dropping notification from stale run %d.", generation)
            return

        notification = _Notification(generation, targets, args)
        call_on_event_loop(self.__enqueue, self.__event_loop, notification)

    def __enqueue(self, notification: _Notification) -> None:
        self.__pending.append(notification)
        if self.__drain_task is None or self.__drain_task.done():
            self.__drain_task = asyncio.get_running_loop().create_task(
                self.__drain()
            )

    async def __drain(self) -> None:
        while self.__pending:
            notification = self.__pending.popleft()
            for target in notification.targets:
                if notification.generation != self.__generation.get():
                    break
                await self.__deliver(target, notification.args)

    async def __deliver(
        self, target: Callable[..., Any], args: tuple[Any, ...]
    ) -> None:
        try:
            result = target(*args)
            if inspect.isawaitable(result):
                await result
        # pylint: disable=broad-exception-caught # Reported to the watcher.
        except Exception as e:
            _logger.error(
                "Discovery callback %r raised: %s", target, e, exc_info=True
            )
            if self.__error_watcher is not None:
                self.__error_watcher.on_exception_seen(e)
