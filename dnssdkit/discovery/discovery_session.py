"""DiscoverySession: browses, resolves and reports services for a set of
DiscoveryConfigurations."""

import asyncio
import collections
import logging
import threading
from typing import (
    Callable,
    Deque,
    Iterable,
    List,
    Optional,
    Tuple,
    overload,
)

from dnssdkit.discovery.advertisement_arena import (
    AdvertisementArena,
    AdvertisementId,
)
from dnssdkit.discovery.discovered_service import DiscoveredService
from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.discovery_error import DiscoveryError
from dnssdkit.discovery.dnssd.dnssd_provider import (
    BrowseHandle,
    DnssdProvider,
    ErrorInfo,
)
from dnssdkit.discovery.event_sink import (
    DisappearHandler,
    DiscoverHandler,
    EventSink,
    FailHandler,
)
from dnssdkit.discovery.match_policy import matches
from dnssdkit.discovery.provider_events import (
    BrowseFailed,
    ProviderEvent,
    ResolveFailed,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
)
from dnssdkit.discovery.service_advertisement import ServiceAdvertisement
from dnssdkit.discovery.session_item import SessionItem
from dnssdkit.threading.thread_watcher import ThreadWatcher

_logger = logging.getLogger(__name__)


class _SessionProviderClient(DnssdProvider.Client):
    """Turns provider callbacks for one discovery run into session events.

    Detached when the run is stopped, after which callbacks are dropped here
    without reaching the session.
    """

    def __init__(
        self, generation: int, post: Callable[[ProviderEvent], None]
    ) -> None:
        self.__generation = generation
        self.__post = post
        self.__attached = True

    def detach(self) -> None:
        self.__attached = False

    def __forward(self, event: ProviderEvent) -> None:
        if not self.__attached:
            _logger.debug("Dropping provider callback after stop: %s", event)
            return
        self.__post(event)

    def _on_found(
        self,
        browse_handle: BrowseHandle,
        advertisement: ServiceAdvertisement,
        more_coming: bool,
    ) -> None:
        self.__forward(
            ServiceFound(
                self.__generation, browse_handle, advertisement, more_coming
            )
        )

    def _on_browse_failed(
        self, browse_handle: BrowseHandle, error_info: ErrorInfo
    ) -> None:
        self.__forward(
            BrowseFailed(self.__generation, browse_handle, error_info)
        )

    def _on_removed(
        self,
        browse_handle: BrowseHandle,
        advertisement: ServiceAdvertisement,
        more_coming: bool,
    ) -> None:
        self.__forward(
            ServiceRemoved(
                self.__generation, browse_handle, advertisement, more_coming
            )
        )

    def _on_resolved(self, advertisement: ServiceAdvertisement) -> None:
        self.__forward(ServiceResolved(self.__generation, advertisement))

    def _on_resolve_failed(
        self, advertisement: ServiceAdvertisement, error_info: ErrorInfo
    ) -> None:
        self.__forward(
            ResolveFailed(self.__generation, advertisement, error_info)
        )


class DiscoverySession:
    """Discovers DNS-SD services matching one or more configurations.

    `start()` begins one browse per configuration. Every advertisement whose
    name matches its configuration is resolved, and the session reports:

    - a discovery when the advertisement resolves,
    - a failure when a browse or a resolve fails,
    - a disappearance when a tracked advertisement is removed.

    Notifications are delivered on a single observer event loop (see
    `EventSink`). Failures are reported, never raised, and affect only the
    configuration or advertisement concerned.

    `stop()` cancels every browse and resolve of the current run; nothing
    from that run is delivered once it returns. `start()` on a running
    session stops it first. Callers must call `stop()` or `close()`, or use
    the session as a context manager: a session that is dropped while
    running keeps its multicast browses alive.

    All methods may be called from any thread. Provider callbacks are
    converted to events and handled one at a time, in arrival order, under
    the session's lock.
    """

    Client = EventSink.Client

    DEFAULT_RESOLVE_TIMEOUT = 10.0

    @overload
    def __init__(
        self,
        configurations: Iterable[DiscoveryConfiguration],
        client: EventSink.Client,
        *,
        resolve_timeout: float = DEFAULT_RESOLVE_TIMEOUT,
        provider: Optional[DnssdProvider] = None,
        event_loop: Optional[asyncio.AbstractEventLoop] = None,
        error_watcher: Optional[ThreadWatcher] = None,
    ):
        """Creates a session that notifies a `DiscoverySession.Client`."""
        ...

    @overload
    def __init__(
        self,
        configurations: Iterable[DiscoveryConfiguration],
        *,
        on_discover: Optional[DiscoverHandler] = None,
        on_fail: Optional[FailHandler] = None,
        on_disappear: Optional[DisappearHandler] = None,
        resolve_timeout: float = DEFAULT_RESOLVE_TIMEOUT,
        provider: Optional[DnssdProvider] = None,
        event_loop: Optional[asyncio.AbstractEventLoop] = None,
        error_watcher: Optional[ThreadWatcher] = None,
    ):
        """Creates a session that calls individual handler callables.

        Handlers may be plain functions or coroutine functions.
        """
        ...

    def __init__(
        self,
        configurations: Iterable[DiscoveryConfiguration],
        client: Optional[EventSink.Client] = None,
        *,
        on_discover: Optional[DiscoverHandler] = None,
        on_fail: Optional[FailHandler] = None,
        on_disappear: Optional[DisappearHandler] = None,
        resolve_timeout: float = DEFAULT_RESOLVE_TIMEOUT,
        provider: Optional[DnssdProvider] = None,
        event_loop: Optional[asyncio.AbstractEventLoop] = None,
        error_watcher: Optional[ThreadWatcher] = None,
    ) -> None:
        """Initializes the session in the stopped state.

        Args:
            configurations: Search criteria. Must not be empty.
            client: Receives notifications. Mutually exclusive with handlers.
            on_discover: Called with a `DiscoveredService` per resolution.
            on_fail: Called with the configuration and a `DiscoveryError`.
            on_disappear: Called with a `DiscoveredService` per removal.
            resolve_timeout: Seconds a provider may take to resolve.
            provider: DNS-SD provider. Defaults to a `ZeroconfProvider`
                created on first `start()` and owned by this session.
            event_loop: Loop notifications are delivered on. Defaults to the
                dnssdkit global event loop.
            error_watcher: Receives exceptions raised by notification
                callbacks.

        Raises:
            ValueError: If `configurations` is empty, `resolve_timeout` is
                not positive, or both a client and handlers are given.
            TypeError: If a configuration is not a `DiscoveryConfiguration`.
        """
        configurations_tuple: Tuple[DiscoveryConfiguration, ...] = tuple(
            configurations
        )
        if not configurations_tuple:
            raise ValueError(
                "DiscoverySession requires at least one DiscoveryConfiguration."
            )
        for configuration in configurations_tuple:
            if not isinstance(configuration, DiscoveryConfiguration):
                raise TypeError(
                    "configurations must contain DiscoveryConfiguration, got "
                    f"{type(configuration).__name__}."
                )
        if resolve_timeout <= 0:
            raise ValueError(
                f"resolve_timeout must be positive, got {resolve_timeout}."
            )

        self.__configurations = configurations_tuple
        self.__resolve_timeout = float(resolve_timeout)
        self.__sink = EventSink(
            client,
            on_discover=on_discover,
            on_fail=on_fail,
            on_disappear=on_disappear,
            event_loop=event_loop,
            error_watcher=error_watcher,
        )

        self.__provider: Optional[DnssdProvider] = provider
        self.__owns_provider = provider is None

        self.__lock = threading.RLock()
        self.__items: Optional[List[SessionItem]] = None
        self.__arena = AdvertisementArena()
        self.__generation = 0
        self.__provider_client: Optional[_SessionProviderClient] = None
        self.__events: Deque[ProviderEvent] = collections.deque()
        self.__dispatching = False

    @property
    def configurations(self) -> Tuple[DiscoveryConfiguration, ...]:
        return self.__configurations

    @property
    def resolve_timeout(self) -> float:
        return self.__resolve_timeout

    @property
    def error_watcher(self) -> Optional[ThreadWatcher]:
        """Watcher for notification callback errors, if any.

        Set after the first `start()` even when none was given, if that start
        created the dnssdkit global event loop.
        """
        return self.__sink.error_watcher

    @property
    def is_running(self) -> bool:
        with self.__lock:
            return self.__items is not None

    def start(self) -> None:
        """Starts discovery, stopping the current run first if there is one.

        Failing to start a browse is reported as a `BROWSING_FAILURE` for
        that configuration; the other configurations still start.
        """
        with self.__lock:
            self.__dispatching = True
            try:
                self.stop()
                self.__start_items()
            finally:
                self.__dispatching = False
            self.__dispatch_pending()

    def stop(self) -> None:
        """Stops every browse and resolve of the current run. Idempotent."""
        with self.__lock:
            self.__sink.seal()
            items = self.__items
            if items is None:
                return

            self.__items = None
            self.__generation += 1
            if self.__provider_client is not None:
                self.__provider_client.detach()
                self.__provider_client = None
            self.__events.clear()

            assert self.__provider is not None
            for item in items:
                self.__stop_item(self.__provider, item)
            self.__arena.clear()

        _logger.info(
            "Stopped discovery for %d configuration(s).", len(items)
        )

    def close(self) -> None:
        """Stops discovery and releases a provider owned by this session."""
        with self.__lock:
            self.stop()
            if self.__owns_provider and self.__provider is not None:
                self.__provider.close()
                self.__provider = None

    def __enter__(self) -> "DiscoverySession":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __get_provider(self) -> DnssdProvider:
        if self.__provider is None:
            # pylint: disable=import-outside-toplevel # zeroconf is only needed by default.
            from dnssdkit.discovery.dnssd.zeroconf_provider import (
                ZeroconfProvider,
            )

            self.__provider = ZeroconfProvider()
        return self.__provider

    def __start_items(self) -> None:
        provider = self.__get_provider()

        self.__generation += 1
        generation = self.__generation
        provider_client = _SessionProviderClient(generation, self.__post)
        self.__provider_client = provider_client
        self.__sink.open(generation)

        items: List[SessionItem] = []
        self.__items = items
        for configuration in self.__configurations:
            item = SessionItem(configuration)
            items.append(item)
            try:
                item.browse_handle = provider.browse(
                    configuration.service_type,
                    DnssdProvider.DEFAULT_DOMAIN,
                    provider_client,
                )
            # pylint: disable=broad-exception-caught # Reported as a browse failure.
            except Exception as e:
                _logger.error(
                    "Failed to start browsing for '%s': %s",
                    configuration.service_type,
                    e,
                    exc_info=True,
                )
                self.__sink.emit_failed(
                    generation, configuration, DiscoveryError.BROWSING_FAILURE
                )

        _logger.info(
            "Started discovery run %d for %d configuration(s).",
            generation,
            len(items),
        )

    def __stop_item(self, provider: DnssdProvider, item: SessionItem) -> None:
        if item.browse_handle is not None:
            try:
                provider.stop_browse(item.browse_handle)
            # pylint: disable=broad-exception-caught # stop() never raises.
            except Exception as e:
                _logger.error(
                    "Failed to stop browsing for '%s': %s",
                    item.configuration.service_type,
                    e,
                    exc_info=True,
                )
            item.browse_handle = None

        for advertisement_id in item.tracked():
            self.__stop_resolve(provider, advertisement_id)
            item.untrack(advertisement_id)

    def __stop_resolve(
        self, provider: DnssdProvider, advertisement_id: AdvertisementId
    ) -> None:
        entry = self.__arena.get(advertisement_id)
        if entry is None or entry.resolve_handle is None:
            return

        resolve_handle = entry.resolve_handle
        entry.resolve_handle = None
        try:
            provider.stop_resolve(resolve_handle)
        # pylint: disable=broad-exception-caught # stop() never raises.
        except Exception as e:
            _logger.error(
                "Failed to stop resolving '%s': %s",
                entry.advertisement.name,
                e,
                exc_info=True,
            )

    # --- Event channel ---

    def __post(self, event: ProviderEvent) -> None:
        with self.__lock:
            if event.generation != self.__generation:
                _logger.debug("Dropping event from stale run: %s", event)
                return

            self.__events.append(event)
            if self.__dispatching:
                return
            self.__dispatch_pending()

    def __dispatch_pending(self) -> None:
        self.__dispatching = True
        try:
            while self.__events:
                event = self.__events.popleft()
                if (
                    self.__items is None
                    or event.generation != self.__generation
                ):
                    continue
                self.__handle_event(event)
        finally:
            self.__dispatching = False

    def __handle_event(self, event: ProviderEvent) -> None:
        if isinstance(event, ServiceFound):
            self.__on_found(event)
        elif isinstance(event, BrowseFailed):
            self.__on_browse_failed(event)
        elif isinstance(event, ServiceRemoved):
            self.__on_removed(event)
        elif isinstance(event, ServiceResolved):
            self.__on_resolved(event)
        elif isinstance(event, ResolveFailed):
            self.__on_resolve_failed(event)
        else:
            raise TypeError(f"Unknown provider event: {type(event).__name__}")

    # --- Lookups ---

    def __item_for_browse_handle(
        self, browse_handle: BrowseHandle
    ) -> Optional[SessionItem]:
        if browse_handle is None:
            return None
        for item in self.__items or []:
            if item.browse_handle is browse_handle:
                return item
        return None

    def __item_for_advertisement(
        self, advertisement: ServiceAdvertisement
    ) -> Tuple[Optional[SessionItem], Optional[AdvertisementId]]:
        advertisement_id = self.__arena.id_of(advertisement)
        if advertisement_id is None:
            return None, None

        # First item in configuration order wins if several claim it.
        for item in self.__items or []:
            if item.contains(advertisement_id):
                return item, advertisement_id
        return None, advertisement_id

    # --- Event handlers ---

    def __on_found(self, event: ServiceFound) -> None:
        item = self.__item_for_browse_handle(event.browse_handle)
        if item is None:
            _logger.debug(
                "Found '%s' from unknown browse.", event.advertisement.name
            )
            return

        advertisement = event.advertisement
        if not matches(item.configuration, advertisement.name):
            _logger.debug(
                "Ignoring '%s': does not match prefix '%s'.",
                advertisement.name,
                item.configuration.service_name_prefix,
            )
            return

        advertisement_id = self.__arena.admit(advertisement)
        if item.contains(advertisement_id):
            return
        item.track(advertisement_id)

        provider_client = self.__provider_client
        assert self.__provider is not None and provider_client is not None
        try:
            resolve_handle = self.__provider.resolve(
                advertisement, self.__resolve_timeout, provider_client
            )
        # pylint: disable=broad-exception-caught # Reported as a resolve failure.
        except Exception as e:
            _logger.error(
                "Failed to start resolving '%s': %s",
                advertisement.name,
                e,
                exc_info=True,
            )
            self.__sink.emit_failed(
                event.generation,
                item.configuration,
                DiscoveryError.RESOLVING_FAILURE,
            )
            return

        entry = self.__arena.get(advertisement_id)
        if entry is not None:
            entry.resolve_handle = resolve_handle

    def __on_browse_failed(self, event: BrowseFailed) -> None:
        item = self.__item_for_browse_handle(event.browse_handle)
        if item is None:
            return

        _logger.warning(
            "Browsing failed for '%s': %s",
            item.configuration.service_type,
            event.error_info,
        )
        self.__sink.emit_failed(
            event.generation,
            item.configuration,
            DiscoveryError.BROWSING_FAILURE,
        )

    def __on_removed(self, event: ServiceRemoved) -> None:
        item, advertisement_id = self.__item_for_advertisement(
            event.advertisement
        )
        if item is None or advertisement_id is None:
            return

        item.untrack(advertisement_id)
        still_tracked = any(
            other.contains(advertisement_id) for other in self.__items or []
        )
        if not still_tracked:
            assert self.__provider is not None
            self.__stop_resolve(self.__provider, advertisement_id)
            self.__arena.release(advertisement_id)

        self.__sink.emit_disappeared(
            event.generation,
            DiscoveredService(item.configuration, event.advertisement),
        )

    def __on_resolved(self, event: ServiceResolved) -> None:
        item, _ = self.__item_for_advertisement(event.advertisement)
        if item is None:
            return

        self.__sink.emit_discovered(
            event.generation,
            DiscoveredService(item.configuration, event.advertisement),
        )

    def __on_resolve_failed(self, event: ResolveFailed) -> None:
        item, _ = self.__item_for_advertisement(event.advertisement)
        if item is None:
            return

        _logger.warning(
            "Resolving '%s' failed: %s",
            event.advertisement.name,
            event.error_info,
        )
        self.__sink.emit_failed(
            event.generation,
            item.configuration,
            DiscoveryError.RESOLVING_FAILURE,
        )
