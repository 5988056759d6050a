"""In-memory DnssdProvider for driving a DiscoverySession in tests."""

import threading
from typing import Dict, List, Optional

from dnssdkit.discovery.dnssd.dnssd_provider import (
    BrowseHandle,
    DnssdProvider,
    ErrorInfo,
    ResolveHandle,
)
from dnssdkit.discovery.service_advertisement import (
    ServiceAdvertisement,
    ServiceEndpoint,
)


class FakeBrowse:
    """Browse handle of `FakeDnssdProvider`."""

    __test__ = False

    def __init__(
        self, service_type: str, domain: str, client: DnssdProvider.Client
    ) -> None:
        self.service_type = service_type
        self.domain = domain
        self.client = client
        self.stopped = False


class FakeResolve:
    """Resolve handle of `FakeDnssdProvider`."""

    __test__ = False

    def __init__(
        self,
        advertisement: ServiceAdvertisement,
        timeout: float,
        client: DnssdProvider.Client,
    ) -> None:
        self.advertisement = advertisement
        self.timeout = timeout
        self.client = client
        self.stopped = False


class FakeDnssdProvider(DnssdProvider):
    """Records every call and lets the test fire callbacks by hand.

    Callbacks are fired synchronously on the calling thread. The fire
    helpers keep working on stopped handles, which mimics a real provider
    whose callbacks race with cancellation.
    """

    __test__ = False

    def __init__(
        self,
        *,
        fail_browse_for: Optional[List[str]] = None,
        fail_resolve: bool = False,
    ) -> None:
        self.__lock = threading.Lock()
        self.__fail_browse_for = set(fail_browse_for or [])
        self.fail_resolve = fail_resolve
        self.browses: List[FakeBrowse] = []
        self.resolves: List[FakeResolve] = []
        self.closed = False

    # --- DnssdProvider ---

    def browse(
        self,
        service_type: str,
        domain: str,
        client: DnssdProvider.Client,
    ) -> BrowseHandle:
        if service_type in self.__fail_browse_for:
            raise RuntimeError(f"browse refused for {service_type}")
        handle = FakeBrowse(service_type, domain, client)
        with self.__lock:
            self.browses.append(handle)
        return handle

    def stop_browse(self, handle: BrowseHandle) -> None:
        assert isinstance(handle, FakeBrowse)
        handle.stopped = True

    def resolve(
        self,
        advertisement: ServiceAdvertisement,
        timeout: float,
        client: DnssdProvider.Client,
    ) -> ResolveHandle:
        if self.fail_resolve:
            raise RuntimeError(f"resolve refused for {advertisement.name}")
        handle = FakeResolve(advertisement, timeout, client)
        with self.__lock:
            self.resolves.append(handle)
        return handle

    def stop_resolve(self, handle: ResolveHandle) -> None:
        assert isinstance(handle, FakeResolve)
        handle.stopped = True

    def close(self) -> None:
        self.closed = True

    # --- Test helpers ---

    def active_browses(self) -> List[FakeBrowse]:
        with self.__lock:
            return [b for b in self.browses if not b.stopped]

    def browse_for(self, service_type: str) -> FakeBrowse:
        """Returns the most recent browse for `service_type`."""
        with self.__lock:
            for handle in reversed(self.browses):
                if handle.service_type == service_type:
                    return handle
        raise KeyError(service_type)

    def resolve_for(self, advertisement: ServiceAdvertisement) -> FakeResolve:
        with self.__lock:
            for handle in reversed(self.resolves):
                if handle.advertisement is advertisement:
                    return handle
        raise KeyError(advertisement.name)

    def resolves_for(
        self, advertisement: ServiceAdvertisement
    ) -> List[FakeResolve]:
        with self.__lock:
            return [
                r for r in self.resolves if r.advertisement is advertisement
            ]

    # pylint: disable=W0212 # Calling client's notification methods.

    def fire_found(
        self,
        browse: FakeBrowse,
        name: str,
        more_coming: bool = False,
    ) -> ServiceAdvertisement:
        advertisement = ServiceAdvertisement(
            name=name, service_type=browse.service_type, domain="local."
        )
        browse.client._on_found(browse, advertisement, more_coming)
        return advertisement

    def fire_found_advertisement(
        self, browse: FakeBrowse, advertisement: ServiceAdvertisement
    ) -> None:
        browse.client._on_found(browse, advertisement, False)

    def fire_removed(
        self, browse: FakeBrowse, advertisement: ServiceAdvertisement
    ) -> None:
        browse.client._on_removed(browse, advertisement, False)

    def fire_browse_failed(
        self, browse: FakeBrowse, error_info: Optional[ErrorInfo] = None
    ) -> None:
        browse.client._on_browse_failed(browse, error_info or {})

    def fire_resolved(
        self,
        resolve: FakeResolve,
        host: str = "printer.local.",
        port: int = 631,
        properties: Optional[Dict[bytes, Optional[bytes]]] = None,
    ) -> None:
        resolve.advertisement.endpoint = ServiceEndpoint(
            host=host,
            port=port,
            addresses=["192.168.1.20"],
            properties=properties or {},
        )
        resolve.client._on_resolved(resolve.advertisement)

    def fire_resolve_failed(
        self, resolve: FakeResolve, error_info: Optional[ErrorInfo] = None
    ) -> None:
        resolve.client._on_resolve_failed(
            resolve.advertisement, error_info or {"error": "timeout"}
        )
