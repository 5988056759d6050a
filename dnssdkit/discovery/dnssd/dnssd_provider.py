"""DnssdProvider ABC: the DNS-SD operations a DiscoverySession relies on."""

from abc import ABC, abstractmethod
from typing import Any, Dict

from dnssdkit.discovery.service_advertisement import ServiceAdvertisement

# Opaque tokens. Only the provider that returned a handle looks inside it.
BrowseHandle = object
ResolveHandle = object

ErrorInfo = Dict[str, Any]


class DnssdProvider(ABC):
    """Browses for and resolves DNS-SD services on behalf of a session.

    `browse`, `stop_browse`, `resolve` and `stop_resolve` only initiate or
    cancel work and must not block on the network. Results are reported to
    the `Client` passed in, from whichever thread or event loop the provider
    runs on. A provider may still deliver callbacks for a browse or resolve
    after it was stopped; clients are expected to tolerate that.
    """

    # Empty domain means the default multicast domain ("local.").
    DEFAULT_DOMAIN = ""

    class Client(ABC):
        """Receives the results of a provider's browse and resolve work."""

        @abstractmethod
        def _on_found(
            self,
            browse_handle: BrowseHandle,
            advertisement: ServiceAdvertisement,
            more_coming: bool,
        ) -> None:
            """A browse reported a new advertisement.

            Args:
                browse_handle: Handle of the browse that found it.
                advertisement: The advertisement. The same object is passed to
                    `_on_removed` when the service goes away.
                more_coming: Advisory hint that further events are queued.
            """
            raise NotImplementedError()

        @abstractmethod
        def _on_browse_failed(
            self, browse_handle: BrowseHandle, error_info: ErrorInfo
        ) -> None:
            """A browse could not be started or stopped working."""
            raise NotImplementedError()

        @abstractmethod
        def _on_removed(
            self,
            browse_handle: BrowseHandle,
            advertisement: ServiceAdvertisement,
            more_coming: bool,
        ) -> None:
            """A previously found advertisement left the network."""
            raise NotImplementedError()

        @abstractmethod
        def _on_resolved(self, advertisement: ServiceAdvertisement) -> None:
            """`advertisement.endpoint` has been populated."""
            raise NotImplementedError()

        @abstractmethod
        def _on_resolve_failed(
            self, advertisement: ServiceAdvertisement, error_info: ErrorInfo
        ) -> None:
            """Resolving failed, including by running out of time."""
            raise NotImplementedError()

    @abstractmethod
    def browse(
        self,
        service_type: str,
        domain: str,
        client: "DnssdProvider.Client",
    ) -> BrowseHandle:
        """Starts browsing for `service_type` in `domain`.

        Failures to start may be raised or reported through
        `client._on_browse_failed`.
        """
        raise NotImplementedError()

    @abstractmethod
    def stop_browse(self, handle: BrowseHandle) -> None:
        raise NotImplementedError()

    @abstractmethod
    def resolve(
        self,
        advertisement: ServiceAdvertisement,
        timeout: float,
        client: "DnssdProvider.Client",
    ) -> ResolveHandle:
        """Starts resolving `advertisement`, giving up after `timeout` seconds."""
        raise NotImplementedError()

    @abstractmethod
    def stop_resolve(self, handle: ResolveHandle) -> None:
        raise NotImplementedError()

    def close(self) -> None:
        """Releases resources owned by the provider. Default is a no-op."""
