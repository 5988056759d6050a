"""DNS-SD provider backed by python-zeroconf."""

import asyncio
import concurrent.futures
import logging
from functools import partial
from typing import Dict, Optional, Tuple

from zeroconf import ServiceListener, Zeroconf
from zeroconf.asyncio import (
    AsyncServiceBrowser,
    AsyncServiceInfo,
    AsyncZeroconf,
)

from dnssdkit.discovery.dnssd.dnssd_provider import (
    BrowseHandle,
    DnssdProvider,
    ResolveHandle,
)
from dnssdkit.discovery.service_advertisement import (
    ServiceAdvertisement,
    ServiceEndpoint,
)
from dnssdkit.threading.aio.aio_utils import run_on_event_loop

_logger = logging.getLogger(__name__)

DEFAULT_MDNS_DOMAIN = "local."


def split_service_type(service_type: str, domain: str = "") -> Tuple[str, str]:
    """Normalizes a DNS-SD service type and domain.

    "_http._tcp", "_http._tcp.local." and "_http" all become
    ("_http._tcp", "local."). An empty domain means "local.".

    Raises:
        ValueError: If the service type does not start with '_'.
    """
    domain = domain or DEFAULT_MDNS_DOMAIN
    if not domain.endswith("."):
        domain = f"{domain}."

    base_type = service_type.rstrip(".")
    domain_suffix = f".{domain.rstrip('.')}"
    if base_type.endswith(domain_suffix):
        base_type = base_type[: -len(domain_suffix)]

    # mDNS service types start with an underscore.
    if not base_type.startswith("_"):
        raise ValueError(
            f"service_type must start with '_', got '{service_type}'."
        )
    if not (base_type.endswith("._tcp") or base_type.endswith("._udp")):
        base_type = f"{base_type}._tcp"
    return base_type, domain


class _ZeroconfBrowse(ServiceListener):
    """Browse handle returned by `ZeroconfProvider.browse()`.

    Also the `zeroconf.ServiceListener` of its `AsyncServiceBrowser`. It
    keeps one `ServiceAdvertisement` per announced instance name so that
    removal reports the same object that was found. All methods except
    `cancel` run on the zeroconf event loop.
    """

    def __init__(
        self, service_type: str, domain: str, client: DnssdProvider.Client
    ) -> None:
        self.service_type = service_type
        self.domain = domain
        self.browser: Optional[AsyncServiceBrowser] = None
        self.cancelled = False
        self.__client = client
        self.__advertisements: Dict[str, ServiceAdvertisement] = {}

    @property
    def zeroconf_type(self) -> str:
        return f"{self.service_type}.{self.domain}"

    def cancel(self) -> None:
        self.cancelled = True

    def report_failure(self, error: Exception) -> None:
        # pylint: disable=W0212 # Calling client's notification method.
        self.__client._on_browse_failed(
            self, {"error": repr(error), "service_type": self.zeroconf_type}
        )

    def __instance_name(self, name: str) -> str:
        suffix = f".{self.zeroconf_type}"
        if name.endswith(suffix):
            return name[: -len(suffix)]
        return name

    # --- ServiceListener interface methods ---

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        if self.cancelled:
            return
        if type_ != self.zeroconf_type:
            _logger.debug(
                "Ignoring added service '%s', type '%s'. Expected '%s'.",
                name,
                type_,
                self.zeroconf_type,
            )
            return
        if name in self.__advertisements:
            return

        advertisement = ServiceAdvertisement(
            name=self.__instance_name(name),
            service_type=self.service_type,
            domain=self.domain,
        )
        self.__advertisements[name] = advertisement
        _logger.debug("Zeroconf found '%s'.", name)
        # pylint: disable=W0212 # Calling client's notification method.
        self.__client._on_found(self, advertisement, False)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        if self.cancelled:
            return
        advertisement = self.__advertisements.pop(name, None)
        if advertisement is None:
            return

        _logger.debug("Zeroconf removed '%s'.", name)
        # pylint: disable=W0212 # Calling client's notification method.
        self.__client._on_removed(self, advertisement, False)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        # Resolution happens once per instance; TXT updates are not tracked.
        _logger.debug("Zeroconf updated '%s'; ignoring.", name)


class _ZeroconfResolve:
    """Resolve handle returned by `ZeroconfProvider.resolve()`."""

    def __init__(self, advertisement: ServiceAdvertisement) -> None:
        self.advertisement = advertisement
        self.future: Optional[concurrent.futures.Future[None]] = None

    def cancel(self) -> None:
        if self.future is not None:
            self.future.cancel()


class ZeroconfProvider(DnssdProvider):
    """`DnssdProvider` implemented with `zeroconf.asyncio`.

    Browses and resolves run on the event loop of the underlying `Zeroconf`
    instance; the public methods only schedule work there, so they are safe
    to call from any thread and never block. Callbacks are made from that
    loop.

    A resolve that does not complete within its timeout is reported through
    `_on_resolve_failed`, like any other resolve error.
    """

    def __init__(self, zc_instance: Optional[AsyncZeroconf] = None) -> None:
        """
        Args:
            zc_instance: Shared `AsyncZeroconf` to use. If None, one is
                created on first use and closed by `close()`.
        """
        self.__mdns: Optional[AsyncZeroconf] = zc_instance
        self.__is_shared_zc = zc_instance is not None

    def __get_mdns(self) -> AsyncZeroconf:
        if self.__mdns is None:
            self.__mdns = AsyncZeroconf()
            _logger.info("Created AsyncZeroconf for ZeroconfProvider.")
        return self.__mdns

    def __loop(self) -> asyncio.AbstractEventLoop:
        loop = self.__get_mdns().zeroconf.loop
        assert loop is not None, "Zeroconf instance has no event loop."
        return loop

    def browse(
        self,
        service_type: str,
        domain: str,
        client: DnssdProvider.Client,
    ) -> BrowseHandle:
        base_type, full_domain = split_service_type(service_type, domain)
        handle = _ZeroconfBrowse(base_type, full_domain, client)
        run_on_event_loop(partial(self.__start_browse, handle), self.__loop())
        return handle

    async def __start_browse(self, handle: _ZeroconfBrowse) -> None:
        if handle.cancelled:
            return
        try:
            handle.browser = AsyncServiceBrowser(
                self.__get_mdns().zeroconf,
                [handle.zeroconf_type],
                listener=handle,
            )
            _logger.info("Browsing for %s.", handle.zeroconf_type)
        # pylint: disable=broad-exception-caught # Reported as a browse failure.
        except Exception as e:
            _logger.error(
                "Failed to browse for %s: %s",
                handle.zeroconf_type,
                e,
                exc_info=True,
            )
            handle.report_failure(e)

    def stop_browse(self, handle: BrowseHandle) -> None:
        if not isinstance(handle, _ZeroconfBrowse):
            raise TypeError(
                f"Not a ZeroconfProvider browse handle: {type(handle).__name__}."
            )
        handle.cancel()
        if self.__mdns is not None:
            run_on_event_loop(
                partial(self.__cancel_browse, handle), self.__loop()
            )

    async def __cancel_browse(self, handle: _ZeroconfBrowse) -> None:
        browser = handle.browser
        handle.browser = None
        if browser is not None:
            await browser.async_cancel()
            _logger.info("Stopped browsing for %s.", handle.zeroconf_type)

    def resolve(
        self,
        advertisement: ServiceAdvertisement,
        timeout: float,
        client: DnssdProvider.Client,
    ) -> ResolveHandle:
        handle = _ZeroconfResolve(advertisement)
        handle.future = run_on_event_loop(
            partial(self.__resolve, advertisement, timeout, client),
            self.__loop(),
        )
        return handle

    async def __resolve(
        self,
        advertisement: ServiceAdvertisement,
        timeout: float,
        client: DnssdProvider.Client,
    ) -> None:
        zeroconf_type = f"{advertisement.service_type}.{advertisement.domain}"
        info = AsyncServiceInfo(zeroconf_type, advertisement.mdns_name)
        try:
            found = await info.async_request(
                self.__get_mdns().zeroconf, int(timeout * 1000)
            )
        # pylint: disable=broad-exception-caught # Reported as a resolve failure.
        except Exception as e:
            _logger.error(
                "Error resolving '%s': %s",
                advertisement.mdns_name,
                e,
                exc_info=True,
            )
            # pylint: disable=W0212 # Calling client's notification method.
            client._on_resolve_failed(advertisement, {"error": repr(e)})
            return

        if not found or info.port is None:
            _logger.info(
                "Could not resolve '%s' within %ss.",
                advertisement.mdns_name,
                timeout,
            )
            # pylint: disable=W0212 # Calling client's notification method.
            client._on_resolve_failed(
                advertisement, {"error": "not resolved", "timeout": timeout}
            )
            return

        if not info.addresses:
            _logger.warning(
                "No addresses for resolved service '%s'.",
                advertisement.mdns_name,
            )

        advertisement.endpoint = ServiceEndpoint(
            host=info.server,
            port=info.port,
            addresses=info.parsed_addresses(),
            properties=dict(info.properties),
        )
        # pylint: disable=W0212 # Calling client's notification method.
        client._on_resolved(advertisement)

    def stop_resolve(self, handle: ResolveHandle) -> None:
        if not isinstance(handle, _ZeroconfResolve):
            raise TypeError(
                f"Not a ZeroconfProvider resolve handle: {type(handle).__name__}."
            )
        handle.cancel()

    def close(self) -> None:
        """Closes the owned `AsyncZeroconf`. A shared instance is left open."""
        if self.__mdns is None or self.__is_shared_zc:
            return

        mdns = self.__mdns
        self.__mdns = None
        loop = mdns.zeroconf.loop
        assert loop is not None, "Zeroconf instance has no event loop."
        future = run_on_event_loop(mdns.async_close, loop)

        def log_close_result(done: concurrent.futures.Future[None]) -> None:
            if done.cancelled():
                return
            error = done.exception()
            if error is not None:
                _logger.error(
                    "Error closing owned AsyncZeroconf: %s",
                    error,
                    exc_info=error,
                )

        future.add_done_callback(log_close_result)
        _logger.info("Closing owned AsyncZeroconf for ZeroconfProvider.")
