"""dnssdkit: DNS-SD service discovery sessions over multicast DNS.

A `DiscoverySession` browses for one or more service types, resolves the
advertisements whose names match each configuration, and reports
discoveries, failures and disappearances on a single observer event loop.
"""

from dnssdkit.discovery.discovered_service import DiscoveredService
from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.discovery_error import DiscoveryError
from dnssdkit.discovery.discovery_session import DiscoverySession
from dnssdkit.discovery.service_advertisement import (
    ServiceAdvertisement,
    ServiceEndpoint,
)
from dnssdkit.threading.aio.global_event_loop import (
    clear_dnssdkit_event_loop,
    create_dnssdkit_event_loop_from_watcher,
    set_dnssdkit_event_loop,
    set_dnssdkit_event_loop_to_current_thread,
)

__all__ = [
    "DiscoveredService",
    "DiscoveryConfiguration",
    "DiscoveryError",
    "DiscoverySession",
    "ServiceAdvertisement",
    "ServiceEndpoint",
    "clear_dnssdkit_event_loop",
    "create_dnssdkit_event_loop_from_watcher",
    "set_dnssdkit_event_loop",
    "set_dnssdkit_event_loop_to_current_thread",
]
