"""Discovery sessions and the types they report."""

from dnssdkit.discovery.discovered_service import DiscoveredService
from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.discovery_error import DiscoveryError
from dnssdkit.discovery.discovery_session import DiscoverySession
from dnssdkit.discovery.match_policy import matches
from dnssdkit.discovery.service_advertisement import (
    ServiceAdvertisement,
    ServiceEndpoint,
)

__all__ = [
    "DiscoveredService",
    "DiscoveryConfiguration",
    "DiscoveryError",
    "DiscoverySession",
    "ServiceAdvertisement",
    "ServiceEndpoint",
    "matches",
]
