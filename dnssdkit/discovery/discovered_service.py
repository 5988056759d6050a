"""Defines DiscoveredService, the payload of discovery notifications."""

import dataclasses

from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.service_advertisement import ServiceAdvertisement


@dataclasses.dataclass(frozen=True)
class DiscoveredService:
    """Pairs an advertisement with the configuration that found it."""

    configuration: DiscoveryConfiguration
    advertisement: ServiceAdvertisement
