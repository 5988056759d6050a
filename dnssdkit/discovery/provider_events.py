"""Tagged events produced from DNS-SD provider callbacks.

Every provider callback is turned into one of these at the session boundary
and pushed through the session's ordered event channel. `generation` is the
discovery run the callback belongs to; events from an earlier run are
dropped when they reach the front of the channel.
"""

import dataclasses
from typing import Union

from dnssdkit.discovery.dnssd.dnssd_provider import BrowseHandle, ErrorInfo
from dnssdkit.discovery.service_advertisement import ServiceAdvertisement


@dataclasses.dataclass(frozen=True)
class ServiceFound:
    generation: int
    browse_handle: BrowseHandle
    advertisement: ServiceAdvertisement
    more_coming: bool


@dataclasses.dataclass(frozen=True)
class BrowseFailed:
    generation: int
    browse_handle: BrowseHandle
    error_info: ErrorInfo


@dataclasses.dataclass(frozen=True)
class ServiceRemoved:
    generation: int
    browse_handle: BrowseHandle
    advertisement: ServiceAdvertisement
    more_coming: bool


@dataclasses.dataclass(frozen=True)
class ServiceResolved:
    generation: int
    advertisement: ServiceAdvertisement


@dataclasses.dataclass(frozen=True)
class ResolveFailed:
    generation: int
    advertisement: ServiceAdvertisement
    error_info: ErrorInfo


ProviderEvent = Union[
    ServiceFound, BrowseFailed, ServiceRemoved, ServiceResolved, ResolveFailed
]
