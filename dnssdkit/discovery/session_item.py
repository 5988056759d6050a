"""Defines SessionItem, the per-configuration state of a discovery run."""

import logging
from typing import Iterator, Optional, Set

from dnssdkit.discovery.advertisement_arena import AdvertisementId
from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration

_logger = logging.getLogger(__name__)


class SessionItem:
    """Tracks one configuration's browse and the advertisements it found.

    An item is created unstarted by `DiscoverySession.start()`; the session
    then attaches the provider's browse handle. The tracked set holds every
    advertisement reported by this item's own browse that matched the
    configuration and has not been removed yet, whether or not it has
    finished resolving.
    """

    def __init__(self, configuration: DiscoveryConfiguration) -> None:
        self.__configuration = configuration
        self.__browse_handle: Optional[object] = None
        self.__advertisements: Set[AdvertisementId] = set()

    @property
    def configuration(self) -> DiscoveryConfiguration:
        return self.__configuration

    @property
    def browse_handle(self) -> Optional[object]:
        """Provider browse handle, or None until browsing was started."""
        return self.__browse_handle

    @browse_handle.setter
    def browse_handle(self, handle: Optional[object]) -> None:
        self.__browse_handle = handle

    def track(self, advertisement_id: AdvertisementId) -> None:
        """Adds an advertisement. The caller has already matched it."""
        self.__advertisements.add(advertisement_id)
        _logger.debug(
            "Tracking advertisement %s for %s.",
            advertisement_id,
            self.__configuration.service_type,
        )

    def untrack(self, advertisement_id: AdvertisementId) -> None:
        self.__advertisements.discard(advertisement_id)

    def contains(self, advertisement_id: AdvertisementId) -> bool:
        return advertisement_id in self.__advertisements

    def tracked(self) -> Iterator[AdvertisementId]:
        """Iterates over a snapshot of the tracked advertisement ids."""
        return iter(list(self.__advertisements))
