"""Maps provider advertisement handles to session-owned integer ids."""

import dataclasses
import itertools
from typing import Dict, NewType, Optional

from dnssdkit.discovery.service_advertisement import ServiceAdvertisement

AdvertisementId = NewType("AdvertisementId", int)


@dataclasses.dataclass
class ArenaEntry:
    """Everything the session holds for one live advertisement."""

    advertisement: ServiceAdvertisement
    resolve_handle: Optional[object] = None


class AdvertisementArena:
    """Owns the live advertisements of one `DiscoverySession`.

    Advertisement objects reported by a provider are admitted here as soon as
    a callback crosses into the session, and the rest of the session refers
    to them only through `AdvertisementId`s. Ids are never reused, so an id
    that outlived its entry simply no longer resolves.

    Lookups by advertisement use object identity. Not thread-safe; the owning
    session serializes all access.
    """

    def __init__(self) -> None:
        self.__next_id = itertools.count(1)
        self.__entries: Dict[AdvertisementId, ArenaEntry] = {}
        self.__ids: Dict[ServiceAdvertisement, AdvertisementId] = {}

    def admit(self, advertisement: ServiceAdvertisement) -> AdvertisementId:
        """Returns the id for `advertisement`, allocating one if it is new."""
        existing = self.__ids.get(advertisement)
        if existing is not None:
            return existing

        advertisement_id = AdvertisementId(next(self.__next_id))
        self.__entries[advertisement_id] = ArenaEntry(advertisement)
        self.__ids[advertisement] = advertisement_id
        return advertisement_id

    def id_of(
        self, advertisement: ServiceAdvertisement
    ) -> Optional[AdvertisementId]:
        """Returns the id of a live advertisement, or None if unknown."""
        return self.__ids.get(advertisement)

    def get(self, advertisement_id: AdvertisementId) -> Optional[ArenaEntry]:
        return self.__entries.get(advertisement_id)

    def release(
        self, advertisement_id: AdvertisementId
    ) -> Optional[ArenaEntry]:
        """Removes and returns the entry for `advertisement_id`, if live."""
        entry = self.__entries.pop(advertisement_id, None)
        if entry is not None:
            del self.__ids[entry.advertisement]
        return entry

    def clear(self) -> None:
        self.__entries.clear()
        self.__ids.clear()
