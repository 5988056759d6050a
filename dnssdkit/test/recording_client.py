"""DiscoverySession.Client that records notifications for assertions."""

import threading
from typing import List, Tuple

from dnssdkit.discovery.discovered_service import DiscoveredService
from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.discovery_error import DiscoveryError
from dnssdkit.discovery.event_sink import EventSink


class RecordingClient(EventSink.Client):
    """Records each notification; tests wait on it from any thread."""

    __test__ = False

    def __init__(self) -> None:
        self.__condition = threading.Condition()
        self.discovered: List[DiscoveredService] = []
        self.failed: List[Tuple[DiscoveryConfiguration, DiscoveryError]] = []
        self.disappeared: List[DiscoveredService] = []

    async def _on_service_discovered(self, service: DiscoveredService) -> None:
        with self.__condition:
            self.discovered.append(service)
            self.__condition.notify_all()

    async def _on_discovery_failed(
        self, configuration: DiscoveryConfiguration, error: DiscoveryError
    ) -> None:
        with self.__condition:
            self.failed.append((configuration, error))
            self.__condition.notify_all()

    async def _on_service_disappeared(self, service: DiscoveredService) -> None:
        with self.__condition:
            self.disappeared.append(service)
            self.__condition.notify_all()

    def total(self) -> int:
        with self.__condition:
            return len(self.discovered) + len(self.failed) + len(
                self.disappeared
            )

    def wait_for_total(self, count: int, timeout: float = 5.0) -> bool:
        """Blocks until at least `count` notifications have arrived."""
        with self.__condition:
            return self.__condition.wait_for(
                lambda: len(self.discovered)
                + len(self.failed)
                + len(self.disappeared)
                >= count,
                timeout,
            )
