"""Defines the advertisement handle reported by DNS-SD providers."""

import dataclasses
from typing import Dict, List, Optional


@dataclasses.dataclass(frozen=True)
class ServiceEndpoint:
    """Connection details obtained by resolving an advertisement.

    Attributes:
        host: Target host name from the SRV record.
        port: Service port from the SRV record.
        addresses: IP addresses of the host, as strings.
        properties: Parsed TXT record. Keys are bytes, values bytes or None.
    """

    host: Optional[str]
    port: int
    addresses: List[str]
    properties: Dict[bytes, bytes | None] = dataclasses.field(
        default_factory=dict
    )


@dataclasses.dataclass(eq=False)
class ServiceAdvertisement:
    """One service instance announced on the network.

    Instances are created by a `DnssdProvider` and compared by identity: two
    advertisements with identical fields are still different services, since
    a service can transiently share its name, type and domain with another
    one during a rename. `endpoint` is filled in by the provider once the
    advertisement has been resolved.
    """

    name: str
    service_type: str
    domain: str
    endpoint: Optional[ServiceEndpoint] = None

    @property
    def mdns_name(self) -> str:
        """Fully qualified instance name, e.g. "Printer._ipp._tcp.local."."""
        return f"{self.name}.{self.service_type}.{self.domain}"
