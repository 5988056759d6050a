"""DNS-SD providers: the layer that talks multicast DNS for a session."""

from dnssdkit.discovery.dnssd.dnssd_provider import DnssdProvider
from dnssdkit.discovery.dnssd.zeroconf_provider import ZeroconfProvider

__all__ = ["DnssdProvider", "ZeroconfProvider"]
