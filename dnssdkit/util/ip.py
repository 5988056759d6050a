"""Local IPv4 addresses to put in the A records of a published service."""

import ipaddress
import socket

import psutil  # type: ignore[import-untyped]


def _up_interface_addresses() -> list[str]:
    stats = psutil.net_if_stats()
    addresses: list[str] = []
    for name, interface_addresses in psutil.net_if_addrs().items():
        interface_stats = stats.get(name)
        if interface_stats is not None and not interface_stats.isup:
            continue
        for address in interface_addresses:
            if address.family == socket.AF_INET:
                addresses.append(address.address)
    return addresses


def get_advertised_addresses() -> list[bytes]:
    """Returns the packed IPv4 addresses this host should advertise.

    Only interfaces that are up are considered. Loopback addresses are left
    out unless the host has nothing else, in which case peers on the same
    host can still resolve the service.

    Returns:
        Addresses in network byte order, as `ServiceInfo` expects them.
        Empty if the host has no IPv4 address at all.
    """
    candidates = _up_interface_addresses()
    routable = [
        a for a in candidates if not ipaddress.ip_address(a).is_loopback
    ]
    return [socket.inet_aton(a) for a in routable or candidates]
