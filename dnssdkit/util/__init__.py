"""Utility functions for dnssdkit."""

from dnssdkit.util.ip import get_advertised_addresses

__all__ = [
    "get_advertised_addresses",
]
