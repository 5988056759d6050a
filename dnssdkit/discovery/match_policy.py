"""Decides whether a discovered advertisement is in scope for a configuration."""

from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration


def matches(
    configuration: DiscoveryConfiguration, advertisement_name: str
) -> bool:
    """Returns True if `advertisement_name` satisfies `configuration`.

    A configuration without a name prefix accepts every advertisement.
    Otherwise the name must start with the prefix, compared character by
    character without case folding or Unicode normalization.
    """
    prefix = configuration.service_name_prefix
    if prefix is None:
        return True
    return advertisement_name.startswith(prefix)
