"""Error taxonomy reported through `DiscoverySession` failure events."""

from enum import IntEnum


class DiscoveryError(IntEnum):
    """Reason passed alongside a configuration in a failure notification.

    Attributes:
        UNKNOWN: Reserved. Never produced.
        BROWSING_FAILURE: The provider could not start or continue browsing
            for the configuration. Other configurations keep running.
        RESOLVING_TIMEOUT: Reserved. Providers report resolve timeouts as
            RESOLVING_FAILURE because they do not distinguish the two.
        RESOLVING_FAILURE: One advertisement could not be resolved.
    """

    UNKNOWN = 0
    BROWSING_FAILURE = 1
    RESOLVING_TIMEOUT = 2
    RESOLVING_FAILURE = 3
