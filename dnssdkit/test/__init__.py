# dnssdkit - Test Utilities
# Allows "from dnssdkit.test import ..." for shared fakes and helpers.

from dnssdkit.test.fake_dnssd_provider import (
    FakeBrowse,
    FakeDnssdProvider,
    FakeResolve,
)
from dnssdkit.test.loop_fixtures import clear_loop_fixture, observer_loop
from dnssdkit.test.recording_client import RecordingClient
from dnssdkit.test.service_publisher import ServicePublisher

__all__ = [
    "FakeBrowse",
    "FakeDnssdProvider",
    "FakeResolve",
    "clear_loop_fixture",
    "observer_loop",
    "RecordingClient",
    "ServicePublisher",
]
