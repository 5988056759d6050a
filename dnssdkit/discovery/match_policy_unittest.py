import pytest

from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.match_policy import matches


@pytest.mark.parametrize(
    "name", ["GCXDNSKitTest", "GCXDNSKitTestExtra", "", "anything at all"]
)
def test_no_prefix_matches_every_name(name):
    configuration = DiscoveryConfiguration("_http._tcp")
    assert matches(configuration, name)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("GCXDNSKitTest", True),
        ("GCXDNSKitTestExtra", True),
        ("XGCXDNSKitTest", False),
        ("GCXDNSKit", False),
        ("gcxdnskittest", False),
        ("", False),
    ],
)
def test_prefix_is_exact_and_case_sensitive(name, expected):
    configuration = DiscoveryConfiguration(
        "_http._tcp", service_name_prefix="GCXDNSKitTest"
    )
    assert matches(configuration, name) is expected


def test_empty_prefix_matches_every_name():
    configuration = DiscoveryConfiguration("_http._tcp", service_name_prefix="")
    assert matches(configuration, "Printer")


def test_unicode_is_not_normalized():
    # "é" precomposed vs "e" + combining acute accent.
    configuration = DiscoveryConfiguration(
        "_http._tcp", service_name_prefix="Caf\u00e9"
    )
    assert matches(configuration, "Caf\u00e9 Kitchen")
    assert not matches(configuration, "Cafe\u0301 Kitchen")
