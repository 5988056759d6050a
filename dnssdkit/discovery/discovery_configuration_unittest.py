import dataclasses

import pytest

from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration


def test_defaults_to_no_prefix():
    configuration = DiscoveryConfiguration("_http._tcp")
    assert configuration.service_type == "_http._tcp"
    assert configuration.service_name_prefix is None


def test_is_immutable():
    configuration = DiscoveryConfiguration("_http._tcp", "Printer")
    with pytest.raises(dataclasses.FrozenInstanceError):
        configuration.service_type = "_ipp._tcp"  # type: ignore[misc]


def test_equal_configurations_compare_and_hash_equal():
    a = DiscoveryConfiguration("_http._tcp", "Printer")
    b = DiscoveryConfiguration("_http._tcp", "Printer")
    assert a == b
    assert hash(a) == hash(b)
    assert a != DiscoveryConfiguration("_http._tcp")


def test_empty_service_type_raises():
    with pytest.raises(ValueError, match="service_type cannot be empty"):
        DiscoveryConfiguration("")


def test_non_string_service_type_raises():
    with pytest.raises(TypeError, match="service_type must be str"):
        DiscoveryConfiguration(123)  # type: ignore[arg-type]


def test_non_string_prefix_raises():
    with pytest.raises(TypeError, match="service_name_prefix must be str"):
        DiscoveryConfiguration("_http._tcp", b"Printer")  # type: ignore[arg-type]
