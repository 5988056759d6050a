from dnssdkit.discovery.service_advertisement import (
    ServiceAdvertisement,
    ServiceEndpoint,
)


def test_endpoint_defaults_to_unresolved():
    advertisement = ServiceAdvertisement(
        name="Printer", service_type="_ipp._tcp", domain="local."
    )
    assert advertisement.endpoint is None

    advertisement.endpoint = ServiceEndpoint(
        host="printer.local.", port=631, addresses=["192.168.1.20"]
    )
    assert advertisement.endpoint.properties == {}


def test_mdns_name():
    advertisement = ServiceAdvertisement(
        name="Printer", service_type="_ipp._tcp", domain="local."
    )
    assert advertisement.mdns_name == "Printer._ipp._tcp.local."


def test_advertisements_compare_by_identity():
    a = ServiceAdvertisement("Printer", "_ipp._tcp", "local.")
    b = ServiceAdvertisement("Printer", "_ipp._tcp", "local.")
    assert a != b
    assert a == a
    assert len({a, b}) == 2
