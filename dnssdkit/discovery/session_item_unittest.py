from dnssdkit.discovery.advertisement_arena import AdvertisementId
from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.session_item import SessionItem


def test_new_item_is_unstarted_and_empty():
    configuration = DiscoveryConfiguration("_http._tcp", "Printer")
    item = SessionItem(configuration)

    assert item.configuration is configuration
    assert item.browse_handle is None
    assert list(item.tracked()) == []


def test_browse_handle_round_trips():
    item = SessionItem(DiscoveryConfiguration("_http._tcp"))
    handle = object()

    item.browse_handle = handle
    assert item.browse_handle is handle

    item.browse_handle = None
    assert item.browse_handle is None


def test_track_and_untrack():
    item = SessionItem(DiscoveryConfiguration("_http._tcp"))
    one, two = AdvertisementId(1), AdvertisementId(2)

    item.track(one)
    item.track(one)
    item.track(two)
    assert sorted(item.tracked()) == [one, two]
    assert item.contains(one) and item.contains(two)

    item.untrack(one)
    assert not item.contains(one)
    assert list(item.tracked()) == [two]

    # Unknown ids are ignored.
    item.untrack(AdvertisementId(99))
    assert list(item.tracked()) == [two]


def test_tracked_is_a_snapshot():
    item = SessionItem(DiscoveryConfiguration("_http._tcp"))
    for i in range(1, 4):
        item.track(AdvertisementId(i))

    for advertisement_id in item.tracked():
        item.untrack(advertisement_id)

    assert list(item.tracked()) == []
