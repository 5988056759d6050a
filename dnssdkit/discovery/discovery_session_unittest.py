import threading

import pytest

from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.discovery_error import DiscoveryError
from dnssdkit.discovery.discovery_session import DiscoverySession
from dnssdkit.discovery.dnssd.dnssd_provider import DnssdProvider
from dnssdkit.discovery.service_advertisement import ServiceAdvertisement
from dnssdkit.test.fake_dnssd_provider import FakeDnssdProvider
from dnssdkit.test.recording_client import RecordingClient
from dnssdkit.threading.thread_watcher import ThreadWatcher

HTTP = DiscoveryConfiguration("_http._tcp", "GCXDNSKitTest")
IPP = DiscoveryConfiguration("_ipp._tcp")


@pytest.fixture
def provider():
    return FakeDnssdProvider()


@pytest.fixture
def client():
    return RecordingClient()


@pytest.fixture
def session(provider, client, observer_loop):
    discovery_session = DiscoverySession(
        [HTTP, IPP], client, provider=provider, resolve_timeout=2.5
    )
    yield discovery_session
    discovery_session.stop()


def discover(provider, configuration, name):
    """Finds and resolves `name` on the browse for `configuration`."""
    browse = provider.browse_for(configuration.service_type)
    advertisement = provider.fire_found(browse, name)
    provider.fire_resolved(provider.resolve_for(advertisement))
    return browse, advertisement


# --- Construction ---


def test_empty_configurations_raise_for_client(client):
    with pytest.raises(ValueError, match="at least one"):
        DiscoverySession([], client)


def test_empty_configurations_raise_for_handlers():
    with pytest.raises(ValueError, match="at least one"):
        DiscoverySession([], on_discover=lambda service: None)


def test_wrong_configuration_type_raises(client):
    with pytest.raises(TypeError, match="DiscoveryConfiguration"):
        DiscoverySession(["_http._tcp"], client)  # type: ignore[list-item]


@pytest.mark.parametrize("timeout", [0, -1.0])
def test_non_positive_resolve_timeout_raises(client, timeout):
    with pytest.raises(ValueError, match="resolve_timeout"):
        DiscoverySession([HTTP], client, resolve_timeout=timeout)


def test_client_and_handlers_together_raise(client):
    with pytest.raises(ValueError, match="not both"):
        DiscoverySession(  # type: ignore[call-overload]
            [HTTP], client, on_fail=lambda c, e: None
        )


def test_properties(provider, client):
    session = DiscoverySession(
        iter([HTTP, IPP]), client, provider=provider, resolve_timeout=3
    )
    assert session.configurations == (HTTP, IPP)
    assert session.resolve_timeout == 3.0
    assert not session.is_running
    assert isinstance(client, DiscoverySession.Client)


def test_default_resolve_timeout(client):
    session = DiscoverySession([HTTP], client)
    assert session.resolve_timeout == DiscoverySession.DEFAULT_RESOLVE_TIMEOUT


# --- start / stop ---


def test_start_browses_every_configuration(session, provider):
    session.start()

    assert session.is_running
    assert [b.service_type for b in provider.active_browses()] == [
        "_http._tcp",
        "_ipp._tcp",
    ]
    assert all(
        b.domain == DnssdProvider.DEFAULT_DOMAIN for b in provider.browses
    )


def test_start_calls_stop_first(session, mocker):
    stop_spy = mocker.spy(session, "stop")

    session.start()

    stop_spy.assert_called_once_with()


def test_restart_replaces_browses(session, provider):
    session.start()
    first_browses = list(provider.browses)

    session.start()

    assert all(b.stopped for b in first_browses)
    assert len(provider.active_browses()) == 2
    assert len(provider.browses) == 4


class OrderRecordingProvider(FakeDnssdProvider):
    """Records the order of browse starts and stops."""

    __test__ = False

    def __init__(self):
        super().__init__()
        self.calls = []

    def browse(self, service_type, domain, client):
        self.calls.append("browse")
        return super().browse(service_type, domain, client)

    def stop_browse(self, handle):
        self.calls.append("stop")
        super().stop_browse(handle)


def test_restart_stops_before_browsing(client, observer_loop):
    provider = OrderRecordingProvider()
    session = DiscoverySession([IPP], client, provider=provider)
    try:
        session.start()
        session.start()

        assert provider.calls == ["browse", "stop", "browse"]
    finally:
        session.stop()


def test_stop_cancels_browses_and_resolves(session, provider):
    session.start()
    browse = provider.browse_for("_http._tcp")
    advertisement = provider.fire_found(browse, "GCXDNSKitTest")
    resolve = provider.resolve_for(advertisement)

    session.stop()

    assert not session.is_running
    assert all(b.stopped for b in provider.browses)
    assert resolve.stopped


def test_stop_is_idempotent(session, provider):
    session.stop()
    session.start()
    session.stop()
    session.stop()
    assert not session.is_running
    assert not provider.closed


def test_stop_swallows_provider_errors(session, provider, mocker):
    session.start()
    mocker.patch.object(
        provider, "stop_browse", side_effect=RuntimeError("gone")
    )

    session.stop()

    assert not session.is_running


# --- Discovery ---


def test_matching_advertisement_is_discovered_once(session, provider, client):
    session.start()

    browse, advertisement = discover(provider, HTTP, "GCXDNSKitTest")
    # The same advertisement reported again is already tracked.
    provider.fire_found_advertisement(browse, advertisement)

    assert client.wait_for_total(1)
    assert len(provider.resolves_for(advertisement)) == 1
    assert provider.resolve_for(advertisement).timeout == 2.5

    # Something later in the channel proves nothing else was queued.
    discover(provider, IPP, "Office")
    assert client.wait_for_total(2)

    service = client.discovered[0]
    assert service.configuration is HTTP
    assert service.advertisement is advertisement
    assert service.advertisement.endpoint.port == 631
    assert len(client.discovered) == 2
    assert not client.failed


def test_prefix_extension_matches(session, provider, client):
    session.start()

    discover(provider, HTTP, "GCXDNSKitTestExtra")

    assert client.wait_for_total(1)
    assert client.discovered[0].advertisement.name == "GCXDNSKitTestExtra"


def test_non_matching_advertisement_is_ignored(session, provider, client):
    session.start()
    browse = provider.browse_for("_http._tcp")

    other = provider.fire_found(browse, "XGCXDNSKitTest")
    provider.fire_removed(browse, other)

    assert provider.resolves_for(other) == []

    discover(provider, IPP, "Office")
    assert client.wait_for_total(1)
    assert [s.advertisement.name for s in client.discovered] == ["Office"]
    assert not client.disappeared


def test_disappearance_reported_once(session, provider, client):
    session.start()
    browse, advertisement = discover(provider, HTTP, "GCXDNSKitTest")
    resolve = provider.resolve_for(advertisement)

    provider.fire_removed(browse, advertisement)
    provider.fire_removed(browse, advertisement)

    assert client.wait_for_total(2)
    discover(provider, IPP, "Office")
    assert client.wait_for_total(3)

    assert len(client.disappeared) == 1
    gone = client.disappeared[0]
    assert gone.configuration is HTTP
    assert gone.advertisement is advertisement
    assert resolve.stopped


def test_removal_before_resolution_reports_disappearance(
    session, provider, client
):
    session.start()
    browse = provider.browse_for("_http._tcp")
    advertisement = provider.fire_found(browse, "GCXDNSKitTest")
    resolve = provider.resolve_for(advertisement)

    provider.fire_removed(browse, advertisement)

    assert client.wait_for_total(1)
    assert client.disappeared[0].advertisement is advertisement
    assert resolve.stopped

    # A late resolution of the removed advertisement is dropped.
    provider.fire_resolved(resolve)
    discover(provider, IPP, "Office")
    assert client.wait_for_total(2)
    assert [s.advertisement.name for s in client.discovered] == ["Office"]


def test_removal_of_unknown_object_is_ignored(session, provider, client):
    session.start()
    browse, _ = discover(provider, HTTP, "GCXDNSKitTest")

    lookalike = ServiceAdvertisement("GCXDNSKitTest", "_http._tcp", "local.")
    provider.fire_removed(browse, lookalike)

    discover(provider, IPP, "Office")
    assert client.wait_for_total(2)
    assert not client.disappeared


def test_rediscovery_after_removal(session, provider, client):
    session.start()
    browse, first = discover(provider, HTTP, "GCXDNSKitTest")
    provider.fire_removed(browse, first)

    _, second = discover(provider, HTTP, "GCXDNSKitTest")

    assert client.wait_for_total(3)
    assert [s.advertisement for s in client.discovered] == [first, second]


# --- Failures ---


def test_more_coming_does_not_gate_events(session, provider, client):
    session.start()
    browse = provider.browse_for("_ipp._tcp")

    advertisements = [
        provider.fire_found(browse, name, more_coming=True)
        for name in ("Office", "Lobby", "Lab")
    ]
    for advertisement in advertisements:
        provider.fire_resolved(provider.resolve_for(advertisement))

    assert client.wait_for_total(3)
    assert [s.advertisement for s in client.discovered] == advertisements
    assert all(s.configuration is IPP for s in client.discovered)


def test_resolve_failure_is_reported(session, provider, client):
    session.start()
    browse = provider.browse_for("_http._tcp")
    advertisement = provider.fire_found(browse, "GCXDNSKitTest")

    provider.fire_resolve_failed(provider.resolve_for(advertisement))

    assert client.wait_for_total(1)
    assert client.failed == [(HTTP, DiscoveryError.RESOLVING_FAILURE)]
    assert not client.discovered


def test_resolve_start_error_is_reported(session, provider, client):
    session.start()
    provider.fail_resolve = True

    provider.fire_found(provider.browse_for("_http._tcp"), "GCXDNSKitTest")

    assert client.wait_for_total(1)
    assert client.failed == [(HTTP, DiscoveryError.RESOLVING_FAILURE)]


def test_browse_failure_callback_is_reported(session, provider, client):
    session.start()

    provider.fire_browse_failed(provider.browse_for("_ipp._tcp"))

    assert client.wait_for_total(1)
    assert client.failed == [(IPP, DiscoveryError.BROWSING_FAILURE)]


def test_browse_start_error_only_affects_its_configuration(client, observer_loop):
    provider = FakeDnssdProvider(fail_browse_for=["_http._tcp"])
    session = DiscoverySession([HTTP, IPP], client, provider=provider)
    try:
        session.start()

        assert client.wait_for_total(1)
        assert client.failed == [(HTTP, DiscoveryError.BROWSING_FAILURE)]
        assert [b.service_type for b in provider.active_browses()] == [
            "_ipp._tcp"
        ]

        discover(provider, IPP, "Office")
        assert client.wait_for_total(2)
    finally:
        session.stop()


def test_client_exception_does_not_stop_discovery(provider, observer_loop):
    seen = []
    done = threading.Event()

    def on_discover(service):
        seen.append(service.advertisement.name)
        if service.advertisement.name == "Broken":
            raise RuntimeError("observer bug")
        done.set()

    session = DiscoverySession([IPP], on_discover=on_discover, provider=provider)
    try:
        session.start()
        discover(provider, IPP, "Broken")
        discover(provider, IPP, "Office")

        assert done.wait(timeout=5.0)
        assert seen == ["Broken", "Office"]
        assert session.is_running
    finally:
        session.stop()


def test_error_watcher_is_passed_to_notifications(provider, observer_loop):
    watcher = ThreadWatcher()
    done = threading.Event()

    def on_discover(service):
        if service.advertisement.name == "Broken":
            raise RuntimeError("observer bug")
        done.set()

    session = DiscoverySession(
        [IPP], on_discover=on_discover, provider=provider, error_watcher=watcher
    )
    assert session.error_watcher is watcher
    try:
        session.start()
        discover(provider, IPP, "Broken")
        discover(provider, IPP, "Office")

        assert done.wait(timeout=5.0)
        with pytest.raises(RuntimeError, match="observer bug"):
            watcher.check_for_exception()
    finally:
        session.stop()


# --- Independence of configurations ---


def test_configurations_track_independently(provider, client, observer_loop):
    printers = DiscoveryConfiguration("_http._tcp", "Printer")
    scanners = DiscoveryConfiguration("_http._tcp", "Scanner")
    session = DiscoverySession([printers, scanners], client, provider=provider)
    try:
        session.start()
        printer_browse, scanner_browse = provider.browses

        printer = provider.fire_found(printer_browse, "Printer-1")
        provider.fire_found(printer_browse, "Scanner-1")
        scanner = provider.fire_found(scanner_browse, "Scanner-1")

        assert len(provider.resolves) == 2
        provider.fire_resolved(provider.resolve_for(printer))
        provider.fire_resolved(provider.resolve_for(scanner))
        provider.fire_removed(printer_browse, printer)

        assert client.wait_for_total(3)
        assert [
            (s.configuration, s.advertisement) for s in client.discovered
        ] == [(printers, printer), (scanners, scanner)]
        assert [
            (s.configuration, s.advertisement) for s in client.disappeared
        ] == [(printers, printer)]
        assert not provider.resolve_for(scanner).stopped
    finally:
        session.stop()


# --- No delivery after stop ---


def test_no_events_after_stop(session, provider, client):
    session.start()
    old_browse = provider.browse_for("_http._tcp")
    advertisement = provider.fire_found(old_browse, "GCXDNSKitTest")
    old_resolve = provider.resolve_for(advertisement)

    session.stop()

    # Late callbacks from the stopped run.
    provider.fire_resolved(old_resolve)
    provider.fire_found(old_browse, "GCXDNSKitTestLate")
    provider.fire_removed(old_browse, advertisement)
    provider.fire_browse_failed(old_browse)

    session.start()
    provider.fire_browse_failed(old_browse)
    discover(provider, IPP, "Office")

    assert client.wait_for_total(1)
    assert [s.advertisement.name for s in client.discovered] == ["Office"]
    assert not client.failed
    assert not client.disappeared


def test_stop_drops_undelivered_notifications(provider, observer_loop):
    release = threading.Event()
    entered = threading.Event()
    seen = []

    async def on_discover(service):
        seen.append(service.advertisement.name)
        entered.set()
        await observer_loop.run_in_executor(None, release.wait)

    session = DiscoverySession([IPP], on_discover=on_discover, provider=provider)
    session.start()
    discover(provider, IPP, "First")
    assert entered.wait(timeout=5.0)
    discover(provider, IPP, "Second")

    session.stop()
    release.set()

    marker = RecordingClient()
    marker_session = DiscoverySession([IPP], marker, provider=provider)
    try:
        marker_session.start()
        discover(provider, IPP, "Marker")
        assert marker.wait_for_total(1)
    finally:
        marker_session.stop()

    assert seen == ["First"]


# --- Threading and re-entrancy ---


class InlineResolvingProvider(FakeDnssdProvider):
    """Resolves synchronously from inside `resolve()`."""

    __test__ = False

    def resolve(self, advertisement, timeout, client):
        handle = super().resolve(advertisement, timeout, client)
        self.fire_resolved(handle)
        return handle


def test_reentrant_provider_callbacks_are_queued(client, observer_loop):
    provider = InlineResolvingProvider()
    session = DiscoverySession([IPP], client, provider=provider)
    try:
        session.start()
        advertisement = provider.fire_found(
            provider.browse_for("_ipp._tcp"), "Office"
        )

        assert client.wait_for_total(1)
        assert client.discovered[0].advertisement is advertisement
    finally:
        session.stop()


def test_callbacks_from_many_threads(session, provider, client):
    session.start()
    browse = provider.browse_for("_ipp._tcp")
    names = [f"Office-{i}" for i in range(20)]

    def worker(name):
        advertisement = provider.fire_found(browse, name)
        provider.fire_resolved(provider.resolve_for(advertisement))

    threads = [threading.Thread(target=worker, args=(n,)) for n in names]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert client.wait_for_total(len(names))
    assert sorted(s.advertisement.name for s in client.discovered) == sorted(
        names
    )


# --- Lifecycle helpers ---


def test_context_manager_starts_and_stops(provider, client, observer_loop):
    with DiscoverySession([IPP], client, provider=provider) as session:
        assert session.is_running
    assert not session.is_running
    assert all(b.stopped for b in provider.browses)
    # Injected providers belong to the caller.
    assert not provider.closed


def test_close_closes_owned_provider(client, observer_loop, mocker):
    owned = FakeDnssdProvider()
    mocker.patch(
        "dnssdkit.discovery.dnssd.zeroconf_provider.ZeroconfProvider",
        return_value=owned,
    )
    session = DiscoverySession([IPP], client)

    session.start()
    assert len(owned.active_browses()) == 1
    session.close()

    assert owned.closed
    assert not session.is_running
