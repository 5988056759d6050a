import asyncio
import threading

import pytest

from dnssdkit.discovery.discovered_service import DiscoveredService
from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.discovery_error import DiscoveryError
from dnssdkit.discovery.event_sink import EventSink
from dnssdkit.discovery.service_advertisement import ServiceAdvertisement
from dnssdkit.test.recording_client import RecordingClient
from dnssdkit.threading.aio.global_event_loop import (
    get_global_event_loop,
    is_global_event_loop_set,
)
from dnssdkit.threading.thread_watcher import ThreadWatcher

MODULE = "dnssdkit.discovery.event_sink"
CONFIGURATION = DiscoveryConfiguration("_http._tcp", "GCXDNSKitTest")


def make_service(name: str = "GCXDNSKitTest") -> DiscoveredService:
    return DiscoveredService(
        CONFIGURATION, ServiceAdvertisement(name, "_http._tcp", "local.")
    )


def test_client_and_handlers_are_exclusive():
    with pytest.raises(ValueError, match="not both"):
        EventSink(RecordingClient(), on_discover=lambda s: None)


def test_client_must_be_event_sink_client():
    with pytest.raises(TypeError, match="EventSink.Client"):
        EventSink(object())  # type: ignore[arg-type]


def test_client_receives_each_kind(observer_loop):
    client = RecordingClient()
    sink = EventSink(client, event_loop=observer_loop)
    sink.open(1)

    found = make_service()
    sink.emit_discovered(1, found)
    sink.emit_failed(1, CONFIGURATION, DiscoveryError.RESOLVING_FAILURE)
    sink.emit_disappeared(1, found)

    assert client.wait_for_total(3)
    assert client.discovered == [found]
    assert client.failed == [(CONFIGURATION, DiscoveryError.RESOLVING_FAILURE)]
    assert client.disappeared == [found]


def test_handlers_run_on_observer_loop_in_order(observer_loop):
    seen = []
    loops = []
    done = threading.Event()

    def on_discover(service):
        loops.append(asyncio.get_running_loop())
        seen.append(("discover", service.advertisement.name))

    async def on_disappear(service):
        await asyncio.sleep(0.01)
        seen.append(("disappear", service.advertisement.name))
        if len(seen) == 4:
            done.set()

    sink = EventSink(
        on_discover=on_discover,
        on_disappear=on_disappear,
        event_loop=observer_loop,
    )
    sink.open(7)
    sink.emit_discovered(7, make_service("a"))
    sink.emit_disappeared(7, make_service("a"))
    sink.emit_discovered(7, make_service("b"))
    sink.emit_disappeared(7, make_service("b"))

    assert done.wait(timeout=5.0)
    # Coroutine handlers finish before the next notification starts.
    assert seen == [
        ("discover", "a"),
        ("disappear", "a"),
        ("discover", "b"),
        ("disappear", "b"),
    ]
    assert all(loop is observer_loop for loop in loops)


def test_missing_handler_is_skipped(observer_loop):
    done = threading.Event()
    sink = EventSink(on_fail=lambda c, e: done.set(), event_loop=observer_loop)
    sink.open(1)

    sink.emit_discovered(1, make_service())
    sink.emit_failed(1, CONFIGURATION, DiscoveryError.BROWSING_FAILURE)

    assert done.wait(timeout=5.0)


def test_emit_before_open_is_dropped(observer_loop):
    client = RecordingClient()
    sink = EventSink(client, event_loop=observer_loop)

    sink.emit_discovered(1, make_service("early"))
    sink.open(1)
    sink.emit_discovered(1, make_service("late"))

    assert client.wait_for_total(1)
    assert [s.advertisement.name for s in client.discovered] == ["late"]


def test_stale_generation_is_dropped(observer_loop):
    client = RecordingClient()
    sink = EventSink(client, event_loop=observer_loop)
    sink.open(2)

    sink.emit_discovered(1, make_service("stale"))
    sink.emit_discovered(2, make_service("current"))

    assert client.wait_for_total(1)
    assert [s.advertisement.name for s in client.discovered] == ["current"]


def test_seal_drops_queued_notifications(observer_loop):
    release = threading.Event()
    entered = threading.Event()
    delivered = []

    async def slow_discover(service):
        delivered.append(service.advertisement.name)
        entered.set()
        await asyncio.get_running_loop().run_in_executor(None, release.wait)

    sink = EventSink(on_discover=slow_discover, event_loop=observer_loop)
    sink.open(1)
    sink.emit_discovered(1, make_service("first"))
    sink.emit_discovered(1, make_service("second"))

    assert entered.wait(timeout=5.0)
    # "first" is blocked in its callback; "second" is still queued.
    sink.seal()
    release.set()

    marker = RecordingClient()
    marker_sink = EventSink(marker, event_loop=observer_loop)
    marker_sink.open(1)
    marker_sink.emit_discovered(1, make_service("marker"))
    assert marker.wait_for_total(1)

    # The marker round-trip gives the first drain a chance to continue.
    assert delivered == ["first"]


def test_callback_exception_goes_to_watcher(observer_loop, mocker):
    watcher = ThreadWatcher()
    seen = mocker.spy(watcher, "on_exception_seen")
    done = threading.Event()
    error = RuntimeError("boom")

    def on_discover(service):
        if service.advertisement.name == "bad":
            raise error
        done.set()

    sink = EventSink(
        on_discover=on_discover, event_loop=observer_loop, error_watcher=watcher
    )
    sink.open(1)
    sink.emit_discovered(1, make_service("bad"))
    sink.emit_discovered(1, make_service("good"))

    assert done.wait(timeout=5.0)
    seen.assert_called_once_with(error)
    with pytest.raises(RuntimeError, match="boom"):
        watcher.check_for_exception()


def test_open_creates_global_loop_when_unset(clear_loop_fixture):
    client = RecordingClient()
    sink = EventSink(client)
    assert not is_global_event_loop_set()
    assert sink.error_watcher is None

    sink.open(1)

    assert is_global_event_loop_set()
    assert isinstance(sink.error_watcher, ThreadWatcher)
    sink.emit_discovered(1, make_service())
    assert client.wait_for_total(1)


def test_created_loop_watcher_records_callback_errors(clear_loop_fixture):
    error = RuntimeError("boom")
    done = threading.Event()

    def on_discover(service):
        if service.advertisement.name == "bad":
            raise error
        done.set()

    sink = EventSink(on_discover=on_discover)
    sink.open(1)
    sink.emit_discovered(1, make_service("bad"))
    sink.emit_discovered(1, make_service("good"))

    assert done.wait(timeout=5.0)
    with pytest.raises(RuntimeError, match="boom"):
        sink.error_watcher.check_for_exception()


def test_given_watcher_is_kept(clear_loop_fixture):
    watcher = ThreadWatcher()
    sink = EventSink(RecordingClient(), error_watcher=watcher)
    sink.open(1)
    assert sink.error_watcher is watcher


def test_open_uses_existing_global_loop(observer_loop):
    client = RecordingClient()
    sink = EventSink(client)
    sink.open(1)

    assert get_global_event_loop() is observer_loop
    assert sink.error_watcher is None
    sink.emit_discovered(1, make_service())
    assert client.wait_for_total(1)


def test_open_tolerates_concurrently_created_loop(mocker, observer_loop):
    mocker.patch(
        f"{MODULE}.is_global_event_loop_set", side_effect=[False, True]
    )
    mocker.patch(
        f"{MODULE}.create_dnssdkit_event_loop_from_watcher",
        side_effect=RuntimeError("Only one Global Event Loop may be set"),
    )
    client = RecordingClient()
    sink = EventSink(client)

    sink.open(1)

    assert sink.error_watcher is None
    sink.emit_discovered(1, make_service())
    assert client.wait_for_total(1)


def test_open_raises_when_loop_creation_fails(mocker, clear_loop_fixture):
    mocker.patch(
        f"{MODULE}.create_dnssdkit_event_loop_from_watcher",
        side_effect=RuntimeError("cannot start loop"),
    )
    sink = EventSink(RecordingClient())

    with pytest.raises(RuntimeError, match="cannot start loop"):
        sink.open(1)
    assert not is_global_event_loop_set()
