import asyncio
from typing import Iterator

import pytest

from dnssdkit.threading.aio import global_event_loop
from dnssdkit.threading.thread_watcher import ThreadWatcher


@pytest.fixture(autouse=True)
def clean_global_loop() -> Iterator[None]:
    global_event_loop.clear_dnssdkit_event_loop()
    yield
    global_event_loop.clear_dnssdkit_event_loop()


def test_get_before_set_asserts() -> None:
    assert not global_event_loop.is_global_event_loop_set()
    with pytest.raises(AssertionError):
        global_event_loop.get_global_event_loop()


def test_set_and_clear_external_loop() -> None:
    loop = asyncio.new_event_loop()
    try:
        global_event_loop.set_dnssdkit_event_loop(loop)
        assert global_event_loop.is_global_event_loop_set()
        assert global_event_loop.get_global_event_loop() is loop

        global_event_loop.clear_dnssdkit_event_loop()
        assert not global_event_loop.is_global_event_loop_set()
        assert not loop.is_closed()
    finally:
        loop.close()


def test_set_twice_raises() -> None:
    loop = asyncio.new_event_loop()
    try:
        global_event_loop.set_dnssdkit_event_loop(loop)
        with pytest.raises(RuntimeError, match="Only one Global Event Loop"):
            global_event_loop.set_dnssdkit_event_loop(loop)
    finally:
        global_event_loop.clear_dnssdkit_event_loop()
        loop.close()


def test_create_from_watcher_runs_loop_on_thread() -> None:
    watcher = ThreadWatcher()
    global_event_loop.create_dnssdkit_event_loop_from_watcher(watcher)

    loop = global_event_loop.get_global_event_loop()
    assert loop.is_running()

    with pytest.raises(RuntimeError):
        global_event_loop.create_dnssdkit_event_loop_from_watcher(watcher)

    global_event_loop.clear_dnssdkit_event_loop()
    assert not global_event_loop.is_global_event_loop_set()
    watcher.check_for_exception()


def test_set_to_current_thread_creates_loop() -> None:
    global_event_loop.set_dnssdkit_event_loop_to_current_thread()
    loop = global_event_loop.get_global_event_loop()
    assert isinstance(loop, asyncio.AbstractEventLoop)
    global_event_loop.clear_dnssdkit_event_loop()
    asyncio.set_event_loop(None)
    loop.close()
