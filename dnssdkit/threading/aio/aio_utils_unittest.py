import asyncio
import threading
from typing import Any, Iterator

import pytest

from dnssdkit.threading.aio import aio_utils
from dnssdkit.threading.aio import global_event_loop
from dnssdkit.threading.thread_watcher import ThreadWatcher


async def simple_coro(value: Any) -> Any:
    return value


async def coro_check_current_loop() -> asyncio.AbstractEventLoop:
    return asyncio.get_running_loop()


@pytest.fixture
def managed_global_loop() -> Iterator[asyncio.AbstractEventLoop]:
    """Runs the dnssdkit global loop on its own thread for one test."""
    global_event_loop.clear_dnssdkit_event_loop()
    watcher = ThreadWatcher()
    global_event_loop.create_dnssdkit_event_loop_from_watcher(watcher)
    try:
        yield global_event_loop.get_global_event_loop()
    finally:
        global_event_loop.clear_dnssdkit_event_loop()


def test_get_running_loop_or_none_outside_loop() -> None:
    assert aio_utils.get_running_loop_or_none() is None


@pytest.mark.asyncio
async def test_get_running_loop_or_none_inside_loop() -> None:
    assert aio_utils.get_running_loop_or_none() is asyncio.get_running_loop()


@pytest.mark.asyncio
async def test_is_running_on_event_loop() -> None:
    current = asyncio.get_running_loop()
    other = asyncio.new_event_loop()
    try:
        assert aio_utils.is_running_on_event_loop()
        assert aio_utils.is_running_on_event_loop(current)
        assert not aio_utils.is_running_on_event_loop(other)
    finally:
        other.close()


def test_is_running_on_event_loop_outside_loop() -> None:
    assert not aio_utils.is_running_on_event_loop()


def test_run_on_event_loop_without_global_loop_raises() -> None:
    global_event_loop.clear_dnssdkit_event_loop()
    with pytest.raises(RuntimeError, match="global event loop not set"):
        aio_utils.run_on_event_loop(simple_coro, None, 1)


def test_run_on_global_event_loop(
    managed_global_loop: asyncio.AbstractEventLoop,
) -> None:
    future = aio_utils.run_on_event_loop(simple_coro, None, "value")
    assert future.result(timeout=2.0) == "value"

    loop_future = aio_utils.run_on_event_loop(coro_check_current_loop)
    assert loop_future.result(timeout=2.0) is managed_global_loop


def test_call_on_event_loop_preserves_order(
    managed_global_loop: asyncio.AbstractEventLoop,
) -> None:
    seen: list[int] = []
    done = threading.Event()

    for i in range(20):
        aio_utils.call_on_event_loop(seen.append, managed_global_loop, i)
    aio_utils.call_on_event_loop(done.set)

    assert done.wait(timeout=2.0)
    assert seen == list(range(20))
