import asyncio
import threading

import pytest

from dnssdkit.threading.aio.event_loop_factory import EventLoopFactory
from dnssdkit.threading.thread_watcher import ThreadWatcher


def stop_loop(loop: asyncio.AbstractEventLoop) -> None:
    loop.call_soon_threadsafe(loop.stop)


def test_requires_watcher():
    with pytest.raises(ValueError):
        EventLoopFactory(None)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        EventLoopFactory(object())  # type: ignore[arg-type]


def test_loop_runs_on_named_thread():
    loop = EventLoopFactory(ThreadWatcher()).start_asyncio_loop()
    try:
        assert loop.is_running()

        async def thread_name() -> str:
            return threading.current_thread().name

        name = asyncio.run_coroutine_threadsafe(thread_name(), loop).result(
            timeout=5.0
        )
        assert name == "dnssdkit-event-loop"
    finally:
        stop_loop(loop)


def test_unhandled_task_exception_reaches_watcher(mocker):
    watcher = ThreadWatcher()
    reported = threading.Event()
    mocker.patch.object(
        watcher, "on_exception_seen", side_effect=lambda e: reported.set()
    )
    loop = EventLoopFactory(watcher).start_asyncio_loop()
    error = RuntimeError("callback failed")

    def raise_error() -> None:
        raise error

    try:
        loop.call_soon_threadsafe(raise_error)
        assert reported.wait(timeout=5.0)
        watcher.on_exception_seen.assert_called_once_with(error)
    finally:
        stop_loop(loop)
