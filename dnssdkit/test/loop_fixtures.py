import asyncio
from typing import Iterator

import pytest

from dnssdkit.threading.aio.global_event_loop import (
    clear_dnssdkit_event_loop,
    create_dnssdkit_event_loop_from_watcher,
    get_global_event_loop,
)
from dnssdkit.threading.thread_watcher import ThreadWatcher


@pytest.fixture
def observer_loop() -> Iterator[asyncio.AbstractEventLoop]:
    """Runs the dnssdkit global loop on its own thread for one test."""
    clear_dnssdkit_event_loop()
    create_dnssdkit_event_loop_from_watcher(ThreadWatcher())
    try:
        yield get_global_event_loop()
    finally:
        clear_dnssdkit_event_loop()


@pytest.fixture
def clear_loop_fixture() -> Iterator[None]:
    """Leaves the dnssdkit global loop unset before and after a test."""
    clear_dnssdkit_event_loop()
    try:
        yield
    finally:
        clear_dnssdkit_event_loop()
