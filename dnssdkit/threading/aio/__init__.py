"""AsyncIO utilities for dnssdkit threading."""

from dnssdkit.threading.aio.aio_utils import (
    call_on_event_loop,
    get_running_loop_or_none,
    is_running_on_event_loop,
    run_on_event_loop,
)
from dnssdkit.threading.aio.global_event_loop import (
    clear_dnssdkit_event_loop,
    create_dnssdkit_event_loop_from_watcher,
    set_dnssdkit_event_loop,
    set_dnssdkit_event_loop_to_current_thread,
)

__all__ = [
    "call_on_event_loop",
    "clear_dnssdkit_event_loop",
    "create_dnssdkit_event_loop_from_watcher",
    "get_running_loop_or_none",
    "is_running_on_event_loop",
    "run_on_event_loop",
    "set_dnssdkit_event_loop",
    "set_dnssdkit_event_loop_to_current_thread",
]
