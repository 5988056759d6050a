"""Threading utilities for dnssdkit: atomics, tracked threads, watchers."""

from dnssdkit.threading.atomic import Atomic
from dnssdkit.threading.error_watcher import ErrorWatcher
from dnssdkit.threading.thread_watcher import ThreadWatcher

__all__ = [
    "Atomic",
    "ErrorWatcher",
    "ThreadWatcher",
]
