import pytest

from dnssdkit.threading.error_watcher import ErrorWatcher
from dnssdkit.threading.thread_watcher import ThreadWatcher


class PollOnlyWatcher(ErrorWatcher):
    """Implements everything except `check_for_exception`."""

    __test__ = False

    def on_exception_seen(self, e: Exception) -> None:
        pass

    def run_until_exception(self) -> None:
        pass


def test_check_for_exception_is_required():
    with pytest.raises(TypeError):
        PollOnlyWatcher()  # type: ignore[abstract]


def test_thread_watcher_is_an_error_watcher():
    watcher: ErrorWatcher = ThreadWatcher()
    watcher.check_for_exception()

    watcher.on_exception_seen(ValueError("callback failed"))

    with pytest.raises(ValueError, match="callback failed"):
        watcher.check_for_exception()
