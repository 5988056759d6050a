import threading

import pytest

from dnssdkit.threading.thread_watcher import ThreadWatcher
from dnssdkit.threading.throwing_thread import ThrowingThread


class CallbackError(Exception):
    pass


class TestThreadWatcher:

    def setup_method(self) -> None:
        self.watcher = ThreadWatcher()

    def test_check_for_exception_without_errors_is_noop(self) -> None:
        self.watcher.check_for_exception()

    def test_on_exception_seen_and_check(self) -> None:
        self.watcher.on_exception_seen(CallbackError("client raised"))

        with pytest.raises(CallbackError, match="client raised"):
            self.watcher.check_for_exception()

    def test_first_exception_is_raised(self) -> None:
        self.watcher.on_exception_seen(CallbackError("first"))
        self.watcher.on_exception_seen(ValueError("second"))

        with pytest.raises(CallbackError, match="first"):
            self.watcher.check_for_exception()

    def test_run_until_exception_unblocks(self) -> None:
        raised: list[Exception] = []

        def wait_for_error() -> None:
            try:
                self.watcher.run_until_exception()
            except CallbackError as e:
                raised.append(e)

        waiter = threading.Thread(target=wait_for_error)
        waiter.start()
        self.watcher.on_exception_seen(CallbackError("late"))
        waiter.join(timeout=2.0)

        assert not waiter.is_alive()
        assert len(raised) == 1

    def test_tracked_thread_reports_exception(self) -> None:
        def target() -> None:
            raise CallbackError("from thread")

        thread = self.watcher.create_tracked_thread(target, name="tracked")
        assert isinstance(thread, ThrowingThread)
        assert thread.daemon
        thread.start()
        thread.join(timeout=2.0)

        with pytest.raises(CallbackError, match="from thread"):
            self.watcher.check_for_exception()

    def test_tracked_thread_without_error(self) -> None:
        ran = threading.Event()
        thread = self.watcher.create_tracked_thread(ran.set)
        thread.start()
        thread.join(timeout=2.0)

        assert ran.is_set()
        self.watcher.check_for_exception()
