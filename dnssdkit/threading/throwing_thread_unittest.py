import threading

from dnssdkit.threading.throwing_thread import ThrowingThread


def test_target_runs_with_arguments():
    seen = []
    errors = []

    thread = ThrowingThread(
        target=lambda a, b=0: seen.append(a + b),
        on_error_cb=errors.append,
        args=(1,),
        kwargs={"b": 2},
        name="adder",
    )
    thread.start()
    thread.join(timeout=5.0)

    assert seen == [3]
    assert errors == []
    assert thread.name == "adder"
    assert thread.daemon


def test_exception_is_reported_to_callback():
    reported = threading.Event()
    errors = []
    error = ValueError("browse thread died")

    def on_error(e):
        errors.append(e)
        reported.set()

    def target():
        raise error

    thread = ThrowingThread(target=target, on_error_cb=on_error, daemon=False)
    thread.start()
    thread.join(timeout=5.0)

    assert reported.is_set()
    assert errors == [error]
