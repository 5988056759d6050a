import threading

from dnssdkit.threading.atomic import Atomic


def test_atomic_set_get_basic() -> None:
    atomic_int = Atomic[int](10)
    assert atomic_int.get() == 10

    atomic_int.set(20)
    assert atomic_int.get() == 20


def test_atomic_holds_none() -> None:
    atomic_value = Atomic[str | None](None)
    assert atomic_value.get() is None

    atomic_value.set("_http._tcp")
    assert atomic_value.get() == "_http._tcp"


def test_concurrent_readers_see_a_written_value() -> None:
    """Readers racing a writer only ever observe values that were set."""
    generation = Atomic[int](-1)
    written = set(range(200)) | {-1}
    observed: list[int] = []

    def writer() -> None:
        for value in range(200):
            generation.set(value)

    def reader() -> None:
        for _ in range(200):
            observed.append(generation.get())

    threads = [threading.Thread(target=writer)] + [
        threading.Thread(target=reader) for _ in range(4)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert set(observed) <= written
    assert generation.get() == 199
