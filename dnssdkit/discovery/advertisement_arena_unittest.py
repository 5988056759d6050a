from dnssdkit.discovery.advertisement_arena import AdvertisementArena
from dnssdkit.discovery.service_advertisement import ServiceAdvertisement


def make_advertisement(name: str = "Printer") -> ServiceAdvertisement:
    return ServiceAdvertisement(
        name=name, service_type="_ipp._tcp", domain="local."
    )


def test_admit_is_idempotent_per_object():
    arena = AdvertisementArena()
    advertisement = make_advertisement()

    first = arena.admit(advertisement)
    assert arena.admit(advertisement) == first
    assert arena.id_of(advertisement) == first
    assert arena.get(first).advertisement is advertisement


def test_lookup_uses_identity_not_equality():
    arena = AdvertisementArena()
    a = make_advertisement("Printer")
    b = make_advertisement("Printer")

    id_a = arena.admit(a)
    id_b = arena.admit(b)

    assert id_a != id_b
    assert arena.get(id_a).advertisement is a
    assert arena.get(id_b).advertisement is b


def test_unknown_advertisement_has_no_id():
    arena = AdvertisementArena()
    assert arena.id_of(make_advertisement()) is None


def test_release_removes_entry():
    arena = AdvertisementArena()
    advertisement = make_advertisement()
    advertisement_id = arena.admit(advertisement)

    entry = arena.release(advertisement_id)

    assert entry is not None and entry.advertisement is advertisement
    assert arena.get(advertisement_id) is None
    assert arena.id_of(advertisement) is None
    assert arena.release(advertisement_id) is None


def test_ids_are_never_reused():
    arena = AdvertisementArena()
    advertisement = make_advertisement()
    old_id = arena.admit(advertisement)
    arena.release(old_id)

    new_id = arena.admit(advertisement)

    assert new_id != old_id
    assert arena.get(old_id) is None

    arena.clear()
    assert arena.admit(advertisement) not in (old_id, new_id)


def test_clear_drops_every_entry():
    arena = AdvertisementArena()
    advertisements = [make_advertisement(str(i)) for i in range(3)]
    ids = [arena.admit(a) for a in advertisements]

    arena.clear()

    assert all(arena.get(i) is None for i in ids)
    assert all(arena.id_of(a) is None for a in advertisements)


def test_entry_holds_resolve_handle():
    arena = AdvertisementArena()
    advertisement_id = arena.admit(make_advertisement())
    entry = arena.get(advertisement_id)
    assert entry.resolve_handle is None

    handle = object()
    entry.resolve_handle = handle
    assert arena.get(advertisement_id).resolve_handle is handle
