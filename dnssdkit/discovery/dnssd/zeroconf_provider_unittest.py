import asyncio
import concurrent.futures
from unittest.mock import AsyncMock, MagicMock

import pytest
from zeroconf.asyncio import AsyncServiceBrowser, AsyncZeroconf

from dnssdkit.discovery.dnssd.dnssd_provider import DnssdProvider
from dnssdkit.discovery.dnssd.zeroconf_provider import (
    ZeroconfProvider,
    split_service_type,
)
from dnssdkit.discovery.service_advertisement import ServiceAdvertisement
from dnssdkit.threading.aio.aio_utils import run_on_event_loop

MODULE = "dnssdkit.discovery.dnssd.zeroconf_provider"


async def _noop() -> None:
    pass


def flush(loop: asyncio.AbstractEventLoop) -> None:
    """Waits until work scheduled on `loop` before this call has run."""
    run_on_event_loop(_noop, loop).result(timeout=5.0)


@pytest.fixture
def mock_zc(observer_loop):
    zc = AsyncMock(spec=AsyncZeroconf)
    zc.zeroconf = MagicMock()
    zc.zeroconf.loop = observer_loop
    return zc


@pytest.fixture
def mock_browser_class(mocker):
    return mocker.patch(
        f"{MODULE}.AsyncServiceBrowser",
        return_value=AsyncMock(spec=AsyncServiceBrowser),
    )


@pytest.fixture
def client(mocker):
    return mocker.MagicMock(spec=DnssdProvider.Client)


# --- split_service_type ---


@pytest.mark.parametrize(
    "service_type, domain, expected",
    [
        ("_http._tcp", "", ("_http._tcp", "local.")),
        ("_http._tcp.local.", "", ("_http._tcp", "local.")),
        ("_http._tcp.local", "", ("_http._tcp", "local.")),
        ("_http", "", ("_http._tcp", "local.")),
        ("_dns-sd._udp", "local", ("_dns-sd._udp", "local.")),
        ("_ipp._tcp", "example.com.", ("_ipp._tcp", "example.com.")),
    ],
)
def test_split_service_type(service_type, domain, expected):
    assert split_service_type(service_type, domain) == expected


def test_split_service_type_requires_underscore():
    with pytest.raises(ValueError, match="must start with '_'"):
        split_service_type("http._tcp")


# --- browse ---


def test_browse_starts_async_service_browser(
    mock_zc, mock_browser_class, client, observer_loop
):
    provider = ZeroconfProvider(zc_instance=mock_zc)

    handle = provider.browse("_http._tcp", "", client)
    flush(observer_loop)

    mock_browser_class.assert_called_once_with(
        mock_zc.zeroconf, ["_http._tcp.local."], listener=handle
    )
    client._on_browse_failed.assert_not_called()


def test_browse_error_is_reported(mocker, mock_zc, client, observer_loop):
    mocker.patch(
        f"{MODULE}.AsyncServiceBrowser", side_effect=OSError("no multicast")
    )
    provider = ZeroconfProvider(zc_instance=mock_zc)

    handle = provider.browse("_http._tcp", "", client)
    flush(observer_loop)

    client._on_browse_failed.assert_called_once()
    failed_handle, error_info = client._on_browse_failed.call_args.args
    assert failed_handle is handle
    assert "no multicast" in error_info["error"]


def test_invalid_service_type_raises(mock_zc, client):
    provider = ZeroconfProvider(zc_instance=mock_zc)
    with pytest.raises(ValueError):
        provider.browse("http", "", client)


def test_stop_browse_cancels_browser(
    mock_zc, mock_browser_class, client, observer_loop
):
    provider = ZeroconfProvider(zc_instance=mock_zc)
    handle = provider.browse("_http._tcp", "", client)
    flush(observer_loop)

    provider.stop_browse(handle)
    flush(observer_loop)

    mock_browser_class.return_value.async_cancel.assert_awaited_once()


def test_stop_browse_before_start_never_browses(
    mock_zc, mock_browser_class, client, observer_loop
):
    provider = ZeroconfProvider(zc_instance=mock_zc)
    handle = provider.browse("_http._tcp", "", client)
    provider.stop_browse(handle)
    flush(observer_loop)

    # Either the browse never started or it was cancelled right away.
    browser = mock_browser_class.return_value
    assert (
        not mock_browser_class.called or browser.async_cancel.await_count == 1
    )


def test_stop_browse_rejects_foreign_handle(mock_zc):
    provider = ZeroconfProvider(zc_instance=mock_zc)
    with pytest.raises(TypeError):
        provider.stop_browse(object())


# --- ServiceListener callbacks ---


def test_listener_reports_found_and_removed(
    mock_zc, mock_browser_class, client
):
    provider = ZeroconfProvider(zc_instance=mock_zc)
    handle = provider.browse("_http._tcp", "", client)
    zc = mock_zc.zeroconf
    full_name = "GCXDNSKitTest._http._tcp.local."

    handle.add_service(zc, "_http._tcp.local.", full_name)
    handle.add_service(zc, "_http._tcp.local.", full_name)

    client._on_found.assert_called_once()
    found_handle, advertisement, more_coming = client._on_found.call_args.args
    assert found_handle is handle
    assert advertisement.name == "GCXDNSKitTest"
    assert advertisement.service_type == "_http._tcp"
    assert advertisement.domain == "local."
    assert more_coming is False

    handle.update_service(zc, "_http._tcp.local.", full_name)
    handle.remove_service(zc, "_http._tcp.local.", full_name)
    handle.remove_service(zc, "_http._tcp.local.", full_name)

    client._on_removed.assert_called_once_with(handle, advertisement, False)


def test_listener_ignores_other_types(mock_zc, mock_browser_class, client):
    provider = ZeroconfProvider(zc_instance=mock_zc)
    handle = provider.browse("_http._tcp", "", client)

    handle.add_service(
        mock_zc.zeroconf, "_ipp._tcp.local.", "Printer._ipp._tcp.local."
    )

    client._on_found.assert_not_called()


def test_listener_is_silent_after_stop(mock_zc, mock_browser_class, client):
    provider = ZeroconfProvider(zc_instance=mock_zc)
    handle = provider.browse("_http._tcp", "", client)
    zc = mock_zc.zeroconf
    name = "Office._http._tcp.local."
    handle.add_service(zc, "_http._tcp.local.", name)

    provider.stop_browse(handle)
    handle.add_service(zc, "_http._tcp.local.", "Other._http._tcp.local.")
    handle.remove_service(zc, "_http._tcp.local.", name)

    client._on_found.assert_called_once()
    client._on_removed.assert_not_called()


# --- resolve ---


def make_advertisement() -> ServiceAdvertisement:
    return ServiceAdvertisement("Printer", "_ipp._tcp", "local.")


@pytest.fixture
def mock_info(mocker):
    info_class = mocker.patch(f"{MODULE}.AsyncServiceInfo")
    info = info_class.return_value
    info.async_request = AsyncMock(return_value=True)
    info.server = "printer.local."
    info.port = 631
    info.addresses = [b"\xc0\xa8\x01\x14"]
    info.parsed_addresses.return_value = ["192.168.1.20"]
    info.properties = {b"rp": b"ipp/print"}
    return info_class


def test_resolve_populates_endpoint(mock_zc, mock_info, client):
    provider = ZeroconfProvider(zc_instance=mock_zc)
    advertisement = make_advertisement()

    handle = provider.resolve(advertisement, 2.5, client)
    handle.future.result(timeout=5.0)

    mock_info.assert_called_once_with(
        "_ipp._tcp.local.", "Printer._ipp._tcp.local."
    )
    mock_info.return_value.async_request.assert_awaited_once_with(
        mock_zc.zeroconf, 2500
    )
    client._on_resolved.assert_called_once_with(advertisement)
    endpoint = advertisement.endpoint
    assert endpoint.host == "printer.local."
    assert endpoint.port == 631
    assert endpoint.addresses == ["192.168.1.20"]
    assert endpoint.properties == {b"rp": b"ipp/print"}


def test_unanswered_resolve_is_reported(mock_zc, mock_info, client):
    mock_info.return_value.async_request = AsyncMock(return_value=False)
    provider = ZeroconfProvider(zc_instance=mock_zc)
    advertisement = make_advertisement()

    provider.resolve(advertisement, 1.0, client).future.result(timeout=5.0)

    client._on_resolve_failed.assert_called_once()
    assert client._on_resolve_failed.call_args.args[0] is advertisement
    client._on_resolved.assert_not_called()
    assert advertisement.endpoint is None


def test_resolve_error_is_reported(mock_zc, mock_info, client):
    mock_info.return_value.async_request = AsyncMock(
        side_effect=RuntimeError("socket closed")
    )
    provider = ZeroconfProvider(zc_instance=mock_zc)
    advertisement = make_advertisement()

    provider.resolve(advertisement, 1.0, client).future.result(timeout=5.0)

    failed, error_info = client._on_resolve_failed.call_args.args
    assert failed is advertisement
    assert "socket closed" in error_info["error"]


def test_stop_resolve_cancels_request(mock_zc, mock_info, client):
    async def never_answers(*args):
        await asyncio.sleep(60)

    mock_info.return_value.async_request = AsyncMock(side_effect=never_answers)
    provider = ZeroconfProvider(zc_instance=mock_zc)

    handle = provider.resolve(make_advertisement(), 60.0, client)
    provider.stop_resolve(handle)

    with pytest.raises(concurrent.futures.CancelledError):
        handle.future.result(timeout=5.0)
    assert handle.future.cancelled()
    client._on_resolved.assert_not_called()
    client._on_resolve_failed.assert_not_called()


def test_stop_resolve_rejects_foreign_handle(mock_zc):
    provider = ZeroconfProvider(zc_instance=mock_zc)
    with pytest.raises(TypeError):
        provider.stop_resolve(object())


# --- Ownership of the AsyncZeroconf instance ---


def test_owned_zeroconf_is_created_lazily_and_closed(
    mocker, mock_zc, mock_browser_class, client, observer_loop
):
    zc_class = mocker.patch(f"{MODULE}.AsyncZeroconf", return_value=mock_zc)
    provider = ZeroconfProvider()
    zc_class.assert_not_called()

    provider.browse("_http._tcp", "", client)
    zc_class.assert_called_once_with()

    provider.close()
    flush(observer_loop)

    mock_zc.async_close.assert_awaited_once()


def test_shared_zeroconf_is_not_closed(mock_zc, observer_loop):
    provider = ZeroconfProvider(zc_instance=mock_zc)

    provider.close()
    flush(observer_loop)

    mock_zc.async_close.assert_not_called()


def test_close_without_use_does_nothing(mocker):
    zc_class = mocker.patch(f"{MODULE}.AsyncZeroconf")
    ZeroconfProvider().close()
    zc_class.assert_not_called()
