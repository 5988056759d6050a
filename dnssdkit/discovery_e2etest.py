import asyncio
import uuid

import pytest
import pytest_asyncio
from zeroconf import IPVersion
from zeroconf.asyncio import AsyncZeroconf

from dnssdkit.discovery.discovery_configuration import DiscoveryConfiguration
from dnssdkit.discovery.discovery_session import DiscoverySession
from dnssdkit.discovery.dnssd.zeroconf_provider import ZeroconfProvider
from dnssdkit.test.recording_client import RecordingClient
from dnssdkit.test.service_publisher import ServicePublisher

DISCOVERY_TIMEOUT = 15.0


@pytest_asyncio.fixture
async def shared_zc():
    zc = AsyncZeroconf(ip_version=IPVersion.V4Only)
    yield zc
    await zc.async_close()


def unique_suffix() -> str:
    return uuid.uuid4().hex[:8]


async def wait_for_total(client: RecordingClient, count: int) -> bool:
    # The publisher and zeroconf share this test's loop; block elsewhere.
    return await asyncio.to_thread(
        client.wait_for_total, count, DISCOVERY_TIMEOUT
    )


@pytest.mark.asyncio
async def test_published_service_is_discovered_once(observer_loop, shared_zc):
    suffix = unique_suffix()
    service_type = f"_e2e-{suffix}._tcp"
    configuration = DiscoveryConfiguration(service_type, "GCXDNSKitTest")
    client = RecordingClient()
    session = DiscoverySession(
        [configuration], client, provider=ZeroconfProvider(shared_zc)
    )
    publisher = ServicePublisher(
        "GCXDNSKitTest",
        service_type,
        50001,
        properties={b"path": b"/status"},
    )

    try:
        session.start()
        await publisher.publish()

        assert await wait_for_total(client, 1), "Service was not discovered."
        # Give duplicate announcements time to arrive.
        await asyncio.sleep(1.0)

        assert len(client.discovered) == 1
        assert not client.failed
        service = client.discovered[0]
        assert service.configuration is configuration
        assert service.advertisement.name == "GCXDNSKitTest"
        endpoint = service.advertisement.endpoint
        assert endpoint is not None
        assert endpoint.port == 50001
        assert endpoint.properties.get(b"path") == b"/status"
    finally:
        session.stop()
        await publisher.close()


@pytest.mark.asyncio
async def test_only_matching_names_are_reported(observer_loop, shared_zc):
    service_type = f"_e2e-{unique_suffix()}._tcp"
    client = RecordingClient()
    session = DiscoverySession(
        [DiscoveryConfiguration(service_type, "GCXDNSKitTest")],
        client,
        provider=ZeroconfProvider(shared_zc),
    )
    other = ServicePublisher("XGCXDNSKitTest", service_type, 50002)
    matching = ServicePublisher("GCXDNSKitTestExtra", service_type, 50003)

    try:
        session.start()
        await other.publish()
        await matching.publish()

        assert await wait_for_total(client, 1)
        await asyncio.sleep(1.0)

        assert [s.advertisement.name for s in client.discovered] == [
            "GCXDNSKitTestExtra"
        ]
    finally:
        session.stop()
        await other.close()
        await matching.close()


@pytest.mark.asyncio
async def test_unpublished_service_disappears(observer_loop, shared_zc):
    service_type = f"_e2e-{unique_suffix()}._tcp"
    client = RecordingClient()
    session = DiscoverySession(
        [DiscoveryConfiguration(service_type)],
        client,
        provider=ZeroconfProvider(shared_zc),
    )
    publisher = ServicePublisher("Office", service_type, 50004)

    try:
        session.start()
        await publisher.publish()
        assert await wait_for_total(client, 1)

        await publisher.close()

        assert await wait_for_total(client, 2), "Removal was not reported."
        assert len(client.disappeared) == 1
        gone = client.disappeared[0]
        assert gone.advertisement is client.discovered[0].advertisement
    finally:
        session.stop()
        await publisher.close()
