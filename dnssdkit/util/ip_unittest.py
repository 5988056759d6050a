import socket

from dnssdkit.util import ip as ip_util


def create_mock_address(mocker, family, address):
    mock_addr = mocker.MagicMock()
    mock_addr.family = family
    mock_addr.address = address
    return mock_addr


def create_mock_stats(mocker, isup):
    mock_stats = mocker.MagicMock()
    mock_stats.isup = isup
    return mock_stats


class TestGetAdvertisedAddresses:

    def patch_interfaces(self, mocker, addrs, stats=None):
        mocker.patch("psutil.net_if_addrs", return_value=addrs)
        mocker.patch("psutil.net_if_stats", return_value=stats or {})

    def test_no_interfaces(self, mocker):
        self.patch_interfaces(mocker, {})

        assert ip_util.get_advertised_addresses() == []

    def test_loopback_is_skipped_when_routable_exists(self, mocker):
        self.patch_interfaces(
            mocker,
            {
                "lo": [
                    create_mock_address(mocker, socket.AF_INET, "127.0.0.1")
                ],
                "eth0": [
                    create_mock_address(mocker, socket.AF_INET6, "fe80::1"),
                    create_mock_address(mocker, socket.AF_INET, "192.168.1.20"),
                ],
            },
        )

        assert ip_util.get_advertised_addresses() == [
            socket.inet_aton("192.168.1.20")
        ]

    def test_loopback_only_host_advertises_loopback(self, mocker):
        self.patch_interfaces(
            mocker,
            {"lo": [create_mock_address(mocker, socket.AF_INET, "127.0.0.1")]},
        )

        assert ip_util.get_advertised_addresses() == [
            socket.inet_aton("127.0.0.1")
        ]

    def test_down_interfaces_are_skipped(self, mocker):
        self.patch_interfaces(
            mocker,
            {
                "eth0": [
                    create_mock_address(mocker, socket.AF_INET, "10.0.0.1")
                ],
                "wlan0": [
                    create_mock_address(mocker, socket.AF_INET, "192.168.1.20")
                ],
            },
            stats={
                "eth0": create_mock_stats(mocker, isup=False),
                "wlan0": create_mock_stats(mocker, isup=True),
            },
        )

        assert ip_util.get_advertised_addresses() == [
            socket.inet_aton("192.168.1.20")
        ]
