"""Publishes a real mDNS service for end-to-end discovery tests."""

import logging
from typing import Dict, Optional

from zeroconf import IPVersion, ServiceInfo
from zeroconf.asyncio import AsyncZeroconf

from dnssdkit.util.ip import get_advertised_addresses

_logger = logging.getLogger(__name__)


class ServicePublisher:
    """Registers one DNS-SD instance with its own `AsyncZeroconf`.

    Re-registering the same instance name right after unregistering it can
    raise `NonUniqueNameException`; tests use a fresh name per publisher.
    """

    __test__ = False

    def __init__(
        self,
        name: str,
        service_type: str,
        port: int,
        properties: Optional[Dict[bytes, Optional[bytes]]] = None,
    ) -> None:
        """
        Args:
            name: Instance name, e.g. "Printer".
            service_type: Base type, e.g. "_ipp._tcp". Must start with '_'.
            port: Port announced in the SRV record.
            properties: TXT record.

        Raises:
            ValueError: If `service_type` does not start with '_'.
        """
        if not service_type.startswith("_"):
            raise ValueError(
                f"service_type must start with '_', got '{service_type}'."
            )

        self.__type = f"{service_type}.local."
        self.__name = f"{name}.{self.__type}"
        self.__port = port
        self.__properties = properties or {}
        self.__zc: Optional[AsyncZeroconf] = None
        self.__info: Optional[ServiceInfo] = None

    async def publish(self) -> None:
        if self.__zc is not None:
            _logger.info("%s is already published.", self.__name)
            return

        self.__info = ServiceInfo(
            type_=self.__type,
            name=self.__name,
            addresses=get_advertised_addresses(),
            port=self.__port,
            properties=self.__properties,
        )
        self.__zc = AsyncZeroconf(ip_version=IPVersion.V4Only)
        await self.__zc.async_register_service(self.__info)
        _logger.info("Published %s on port %d.", self.__name, self.__port)

    async def close(self) -> None:
        """Unregisters the service and closes the zeroconf instance."""
        zc, info = self.__zc, self.__info
        self.__zc = None
        self.__info = None
        if zc is None:
            return

        try:
            if info is not None:
                await zc.async_unregister_service(info)
                _logger.info("Unpublished %s.", self.__name)
        finally:
            await zc.async_close()
