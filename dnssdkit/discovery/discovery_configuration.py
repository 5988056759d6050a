"""Defines DiscoveryConfiguration, the caller's search criteria."""

import dataclasses
from typing import Optional


@dataclasses.dataclass(frozen=True)
class DiscoveryConfiguration:
    """Search criteria for one browse within a `DiscoverySession`.

    Attributes:
        service_type: DNS-SD service type to browse for, e.g. "_http._tcp".
        service_name_prefix: If set, only advertisements whose instance name
            starts with this exact prefix are resolved and reported.
    """

    service_type: str
    service_name_prefix: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.service_type, str):
            raise TypeError(
                f"service_type must be str, got {type(self.service_type).__name__}."
            )
        if not self.service_type:
            raise ValueError("service_type cannot be empty.")
        if self.service_name_prefix is not None and not isinstance(
            self.service_name_prefix, str
        ):
            raise TypeError(
                "service_name_prefix must be str or None, got "
                f"{type(self.service_name_prefix).__name__}."
            )
