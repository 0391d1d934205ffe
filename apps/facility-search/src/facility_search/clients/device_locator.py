from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from facility_search.models import StrategyConfig


class DeviceLocationError(Exception):
    """Raised when a device position request is rejected or unsupported."""


@dataclass(frozen=True)
class DevicePosition:
    lat: float
    lng: float
    accuracy_meters: float


class DeviceLocator(Protocol):
    async def current_position(self, strategy: StrategyConfig) -> DevicePosition: ...


class UnsupportedDeviceLocator:
    """Used when the host has no positioning source; every strategy fails at once."""

    async def current_position(self, strategy: StrategyConfig) -> DevicePosition:
        raise DeviceLocationError(f"geolocation is not supported ({strategy.name})")
