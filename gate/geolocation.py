"""Geolocation capability consumed by the access form."""

from dataclasses import dataclass
from typing import Optional, Protocol

from core.geofence import Coordinates
from gate.errors import GeolocationError, GeolocationUnsupportedError


@dataclass(frozen=True)
class PositionOptions:
    """Fix request options. maximum_age=0 forbids cached fixes."""

    enable_high_accuracy: bool = True
    timeout: float = 10.0
    maximum_age: float = 0.0


class GeolocationProvider(Protocol):
    async def get_current_position(self, options: PositionOptions) -> Coordinates:
        """
        A fresh fix.

        Raises:
            PermissionDeniedError, PositionUnavailableError, LocationTimeoutError,
            GeolocationUnsupportedError
        """
        ...


class StaticGeolocationProvider:
    """Reports a fixed position, or a fixed failure. Remembers the last options."""

    def __init__(
        self,
        position: Optional[Coordinates] = None,
        error: Optional[GeolocationError] = None,
    ):
        self.position = position
        self.error = error
        self.last_options: Optional[PositionOptions] = None
        self.calls = 0

    async def get_current_position(self, options: PositionOptions) -> Coordinates:
        self.calls += 1
        self.last_options = options
        if self.error is not None:
            raise self.error
        if self.position is None:
            raise GeolocationUnsupportedError()
        return self.position


class UnsupportedGeolocationProvider:
    """For hosts without any location capability."""

    async def get_current_position(self, options: PositionOptions) -> Coordinates:
        raise GeolocationUnsupportedError()
