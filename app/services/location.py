"""Device location: the LocationProvider contract and its failure causes."""
import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from app.models.report import Coordinates

logger = logging.getLogger(__name__)


class LocationErrorCause(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


LOCATION_ERROR_MESSAGES = {
    LocationErrorCause.PERMISSION_DENIED: "User denied the request for Geolocation.",
    LocationErrorCause.POSITION_UNAVAILABLE: "Location information is unavailable.",
    LocationErrorCause.TIMEOUT: "The request to get user location timed out.",
    LocationErrorCause.UNKNOWN: "An unknown error occurred.",
}


class LocationError(Exception):
    def __init__(self, cause: LocationErrorCause):
        self.cause = cause
        super().__init__(LOCATION_ERROR_MESSAGES[cause])

    @property
    def message(self) -> str:
        return LOCATION_ERROR_MESSAGES[self.cause]


class LocationProvider(ABC):
    """Supplies the device position on demand. Raises LocationError on failure."""

    timeout_seconds: float = 15.0

    @abstractmethod
    async def _locate(self) -> Coordinates:
        raise NotImplementedError

    async def get_current_location(self) -> Coordinates:
        try:
            return await asyncio.wait_for(self._locate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            raise LocationError(LocationErrorCause.TIMEOUT) from None
        except LocationError:
            raise
        except Exception as e:
            logger.warning("Device location failed: %s", e)
            raise LocationError(LocationErrorCause.UNKNOWN) from e


class StaticLocationProvider(LocationProvider):
    """Position reported by the client device (e.g. a browser geolocation fix).

    `denied=True` models the user refusing the permission prompt; no coordinates
    means the device had no fix to report.
    """

    def __init__(
        self,
        coordinates: Optional[Coordinates] = None,
        denied: bool = False,
        timeout_seconds: float = 15.0,
    ):
        self.coordinates = coordinates
        self.denied = denied
        self.timeout_seconds = timeout_seconds

    def update(self, coordinates: Optional[Coordinates] = None, denied: bool = False) -> None:
        """Record the latest fix (or refusal) reported by the device."""
        self.coordinates = coordinates
        self.denied = denied

    async def _locate(self) -> Coordinates:
        if self.denied:
            raise LocationError(LocationErrorCause.PERMISSION_DENIED)
        if self.coordinates is None:
            raise LocationError(LocationErrorCause.POSITION_UNAVAILABLE)
        return self.coordinates
