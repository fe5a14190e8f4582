"""Position sources producing one-shot position fixes."""

import logging
from typing import Optional, Protocol

import httpx

from . import config
from .errors import LocationUnavailable, UnknownLocationError
from .models import Position, coordinates_valid

logger = logging.getLogger(__name__)


class PositionSource(Protocol):
    async def request_position(self) -> Position:
        ...

    def cancel(self) -> None:
        ...


class FixedPositionSource:
    """Reports coordinates supplied by the user."""

    def __init__(self, latitude: float, longitude: float, accuracy: Optional[float] = None):
        if not coordinates_valid(latitude, longitude):
            raise ValueError(f"Invalid coordinates: {latitude}, {longitude}")
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy = accuracy

    async def request_position(self) -> Position:
        return Position(latitude=self.latitude, longitude=self.longitude, accuracy=self.accuracy)

    def cancel(self) -> None:
        pass


class IPGeolocationSource:
    """Approximate position from an IP geolocation service.

    Accuracy is city-level at best; the reported accuracy reflects that.
    """

    APPROXIMATE_ACCURACY_M = 5000.0

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or config.ip_geolocation_url
        self.timeout = timeout
        self._transport = transport
        self.cancelled = False

    async def request_position(self) -> Position:
        self.cancelled = False
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url, headers={"User-Agent": config.user_agent})
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error("IP geolocation request failed: %s", e)
            raise UnknownLocationError(e) from e
        except ValueError as e:
            raise UnknownLocationError(e) from e

        lat = data.get("latitude", data.get("lat"))
        lon = data.get("longitude", data.get("lon"))
        if lat is None or lon is None:
            raise LocationUnavailable(data.get("reason") or "Location is unavailable")
        return Position(latitude=float(lat), longitude=float(lon), accuracy=self.APPROXIMATE_ACCURACY_M)

    def cancel(self) -> None:
        # The in-flight HTTP request is abandoned by task cancellation
        self.cancelled = True
