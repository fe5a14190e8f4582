"""Reverse geocoding through OpenStreetMap Nominatim."""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Protocol

import httpx

from . import config
from .errors import GeocodingError
from .models import Placemark

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_BASE_DELAY = 2.0  # seconds
_MIN_INTERVAL = 1.0  # Nominatim usage policy: at most 1 request per second

_STREET_KEYS = ("road", "pedestrian", "footway", "path", "cycleway", "square")
_LOCALITY_KEYS = ("city", "town", "village", "hamlet", "municipality", "suburb")


class ReverseGeocoder(Protocol):
    async def reverse_geocode(self, latitude: float, longitude: float) -> List[Placemark]:
        ...


def placemark_from_address(address: dict) -> Placemark:
    """Pick thoroughfare/locality/administrative area out of a Nominatim address."""
    def first(keys):
        for key in keys:
            if address.get(key):
                return address[key]
        return None

    return Placemark(
        thoroughfare=first(_STREET_KEYS),
        locality=first(_LOCALITY_KEYS),
        administrative_area=address.get("state") or address.get("county"),
    )


class NominatimGeocoder:
    """Reverse geocoder with client-side rate limiting and backoff on 429/5xx."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = (base_url or config.nominatim_url).rstrip("/")
        self.user_agent = user_agent or config.user_agent
        self.timeout = timeout
        self._transport = transport
        self._sleep = sleep
        self._last_request_time = 0.0
        self._rate_lock = asyncio.Lock()

    async def _wait_for_slot(self) -> None:
        async with self._rate_lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < _MIN_INTERVAL:
                await self._sleep(_MIN_INTERVAL - elapsed)
            self._last_request_time = time.monotonic()

    async def reverse_geocode(self, latitude: float, longitude: float) -> List[Placemark]:
        """Reverse-geocode coordinates.

        Returns:
            Candidate placemarks, best match first (Nominatim returns one).

        Raises:
            GeocodingError: when the service gives no usable answer.
        """
        params = {
            "lat": latitude,
            "lon": longitude,
            "format": "jsonv2",
            "addressdetails": 1,
        }
        headers = {"User-Agent": self.user_agent}

        for attempt in range(_MAX_RETRIES):
            await self._wait_for_slot()
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.get(f"{self.base_url}/reverse", params=params, headers=headers)
            except httpx.RequestError as e:
                if attempt < _MAX_RETRIES - 1:
                    logger.debug("Geocoding request failed (%s), retrying", e)
                    await self._sleep(_BASE_DELAY * (2 ** attempt))
                    continue
                raise GeocodingError(f"Geocoding request failed: {e}") from e

            if response.status_code == 429 or response.status_code >= 500:
                if attempt < _MAX_RETRIES - 1:
                    logger.debug("Geocoder returned %s, retrying", response.status_code)
                    await self._sleep(_BASE_DELAY * (2 ** attempt))
                    continue
                raise GeocodingError(f"Geocoder returned HTTP {response.status_code}")

            if response.status_code >= 400:
                raise GeocodingError(f"Geocoder returned HTTP {response.status_code}")

            try:
                data = response.json()
            except ValueError as e:
                raise GeocodingError("Geocoder returned invalid JSON") from e
            if not isinstance(data, dict):
                raise GeocodingError("Geocoder returned unexpected payload")
            if data.get("error"):
                raise GeocodingError(str(data["error"]))

            address = data.get("address") or {}
            return [placemark_from_address(address)] if address else []

        raise GeocodingError("Geocoding retries exhausted")
