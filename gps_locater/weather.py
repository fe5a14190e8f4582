"""Current weather for a coordinate, with caching and retries."""

import asyncio
import logging
import time
from collections import OrderedDict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Set, Tuple

import httpx
from pydantic import BaseModel, Field

from . import config
from .errors import (
    AuthenticationFailed,
    InvalidLocation,
    NetworkError,
    ServiceUnavailable,
    UnknownWeatherError,
    WeatherError,
)
from .models import coordinates_valid

logger = logging.getLogger(__name__)


class WeatherCondition(str, Enum):
    CLEAR = "clear"
    CLOUDY = "cloudy"
    RAIN = "rain"
    SNOW = "snow"
    STORM = "storm"
    MIST = "mist"
    UNKNOWN = "unknown"

    @property
    def description(self) -> str:
        return {
            WeatherCondition.CLEAR: "Clear",
            WeatherCondition.CLOUDY: "Cloudy",
            WeatherCondition.RAIN: "Rain",
            WeatherCondition.SNOW: "Snow",
            WeatherCondition.STORM: "Storm",
            WeatherCondition.MIST: "Misty",
            WeatherCondition.UNKNOWN: "Unknown",
        }[self]

    @property
    def icon_name(self) -> str:
        return {
            WeatherCondition.CLEAR: "sun.max.fill",
            WeatherCondition.CLOUDY: "cloud.fill",
            WeatherCondition.RAIN: "cloud.rain.fill",
            WeatherCondition.SNOW: "cloud.snow.fill",
            WeatherCondition.STORM: "cloud.bolt.fill",
            WeatherCondition.MIST: "cloud.fog.fill",
            WeatherCondition.UNKNOWN: "questionmark.circle.fill",
        }[self]


class WeatherData(BaseModel):
    """Current conditions at a location."""
    temperature: float  # Celsius
    condition: WeatherCondition
    humidity: float  # 0..1
    wind_speed: float  # km/h
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def condition_from_wmo(code: Optional[int]) -> WeatherCondition:
    """Map a WMO weather interpretation code to a condition."""
    if code is None:
        return WeatherCondition.UNKNOWN
    if code in (0, 1):
        return WeatherCondition.CLEAR
    if code in (2, 3):
        return WeatherCondition.CLOUDY
    if code in (45, 48):
        return WeatherCondition.MIST
    # Freezing drizzle/rain count as snow
    if code in (56, 57, 66, 67) or 71 <= code <= 77 or code in (85, 86):
        return WeatherCondition.SNOW
    if 51 <= code <= 65 or 80 <= code <= 82:
        return WeatherCondition.RAIN
    if 95 <= code <= 99:
        return WeatherCondition.STORM
    return WeatherCondition.UNKNOWN


class WeatherCache:
    """TTL cache with a bounded number of entries (oldest evicted first)."""

    def __init__(self, ttl: float, max_entries: int, time_func=time.monotonic) -> None:
        self.ttl = ttl
        self.max_entries = max_entries
        self._time_func = time_func
        self._storage: "OrderedDict[str, Tuple[float, WeatherData]]" = OrderedDict()

    def get(self, key: str) -> Optional[WeatherData]:
        item = self._storage.get(key)
        if not item:
            return None
        stored_at, value = item
        if self._time_func() - stored_at > self.ttl:
            self._storage.pop(key, None)
            return None
        return value

    def set(self, key: str, value: WeatherData) -> None:
        self._storage[key] = (self._time_func(), value)
        self._storage.move_to_end(key)
        while len(self._storage) > self.max_entries:
            self._storage.popitem(last=False)

    def clear(self) -> None:
        self._storage.clear()

    def __len__(self) -> int:
        return len(self._storage)


class OpenMeteoClient:
    """Fetches current conditions from Open-Meteo."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or config.weather_url
        self.timeout = timeout
        self._transport = transport

    async def current(self, latitude: float, longitude: float) -> WeatherData:
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": "temperature_2m,relative_humidity_2m,wind_speed_10m,weather_code",
            "timezone": "UTC",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.base_url, params=params)
        except httpx.TransportError as e:
            raise NetworkError() from e

        if response.status_code in (401, 403):
            raise AuthenticationFailed()
        if response.status_code == 429 or response.status_code >= 500:
            raise ServiceUnavailable()
        if response.status_code == 400:
            raise InvalidLocation()
        if response.status_code >= 400:
            raise UnknownWeatherError(RuntimeError(f"HTTP {response.status_code}"))

        try:
            current = response.json()["current"]
            return WeatherData(
                temperature=float(current["temperature_2m"]),
                condition=condition_from_wmo(current.get("weather_code")),
                humidity=float(current.get("relative_humidity_2m") or 0) / 100.0,
                wind_speed=float(current.get("wind_speed_10m") or 0),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise UnknownWeatherError(e) from e


class WeatherManager:
    """Weather lookups for the UI layer.

    Failures are not raised: `fetch_weather` returns None and the error is
    kept in `self.error`.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        cache: Optional[WeatherCache] = None,
        attempts: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client or OpenMeteoClient()
        self.cache = cache or WeatherCache(config.weather_cache_timeout, config.weather_cache_limit)
        self.attempts = attempts or config.weather_retry_attempts
        self._sleep = sleep
        self._requests_in_progress: Set[str] = set()
        self.current_weather: Optional[WeatherData] = None
        self.error: Optional[WeatherError] = None
        self.is_loading = False

    @staticmethod
    def location_key(latitude: float, longitude: float) -> str:
        return f"{latitude},{longitude}"

    async def fetch_weather(self, latitude: float, longitude: float) -> Optional[WeatherData]:
        key = self.location_key(latitude, longitude)

        if key in self._requests_in_progress:
            logger.debug("Weather request for %s already in progress", key)
            return None

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        self._requests_in_progress.add(key)
        self.is_loading = True
        self.error = None
        try:
            if not coordinates_valid(latitude, longitude):
                raise InvalidLocation()
            weather = await self._fetch_with_retry(latitude, longitude)
            self.cache.set(key, weather)
            self.current_weather = weather
            return weather
        except WeatherError as e:
            self._handle_error(e)
            return None
        except Exception as e:
            self._handle_error(UnknownWeatherError(e))
            return None
        finally:
            self._requests_in_progress.discard(key)
            self.is_loading = False

    async def _fetch_with_retry(self, latitude: float, longitude: float) -> WeatherData:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.attempts + 1):
            try:
                return await self.client.current(latitude, longitude)
            except InvalidLocation:
                raise
            except Exception as e:
                last_error = e
                logger.debug("Weather attempt %d/%d failed: %s", attempt, self.attempts, e)
                if attempt < self.attempts:
                    await self._sleep(2.0 ** attempt)
        raise last_error or ServiceUnavailable()

    def _handle_error(self, error: WeatherError) -> None:
        self.error = error
        logger.error("Weather error: %s", error)
