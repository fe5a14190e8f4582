"""Error types and their user-facing messages."""

from typing import Optional

import httpx

from . import config


class LocationError(Exception):
    """Base class for location acquisition failures."""
    message = "Location error"

    def __str__(self) -> str:
        return self.args[0] if self.args else self.message


class ServicesDisabled(LocationError):
    message = "Location services are disabled"


class PermissionDenied(LocationError):
    message = "Location access was denied"


class LocationTimeout(LocationError):
    message = "Location request timed out"

    def __init__(self, seconds: Optional[float] = None):
        super().__init__()
        self.seconds = seconds

    def __str__(self) -> str:
        if self.seconds is None:
            return self.message
        return f"{self.message} after {self.seconds:g} seconds"


class LocationUnavailable(LocationError):
    message = "Location is unavailable"


class RequestSuperseded(LocationError):
    message = "Location request was superseded by a newer request"


class UnknownLocationError(LocationError):
    """Any other platform-level failure, wrapping its cause."""

    def __init__(self, cause: BaseException):
        super().__init__()
        self.cause = cause

    def __str__(self) -> str:
        return str(self.cause) or self.cause.__class__.__name__


class GeocodingError(Exception):
    """Reverse geocoding could not produce an answer."""


class GeocodingDegraded(LocationError):
    """Non-fatal: position was obtained but could not be labelled."""
    message = "Reverse geocoding failed"

    def __init__(self, cause: BaseException):
        super().__init__()
        self.cause = cause

    def __str__(self) -> str:
        return f"{self.message}: {self.cause}"


class WeatherError(Exception):
    message = "Weather error"

    def __str__(self) -> str:
        return self.args[0] if self.args else self.message


class AuthenticationFailed(WeatherError):
    message = "Weather service authentication failed. Please try again later."


class ServiceUnavailable(WeatherError):
    message = "Weather service is currently unavailable. Please try again later."


class InvalidLocation(WeatherError):
    message = "Invalid location coordinates provided."


class NetworkError(WeatherError):
    message = "Network connection error. Please check your internet connection."


class UnknownWeatherError(WeatherError):
    def __init__(self, cause: BaseException):
        super().__init__()
        self.cause = cause

    def __str__(self) -> str:
        return f"Unexpected error: {self.cause}"


class CSVImportError(Exception):
    message = "Import failed"

    def __str__(self) -> str:
        return self.args[0] if self.args else self.message


class EmptyFile(CSVImportError):
    message = "The selected file is empty"


class InvalidFormat(CSVImportError):
    message = "The file format is invalid"


class InvalidData(CSVImportError):
    def __init__(self, field: str):
        super().__init__()
        self.field = field

    def __str__(self) -> str:
        return f"Invalid data for field: {self.field}"


class StoreError(Exception):
    """Persistent store could not be read or written."""


class ValidationError(Exception):
    """User input rejected before saving."""


def user_friendly_message(error: BaseException, debug: Optional[bool] = None) -> str:
    """Map an error to text suitable for the user.

    In debug mode unexpected errors show their raw message.
    """
    if debug is None:
        debug = config.debug_mode

    if isinstance(error, ServicesDisabled):
        return "Location services are disabled. Please enable them in Settings."
    if isinstance(error, PermissionDenied):
        return "Location access was denied. Please allow access in Settings."
    if isinstance(error, LocationTimeout):
        return "Location request timed out. Please try again."
    if isinstance(error, (LocationUnavailable, RequestSuperseded)):
        return "Unable to update location. Please try again."
    if isinstance(error, UnknownLocationError):
        if debug:
            return str(error)
        return "Unable to access location services. Please try again."
    if isinstance(error, GeocodingDegraded):
        return "Unable to determine the address for this location."
    if isinstance(error, GeocodingError):
        return "No matching locations were found."
    if isinstance(error, UnknownWeatherError):
        return str(error) if debug else "Weather is unavailable right now. Please try again later."
    if isinstance(error, (WeatherError, CSVImportError, ValidationError)):
        return str(error)
    if isinstance(error, StoreError):
        return f"Database error: {error}"
    if isinstance(error, httpx.TransportError):
        return "Network error. Please check your connection and try again."
    if debug:
        return str(error)
    return "Something went wrong. Please try again later."
