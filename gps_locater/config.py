"""Global configuration and defaults for GPS Locater."""

import os
from enum import Enum
from pathlib import Path
from typing import Optional


class RoutePlanner(Enum):
    """Navigation app used for directions."""
    APPLE = "apple"
    GOOGLE = "google"
    WAZE = "waze"

    @property
    def display_name(self) -> str:
        return {
            RoutePlanner.APPLE: "Apple Maps",
            RoutePlanner.GOOGLE: "Google Maps",
            RoutePlanner.WAZE: "Waze",
        }[self]


class ThemeColor(Enum):
    """Selectable color theme."""
    OCEAN_BLUE = "oceanBlue"
    SYSTEM = "system"

    @property
    def display_name(self) -> str:
        return "Ocean Blue" if self is ThemeColor.OCEAN_BLUE else "System"

    @property
    def accent_color(self) -> Optional[str]:
        # System theme follows the terminal/OS accent
        return "#2D7196" if self is ThemeColor.OCEAN_BLUE else None


# Debug mode shows raw error messages instead of friendly ones
debug_mode: bool = os.environ.get("DEBUG", "").lower() == "true"

# Storage settings
data_dir: Path = Path.home() / ".gps_locater"
LOCATIONS_FILE: str = "locations.json"
PREFERENCES_FILE: str = "preferences.json"
LOG_DIR: str = "logs"

# Location settings
location_timeout: float = 15.0
authorization_timeout: Optional[float] = None
services_enabled: bool = True
fixed_latitude: Optional[float] = None
fixed_longitude: Optional[float] = None
allow_location: bool = False
ip_geolocation_url: str = "https://ipapi.co/json/"

# Reverse geocoding settings
nominatim_url: str = "https://nominatim.openstreetmap.org"
user_agent: str = "gps-locater/1.0"

# Weather settings
weather_url: str = "https://api.open-meteo.com/v1/forecast"
weather_cache_timeout: float = 15 * 60
weather_cache_limit: int = 50
weather_retry_attempts: int = 3

# Map settings
route_planner: RoutePlanner = RoutePlanner.APPLE
directions_min_distance_m: float = 30.0

# Import/export settings
duplicate_tolerance: float = 0.0001
CSV_HEADER = [
    "Name",
    "Description",
    "Street",
    "Place",
    "Latitude",
    "Longitude",
    "Favorite",
    "Created Date",
    "Location Added Date",
]
CSV_DATE_FORMAT: str = "%d/%m/%Y, %H:%M"
