"""Map integration: directions links, sharing and distances."""

import logging
import math
import webbrowser
from typing import Optional
from urllib.parse import quote

from . import config
from .config import RoutePlanner
from .models import LocationEntry, Position, SavedLocation

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_008.8


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates (haversine)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def distance_to(entry: LocationEntry, current: Optional[Position]) -> Optional[float]:
    if current is None:
        return None
    return distance_meters(entry.latitude, entry.longitude, current.latitude, current.longitude)


def format_distance(meters: float) -> str:
    """Metres below one kilometre, whole kilometres above."""
    if meters >= 1000:
        return f"{meters / 1000:,.0f} km"
    return f"{meters:.0f} m"


def directions_available(entry: LocationEntry, current: Optional[Position]) -> bool:
    """Directions make sense only when the location is not where we stand."""
    distance = distance_to(entry, current)
    if distance is None:
        return False
    return distance >= config.directions_min_distance_m


def format_coordinate(value: float) -> str:
    return f"{value:.6f}°"


def directions_url(
    entry: LocationEntry,
    name: str,
    planner: Optional[RoutePlanner] = None,
    web: bool = False,
) -> str:
    """Build a directions link for the chosen route planner.

    App-scheme links open the native apps; `web=True` gives browser links.
    """
    planner = planner or config.route_planner
    coordinate = f"{entry.latitude},{entry.longitude}"
    encoded_name = quote(name)

    if planner is RoutePlanner.GOOGLE:
        if web:
            return f"https://www.google.com/maps/dir/?api=1&destination={coordinate}"
        return f"comgooglemaps://?q={coordinate}&name={encoded_name}"
    if planner is RoutePlanner.WAZE:
        if web:
            return f"https://waze.com/ul?ll={coordinate}&navigate=yes"
        return f"waze://?ll={coordinate}&navigate=yes"
    if web:
        return f"https://maps.apple.com/?daddr={coordinate}&dirflg=d"
    return f"maps://?daddr={coordinate}&dirflg=d&t=m"


def open_directions(entry: LocationEntry, name: str, planner: Optional[RoutePlanner] = None) -> bool:
    """Open directions in the browser, falling back to Apple Maps."""
    url = directions_url(entry, name, planner, web=True)
    if webbrowser.open(url):
        return True
    logger.warning("Failed to open %s", url)
    fallback = directions_url(entry, name, RoutePlanner.APPLE, web=True)
    return fallback != url and webbrowser.open(fallback)


def share_text(location: SavedLocation, entry: LocationEntry) -> str:
    """Text for sharing a saved location."""
    map_url = f"https://maps.apple.com/?q={entry.latitude},{entry.longitude}"
    return f"📍 {location.display_name(entry)}\n\nOpen in Maps: {map_url}"
