"""Terminal output for locations, weather and settings."""

from typing import Iterable, Optional, Tuple

from .maps import distance_to, format_coordinate, format_distance
from .models import LocationEntry, Position, SavedLocation
from .weather import WeatherData


def print_entry(entry: LocationEntry) -> None:
    """Print a freshly acquired location."""
    print(f"Latitude:  {format_coordinate(entry.latitude)}")
    print(f"Longitude: {format_coordinate(entry.longitude)}")
    print(f"Street:    {entry.street or 'N/A'}")
    print(f"Place:     {entry.place or 'N/A'}")


def print_location_list(rows: Iterable[Tuple[SavedLocation, Optional[LocationEntry]]]) -> None:
    rows = list(rows)
    if not rows:
        print("No saved locations")
        return
    for location, entry in rows:
        star = "★" if location.is_favorite else " "
        label = entry.label if entry else "(missing entry)"
        print(f"{star} {str(location.id)[:8]}  {location.name:<24}  {label}")


def print_location_detail(
    location: SavedLocation,
    entry: Optional[LocationEntry],
    current: Optional[Position] = None,
) -> None:
    print(f"\n{'='*70}")
    print(f"{location.name}{'  ★' if location.is_favorite else ''}")
    print(f"{'='*70}")
    print(f"ID:          {location.id}")
    print(f"Description: {location.description or '-'}")
    print(f"Created:     {location.created_at:%Y-%m-%d %H:%M} UTC")
    if entry is None:
        print("Location Entry: Missing")
        return
    print(f"Street:      {entry.street or 'N/A'}")
    print(f"Place:       {entry.place or 'N/A'}")
    print(f"Coordinates: {format_coordinate(entry.latitude)}, {format_coordinate(entry.longitude)}")
    print(f"Captured:    {entry.timestamp:%Y-%m-%d %H:%M} UTC")
    distance = distance_to(entry, current)
    if distance is not None:
        print(f"Distance to: {entry.street or 'location'}: {format_distance(distance)}")
    print(f"{'='*70}")


def print_weather(weather: WeatherData) -> None:
    print(f"{weather.condition.description}, {weather.temperature:.1f}°C")
    print(f"Humidity: {weather.humidity * 100:.0f}%  Wind: {weather.wind_speed:.1f} km/h")


def dump_saved_locations(rows: Iterable[Tuple[SavedLocation, Optional[LocationEntry]]]) -> None:
    """Debug listing of everything in the store."""
    rows = list(rows)
    print(f"\n📍 Saved Locations ({len(rows)} total):")
    print("=====================================")
    for index, (location, entry) in enumerate(rows, start=1):
        print(f"\n🔸 Location #{index}")
        print(f"ID: {location.id}")
        print(f"Description: {location.description}")
        print(f"Created: {location.created_at.isoformat()}")
        if entry is not None:
            print(f"Street: {entry.street or 'N/A'}")
            print(f"Place: {entry.place or 'N/A'}")
            print(f"Coordinates: ({entry.latitude}, {entry.longitude})")
            print(f"timestamp: {entry.timestamp.isoformat()}")
        else:
            print("Location Entry: Missing")
        print("-------------------------------------")


def dump_preferences(values: dict) -> None:
    print("\n=== Preferences ===\n")
    for key, value in values.items():
        print(f"🔑 {key}")
        print(f"📝 {value!r}")
        print("------------------------")
