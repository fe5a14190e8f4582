"""Application service container.

Every service is built once at startup and handed to consumers by reference.
"""

import logging
from pathlib import Path
from typing import Optional

from . import config
from .config import RoutePlanner
from .coordinator import LocationCoordinator
from .geocoder import NominatimGeocoder, ReverseGeocoder
from .models import AuthorizationState
from .permissions import ConsentPermissionProvider, PermissionProvider, StaticPermissionProvider
from .position import FixedPositionSource, IPGeolocationSource, PositionSource
from .preferences import Preferences
from .store import LocationStore
from .theme import ThemeManager
from .weather import WeatherManager

logger = logging.getLogger(__name__)

ROUTE_PLANNER_KEY = "selectedRoutePlanner"


class GPSLocaterApp:
    def __init__(
        self,
        data_dir: Optional[Path] = None,
        *,
        permissions: Optional[PermissionProvider] = None,
        position_source: Optional[PositionSource] = None,
        geocoder: Optional[ReverseGeocoder] = None,
        weather: Optional[WeatherManager] = None,
    ):
        self.data_dir = Path(data_dir or config.data_dir)
        self.preferences = Preferences(self.data_dir / config.PREFERENCES_FILE)
        self.theme = ThemeManager(self.preferences)
        self.store = LocationStore(self.data_dir / config.LOCATIONS_FILE)
        self.permissions = permissions or _default_permissions(self.preferences)
        self.position_source = position_source or _default_position_source()
        self.geocoder = geocoder or NominatimGeocoder()
        self.coordinator = LocationCoordinator(self.permissions, self.position_source, self.geocoder)
        self.weather = weather or WeatherManager()

    @property
    def route_planner(self) -> RoutePlanner:
        try:
            return RoutePlanner(self.preferences.get(ROUTE_PLANNER_KEY, config.route_planner.value))
        except ValueError:
            return config.route_planner

    def set_route_planner(self, planner: RoutePlanner) -> None:
        self.preferences.set(ROUTE_PLANNER_KEY, planner.value)
        config.route_planner = planner

    def start(self) -> None:
        """Load persisted state and run startup housekeeping."""
        self.theme.configure_initial_theme()
        config.route_planner = self.route_planner
        self.store.load()
        removed_records, removed_entries = self.store.sweep_orphans()
        if removed_records or removed_entries:
            self.store.save()


def _default_permissions(preferences: Preferences) -> PermissionProvider:
    if config.allow_location:
        return StaticPermissionProvider(AuthorizationState.AUTHORIZED_WHILE_IN_USE, enabled=config.services_enabled)
    return ConsentPermissionProvider(preferences)


def _default_position_source() -> PositionSource:
    if config.fixed_latitude is not None and config.fixed_longitude is not None:
        return FixedPositionSource(config.fixed_latitude, config.fixed_longitude)
    return IPGeolocationSource()
