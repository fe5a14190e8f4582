from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest

from gps_locater import config
from gps_locater.errors import GeocodingError
from gps_locater.models import AuthorizationState, Placemark, Position
from gps_locater.store import LocationStore


_CONFIG_FIELDS = [
    "debug_mode",
    "data_dir",
    "location_timeout",
    "authorization_timeout",
    "services_enabled",
    "fixed_latitude",
    "fixed_longitude",
    "allow_location",
    "route_planner",
]


@pytest.fixture(autouse=True)
def restore_config():
    saved = {name: getattr(config, name) for name in _CONFIG_FIELDS}
    yield
    for name, value in saved.items():
        setattr(config, name, value)


class FakePositionSource:
    """Position source under test control.

    manual: each request waits until the test resolves `gates[i]`.
    ignore_cancel: keep waiting after cancellation and deliver late.
    """

    def __init__(
        self,
        position: Optional[Position] = None,
        *,
        error: Optional[BaseException] = None,
        manual: bool = False,
        ignore_cancel: bool = False,
    ) -> None:
        self.position = position or Position(latitude=52.3731, longitude=4.8922)
        self.error = error
        self.manual = manual
        self.ignore_cancel = ignore_cancel
        self.calls = 0
        self.cancels = 0
        self.gates: List[asyncio.Future] = []

    async def request_position(self) -> Position:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if not self.manual:
            return self.position
        gate = asyncio.get_running_loop().create_future()
        self.gates.append(gate)
        if not self.ignore_cancel:
            return await gate
        try:
            return await asyncio.shield(gate)
        except asyncio.CancelledError:
            return await gate

    def cancel(self) -> None:
        self.cancels += 1


class FakeGeocoder:
    """Geocoder under test control; with manual=True each lookup waits on `gates[i]`."""

    def __init__(
        self,
        placemarks: Optional[List[Placemark]] = None,
        error: Optional[BaseException] = None,
        *,
        manual: bool = False,
    ):
        if placemarks is None:
            placemarks = [Placemark(thoroughfare="Damrak", locality="Amsterdam", administrative_area="North Holland")]
        self.placemarks = placemarks
        self.error = error
        self.manual = manual
        self.calls = 0
        self.gates: List[asyncio.Future] = []

    async def reverse_geocode(self, latitude: float, longitude: float) -> List[Placemark]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.manual:
            gate = asyncio.get_running_loop().create_future()
            self.gates.append(gate)
            return await gate
        return self.placemarks


class ManualPermissionProvider:
    """Undetermined until the test answers the prompt."""

    def __init__(self, state: AuthorizationState = AuthorizationState.UNDETERMINED) -> None:
        self.state = state
        self.requests = 0
        self._listeners = []

    def services_enabled(self) -> bool:
        return True

    def current_authorization(self) -> AuthorizationState:
        return self.state

    def request_authorization(self) -> None:
        self.requests += 1

    def add_listener(self, listener) -> None:
        self._listeners.append(listener)

    def answer(self, state: AuthorizationState) -> None:
        self.state = state
        for listener in self._listeners:
            listener(state)


async def settle(rounds: int = 10) -> None:
    """Let pending callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def failing_geocoder():
    return FakeGeocoder(error=GeocodingError("service down"))


@pytest.fixture
def store(tmp_path):
    s = LocationStore(tmp_path / "locations.json")
    s.load()
    return s
