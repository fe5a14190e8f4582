"""Location acquisition: permission negotiation, a bounded wait for a
position fix, and reverse geocoding, with at most one request in flight.

Every acquisition gets a generation token. Resetting state and bumping the
token happen synchronously at the start of a call, before any await, so an
observer never sees a mix of old and new data. Asynchronous completions are
matched against the token and dropped if a newer acquisition has started.
"""

import asyncio
import functools
import logging
from typing import Callable, Dict, List, Optional

from . import config
from .errors import (
    GeocodingDegraded,
    LocationError,
    LocationTimeout,
    LocationUnavailable,
    PermissionDenied,
    RequestSuperseded,
    ServicesDisabled,
    UnknownLocationError,
)
from .geocoder import ReverseGeocoder
from .models import AuthorizationState, LocationEntry, Position
from .permissions import PermissionProvider
from .position import PositionSource

logger = logging.getLogger(__name__)

Observer = Callable[["LocationCoordinator"], None]


class PendingRequests:
    """Outstanding requests keyed by generation token.

    Each request is resolved at most once; deliveries for unknown or
    already-finished tokens are ignored and reported as such.
    """

    def __init__(self) -> None:
        self._futures: Dict[int, asyncio.Future] = {}

    def register(self, token: int) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self._futures[token] = future
        return future

    def resolve(self, token: int, value) -> bool:
        future = self._futures.pop(token, None)
        if future is None or future.done():
            return False
        future.set_result(value)
        return True

    def reject(self, token: int, error: BaseException) -> bool:
        future = self._futures.pop(token, None)
        if future is None or future.done():
            return False
        future.set_exception(error)
        return True

    def discard(self, token: int) -> None:
        future = self._futures.pop(token, None)
        if future is not None and not future.done():
            future.cancel()

    def reject_all(self, error_factory: Callable[[], BaseException]) -> List[int]:
        tokens = list(self._futures)
        for token in tokens:
            self.reject(token, error_factory())
        return tokens

    def __contains__(self, token: int) -> bool:
        return token in self._futures

    def __len__(self) -> int:
        return len(self._futures)


class LocationCoordinator:
    """Produces one up-to-date LocationEntry per `acquire_current_location` call.

    State fields (`current_location`, `current_street`, `current_place`,
    `current_entry`, `authorization_status`) are written only here and read
    by everyone else; observers are called after each change.
    """

    def __init__(
        self,
        permissions: PermissionProvider,
        position_source: PositionSource,
        geocoder: ReverseGeocoder,
        *,
        timeout: Optional[float] = None,
        authorization_timeout: Optional[float] = None,
    ):
        self.permissions = permissions
        self.position_source = position_source
        self.geocoder = geocoder
        self.timeout = timeout if timeout is not None else config.location_timeout
        self.authorization_timeout = (
            authorization_timeout if authorization_timeout is not None else config.authorization_timeout
        )

        self.current_location: Optional[Position] = None
        self.current_street: Optional[str] = None
        self.current_place: Optional[str] = None
        self.current_entry: Optional[LocationEntry] = None
        self.authorization_status: AuthorizationState = permissions.current_authorization()
        self.geocoding_error: Optional[GeocodingDegraded] = None

        self._generation = 0
        self._pending = PendingRequests()
        self._position_task: Optional[asyncio.Future] = None
        self._authorization_future: Optional[asyncio.Future] = None
        self._observers: List[Observer] = []

        permissions.add_listener(self._on_authorization_changed)

    # Observation ---------------------------------------------------------
    def add_observer(self, observer: Observer) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> None:
        self._observers.remove(observer)

    def _notify(self) -> None:
        for observer in list(self._observers):
            observer(self)

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def current_entry_or_raise(self) -> LocationEntry:
        """Return the last acquired entry without starting a new request."""
        if self.current_entry is None:
            raise LocationUnavailable()
        return self.current_entry

    # Public API ----------------------------------------------------------
    async def acquire_current_location(self) -> LocationEntry:
        """Acquire the device position and label it.

        Raises:
            ServicesDisabled: location services are off.
            PermissionDenied: access denied or restricted.
            LocationTimeout: no fix within `timeout` seconds.
            RequestSuperseded: a newer acquisition started before this one finished.
            UnknownLocationError: any other failure.
        """
        token = self._begin()

        try:
            await self._authorize(token)
            position = await self._request_position(token)
        except LocationError:
            raise
        except Exception as e:
            logger.error("Location request %d failed: %s", token, e)
            raise UnknownLocationError(e) from e

        self._ensure_current(token)
        self.current_location = position
        self._notify()

        street, place = await self._reverse_geocode(token, position)

        self._ensure_current(token)
        self.current_street = street
        self.current_place = place
        entry = LocationEntry(
            latitude=position.latitude,
            longitude=position.longitude,
            street=street,
            place=place,
        )
        self.current_entry = entry
        self._notify()
        logger.info("Location request %d resolved to %s", token, entry.label)
        return entry

    # Steps ---------------------------------------------------------------
    def _begin(self) -> int:
        """Reset state and start a new generation. Must not await."""
        self._generation += 1
        token = self._generation

        superseded = self._pending.reject_all(RequestSuperseded)
        if superseded:
            logger.debug("Request %d supersedes %s", token, superseded)
            self._cancel_position_task()

        self.current_location = None
        self.current_street = None
        self.current_place = None
        self.current_entry = None
        self.geocoding_error = None
        self._notify()
        return token

    def _ensure_current(self, token: int) -> None:
        if not self.is_current(token):
            logger.debug("Discarding result of superseded request %d", token)
            raise RequestSuperseded()

    async def _authorize(self, token: int) -> None:
        if not self.permissions.services_enabled():
            raise ServicesDisabled()

        status = self.permissions.current_authorization()
        self.authorization_status = status
        if status is AuthorizationState.UNDETERMINED:
            status = await self._await_authorization()
            self._ensure_current(token)

        if status.is_refused:
            raise PermissionDenied()
        if not status.is_authorized:
            raise UnknownLocationError(RuntimeError(f"Authorization remained {status.value}"))

    async def _await_authorization(self) -> AuthorizationState:
        # A call arriving while a prompt is outstanding joins that prompt
        if self._authorization_future is None or self._authorization_future.done():
            self._authorization_future = asyncio.get_running_loop().create_future()
            logger.info("Requesting location authorization")
            self.permissions.request_authorization()
        else:
            logger.debug("Joining outstanding authorization request")

        waiter = asyncio.shield(self._authorization_future)
        if self.authorization_timeout is None:
            return await waiter
        try:
            return await asyncio.wait_for(waiter, self.authorization_timeout)
        except asyncio.TimeoutError:
            raise LocationTimeout(self.authorization_timeout) from None

    def _on_authorization_changed(self, state: AuthorizationState) -> None:
        self.authorization_status = state
        self._notify()
        future = self._authorization_future
        if state is AuthorizationState.UNDETERMINED or future is None or future.done():
            return
        future.set_result(state)

    async def _request_position(self, token: int) -> Position:
        future = self._pending.register(token)
        task = asyncio.ensure_future(self.position_source.request_position())
        task.add_done_callback(functools.partial(self._on_position_done, token))
        self._position_task = task

        try:
            return await asyncio.wait_for(future, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Location request %d timed out after %ss", token, self.timeout)
            self._pending.discard(token)
            self._cancel_position_task()
            raise LocationTimeout(self.timeout) from None
        except asyncio.CancelledError:
            self._pending.discard(token)
            if self.is_current(token):
                self._cancel_position_task()
            raise

    def _on_position_done(self, token: int, task: asyncio.Future) -> None:
        if task.cancelled():
            self._pending.discard(token)
            return
        error = task.exception()
        if error is not None:
            delivered = self._pending.reject(token, error)
        else:
            delivered = self._pending.resolve(token, task.result())
        if not delivered:
            logger.debug("Ignoring late position delivery for request %d", token)

    def _cancel_position_task(self) -> None:
        task = self._position_task
        self._position_task = None
        if task is not None and not task.done():
            task.cancel()
        try:
            self.position_source.cancel()
        except Exception as e:
            logger.debug("Position source cancel failed: %s", e)

    async def _reverse_geocode(self, token: int, position: Position):
        try:
            placemarks = await self.geocoder.reverse_geocode(position.latitude, position.longitude)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Geocoding failure only degrades the label
            self.geocoding_error = GeocodingDegraded(e)
            logger.warning("Geocoding error for request %d: %s", token, e)
            return None, None

        if not placemarks:
            return None, None
        first = placemarks[0]
        return first.street, first.place
