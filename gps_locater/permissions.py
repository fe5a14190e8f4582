"""Location permission providers.

A provider reports whether location services are on, reports the current
authorization, and accepts fire-and-forget authorization requests whose
outcome is delivered to registered listeners.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Protocol

from . import config
from .models import AuthorizationState
from .preferences import Preferences

logger = logging.getLogger(__name__)

AuthorizationListener = Callable[[AuthorizationState], None]

AUTHORIZATION_KEY = "locationAuthorization"


class PermissionProvider(Protocol):
    def services_enabled(self) -> bool:
        ...

    def current_authorization(self) -> AuthorizationState:
        ...

    def request_authorization(self) -> None:
        ...

    def add_listener(self, listener: AuthorizationListener) -> None:
        ...


class _ListenerMixin:
    def __init__(self) -> None:
        self._listeners: List[AuthorizationListener] = []

    def add_listener(self, listener: AuthorizationListener) -> None:
        self._listeners.append(listener)

    def _notify(self, state: AuthorizationState) -> None:
        for listener in list(self._listeners):
            listener(state)


class StaticPermissionProvider(_ListenerMixin):
    """Provider with a fixed answer.

    When created undetermined, a request resolves to `grant_as` on the next
    loop iteration, mimicking an immediate user answer.
    """

    def __init__(
        self,
        state: AuthorizationState = AuthorizationState.AUTHORIZED_WHILE_IN_USE,
        *,
        grant_as: AuthorizationState = AuthorizationState.AUTHORIZED_WHILE_IN_USE,
        enabled: bool = True,
    ) -> None:
        super().__init__()
        self.state = state
        self.grant_as = grant_as
        self.enabled = enabled
        self.requests = 0

    def services_enabled(self) -> bool:
        return self.enabled

    def current_authorization(self) -> AuthorizationState:
        return self.state

    def request_authorization(self) -> None:
        self.requests += 1
        if self.state is not AuthorizationState.UNDETERMINED:
            return
        asyncio.get_running_loop().call_soon(self._answer)

    def _answer(self) -> None:
        self.state = self.grant_as
        self._notify(self.state)


class ConsentPermissionProvider(_ListenerMixin):
    """Asks the user on the terminal and remembers the answer in preferences."""

    PROMPT = "Allow GPS Locater to use your location? [y/N]: "

    def __init__(self, preferences: Preferences, prompt: Optional[Callable[[str], str]] = None) -> None:
        super().__init__()
        self.preferences = preferences
        self._prompt = prompt or input
        self._prompt_task: Optional[asyncio.Task] = None

    def services_enabled(self) -> bool:
        return config.services_enabled

    def current_authorization(self) -> AuthorizationState:
        raw = self.preferences.get(AUTHORIZATION_KEY)
        try:
            return AuthorizationState(raw) if raw else AuthorizationState.UNDETERMINED
        except ValueError:
            logger.warning("Ignoring unknown stored authorization %r", raw)
            return AuthorizationState.UNDETERMINED

    def set_authorization(self, state: AuthorizationState) -> None:
        self.preferences.set(AUTHORIZATION_KEY, state.value)
        self._notify(state)

    def reset(self) -> None:
        """Forget the stored answer so the next request prompts again."""
        self.preferences.remove(AUTHORIZATION_KEY)

    def request_authorization(self) -> None:
        if self._prompt_task is not None and not self._prompt_task.done():
            return
        self._prompt_task = asyncio.get_running_loop().create_task(self._ask())

    async def _ask(self) -> None:
        loop = asyncio.get_running_loop()
        # input() blocks, so run it off the event loop
        try:
            answer = await loop.run_in_executor(None, self._prompt, self.PROMPT)
        except EOFError:
            answer = ""
        granted = answer.strip().lower() in ("y", "yes")
        state = AuthorizationState.AUTHORIZED_WHILE_IN_USE if granted else AuthorizationState.DENIED
        logger.info("Location authorization answered: %s", state.value)
        self.set_authorization(state)
